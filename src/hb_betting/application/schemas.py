"""Pydantic schemas for hb_betting API."""

import base64
import json
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from src.hb_betting.domain.models import Bet
from src.hb_betting.domain.targets import TargetCell
from src.hb_common.amounts import bps_to_multiplier, from_units
from src.hb_common.enums import Asset, BetDirection


def bet_cursor_encode(last_id: str) -> str:
    return base64.b64encode(json.dumps({"id": last_id}).encode()).decode()


def bet_cursor_decode(cursor: str | None) -> str | None:
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return str(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PlaceBetRequest(BaseModel):
    """Either target_id, or the explicit direction/multiplier/price_change_target triple."""

    address: str = Field(..., min_length=3, max_length=128)
    amount: Decimal = Field(..., decimal_places=8, description="Stake in whole coins")
    asset: Asset = Asset.BTC
    target_id: str | None = Field(None, max_length=32, description='Preset "1".."8" or "UP-2.50"')
    direction: BetDirection | None = None
    multiplier: Decimal | None = Field(None, decimal_places=4)
    price_change_target: Decimal | None = Field(
        None, decimal_places=8, description="Signed USD move, e.g. 10 or -5"
    )

    @model_validator(mode="after")
    def _target_or_explicit(self) -> "PlaceBetRequest":
        explicit = (self.direction, self.multiplier, self.price_change_target)
        if self.target_id is None and any(v is None for v in explicit):
            raise ValueError(
                "provide target_id or all of direction, multiplier, price_change_target"
            )
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BetSummary(BaseModel):
    bet_id: str
    address: str
    asset: str
    amount: Decimal
    amount_units: int
    direction: str
    multiplier: Decimal
    price_change_target_units: int
    reference_price_units: int
    placed_at_ms: int
    deadline_ms: int
    status: str
    target_id: str | None
    end_price_units: int | None
    payout: Decimal
    payout_units: int
    settled_at_ms: int | None

    @classmethod
    def from_bet(cls, bet: Bet) -> "BetSummary":
        return cls(
            bet_id=bet.id,
            address=bet.address,
            asset=bet.asset,
            amount=from_units(bet.amount),
            amount_units=bet.amount,
            direction=bet.direction,
            multiplier=bps_to_multiplier(bet.multiplier_bps),
            price_change_target_units=bet.price_change_target,
            reference_price_units=bet.reference_price,
            placed_at_ms=bet.placed_at_ms,
            deadline_ms=bet.deadline_ms,
            status=bet.status,
            target_id=bet.target_id,
            end_price_units=bet.end_price,
            payout=from_units(bet.payout),
            payout_units=bet.payout,
            settled_at_ms=bet.settled_at_ms,
        )


class PlaceBetResponse(BaseModel):
    bet_id: str
    balance: Decimal
    balance_units: int
    bet: BetSummary


class BetHistoryResponse(BaseModel):
    items: list[BetSummary]
    next_cursor: str | None
    has_more: bool


class TargetCellItem(BaseModel):
    id: str
    label: str
    direction: str
    multiplier: Decimal
    price_change_units: int

    @classmethod
    def from_cell(cls, cell: TargetCell) -> "TargetCellItem":
        return cls(
            id=cell.id,
            label=cell.label,
            direction=cell.direction.value,
            multiplier=bps_to_multiplier(cell.multiplier_bps),
            price_change_units=cell.price_change,
        )
