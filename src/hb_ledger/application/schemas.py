"""Pydantic schemas and cursor utilities for hb_ledger API."""

import base64
import json
from decimal import Decimal

from pydantic import BaseModel, Field

from src.hb_common.amounts import from_units
from src.hb_ledger.domain.models import AuditEntry

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int | str) -> str:
    """Encode the last seen key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen integer id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ChainMovementRequest(BaseModel):
    address: str = Field(..., min_length=3, max_length=128)
    amount: Decimal = Field(..., gt=0, decimal_places=8, description="Amount in whole coins")
    transaction_hash: str = Field(..., min_length=1, max_length=128)


class DepositRequest(ChainMovementRequest):
    pass


class WithdrawRequest(ChainMovementRequest):
    pass


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    address: str
    balance: Decimal
    balance_units: int

    @classmethod
    def from_units(cls, address: str, balance: int) -> "BalanceResponse":
        return cls(address=address, balance=from_units(balance), balance_units=balance)


class MovementResponse(BaseModel):
    """Result of recordDeposit / recordWithdrawal.

    duplicate=True means the transaction had already been applied and this
    call changed nothing; audit_entry_id is then the original entry's id.
    """
    address: str
    balance: Decimal
    balance_units: int
    amount_units: int
    transaction_hash: str
    audit_entry_id: int | None
    duplicate: bool = False


class AuditEntryItem(BaseModel):
    id: int
    operation_type: str
    amount: Decimal
    amount_units: int
    balance_before_units: int
    balance_after_units: int
    transaction_hash: str | None
    bet_id: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_entry(cls, e: AuditEntry) -> "AuditEntryItem":
        return cls(
            id=e.id,
            operation_type=e.operation_type,
            amount=from_units(e.amount),
            amount_units=e.amount,
            balance_before_units=e.balance_before,
            balance_after_units=e.balance_after,
            transaction_hash=e.transaction_hash,
            bet_id=e.bet_id,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class AuditResponse(BaseModel):
    items: list[AuditEntryItem]
    next_cursor: str | None
    has_more: bool
