"""Bet domain model — pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Bet:
    id: str
    address: str
    asset: str                       # BTC / SUI / SOL
    amount: int                      # stake, units
    direction: str                   # UP / DOWN
    multiplier_bps: int              # 20000 == 2.0x
    price_change_target: int         # signed units the price must move by
    reference_price: int             # units, price at placement
    placed_at_ms: int
    deadline_ms: int
    status: str = "PENDING"
    target_id: str | None = None
    end_price: int | None = None
    end_price_at_ms: int | None = None
    payout: int = 0
    settled_at_ms: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == "PENDING"


@dataclass(frozen=True)
class Resolution:
    """Outcome of one bet against one end price."""
    won: bool
    payout: int
    end_price: int
    delta: int

    @property
    def status(self) -> str:
        return "WON" if self.won else "LOST"
