"""Domain models for hb_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    address: str
    balance: int                     # units (8 dp), never negative
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class AuditEntry:
    id: int                          # BIGSERIAL, per-ledger total order
    address: str
    operation_type: str              # OperationType value
    amount: int                      # units, unsigned; sign follows operation_type
    balance_before: int
    balance_after: int
    transaction_hash: str | None = None
    bet_id: str | None = None
    created_at: datetime | None = None

    @property
    def signed_amount(self) -> int:
        return self.balance_after - self.balance_before


@dataclass
class LedgerMutation:
    """What one atomic ledger operation left behind."""
    account: Account
    entry: AuditEntry

    @property
    def new_balance(self) -> int:
        return self.account.balance
