"""SQLAlchemy ORM models for hb_ledger.

These map to tables created by Alembic migrations 002/003.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.hb_common.database import Base

# SQLite only autoincrements INTEGER PRIMARY KEY (used by the test store).
_BIGSERIAL = BigInteger().with_variant(Integer, "sqlite")


class AccountORM(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_gte_0"),
    )

    id: Mapped[int] = mapped_column(_BIGSERIAL, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class AuditEntryORM(Base):
    __tablename__ = "audit_entries"
    __table_args__ = (
        CheckConstraint(
            "operation_type IN ('deposit', 'withdrawal', 'bet_placed', 'bet_won', 'bet_lost')",
            name="ck_audit_operation_type",
        ),
        CheckConstraint("amount >= 0", name="ck_audit_amount_gte_0"),
        CheckConstraint("balance_after >= 0", name="ck_audit_balance_after_gte_0"),
        # Idempotence key for chain movements; NULL hashes never collide.
        UniqueConstraint("transaction_hash", "operation_type", name="uq_audit_tx_operation"),
        Index("idx_audit_address_id", "address", "id"),
        Index("idx_audit_bet_id", "bet_id"),
    )

    id: Mapped[int] = mapped_column(_BIGSERIAL, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.address"), nullable=False
    )
    operation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_before: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transaction_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    bet_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # NOTE: No updated_at, audit_entries is append-only


accounts_table = AccountORM.__table__
audit_entries_table = AuditEntryORM.__table__
