"""SQLAlchemy ORM model for bets (migration 004)."""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.hb_common.database import Base


class BetORM(Base):
    __tablename__ = "bets"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bets_amount_gt_0"),
        CheckConstraint("multiplier_bps > 10000", name="ck_bets_multiplier_gt_1"),
        CheckConstraint("direction IN ('UP', 'DOWN')", name="ck_bets_direction"),
        CheckConstraint("status IN ('PENDING', 'WON', 'LOST')", name="ck_bets_status"),
        CheckConstraint("payout >= 0", name="ck_bets_payout_gte_0"),
        Index("idx_bets_status_deadline", "status", "deadline_ms"),
        Index("idx_bets_address_placed", "address", "placed_at_ms"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    address: Mapped[str] = mapped_column(String(128), nullable=False)
    asset: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    direction: Mapped[str] = mapped_column(String(4), nullable=False)
    multiplier_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    price_change_target: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reference_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    placed_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deadline_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="PENDING")
    target_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    end_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    end_price_at_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    payout: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    settled_at_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


bets_table = BetORM.__table__
