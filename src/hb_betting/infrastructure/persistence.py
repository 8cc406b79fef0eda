"""BetRepository — bets table persistence.

Bet rows are written once by admission and transitioned once by settlement;
the transition is a conditional UPDATE on status = 'PENDING', so a second
settlement attempt simply matches no row.
"""

from typing import Any

from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_betting.domain.models import Bet, Resolution
from src.hb_betting.infrastructure.db_models import bets_table
from src.hb_common.enums import BetStatus

_b = bets_table.c

_BET_COLUMNS = (
    _b.id,
    _b.address,
    _b.asset,
    _b.amount,
    _b.direction,
    _b.multiplier_bps,
    _b.price_change_target,
    _b.reference_price,
    _b.placed_at_ms,
    _b.deadline_ms,
    _b.status,
    _b.target_id,
    _b.end_price,
    _b.end_price_at_ms,
    _b.payout,
    _b.settled_at_ms,
    _b.created_at,
    _b.updated_at,
)


def _row_to_bet(row: Any) -> Bet:
    return Bet(
        id=row.id,
        address=row.address,
        asset=row.asset,
        amount=row.amount,
        direction=row.direction,
        multiplier_bps=row.multiplier_bps,
        price_change_target=row.price_change_target,
        reference_price=row.reference_price,
        placed_at_ms=row.placed_at_ms,
        deadline_ms=row.deadline_ms,
        status=row.status,
        target_id=row.target_id,
        end_price=row.end_price,
        end_price_at_ms=row.end_price_at_ms,
        payout=row.payout,
        settled_at_ms=row.settled_at_ms,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class BetRepository:
    async def insert(self, db: AsyncSession, bet: Bet) -> Bet:
        stmt = (
            insert(bets_table)
            .values(
                id=bet.id,
                address=bet.address,
                asset=bet.asset,
                amount=bet.amount,
                direction=bet.direction,
                multiplier_bps=bet.multiplier_bps,
                price_change_target=bet.price_change_target,
                reference_price=bet.reference_price,
                placed_at_ms=bet.placed_at_ms,
                deadline_ms=bet.deadline_ms,
                status=BetStatus.PENDING.value,
                target_id=bet.target_id,
                payout=0,
            )
            .returning(*_BET_COLUMNS)
        )
        row = (await db.execute(stmt)).fetchone()
        return _row_to_bet(row)

    async def get(self, db: AsyncSession, bet_id: str) -> Bet | None:
        row = (await db.execute(select(*_BET_COLUMNS).where(_b.id == bet_id))).fetchone()
        return _row_to_bet(row) if row else None

    async def list_by_address(
        self,
        db: AsyncSession,
        address: str,
        cursor_id: str | None,
        limit: int,
        status: str | None,
    ) -> list[Bet]:
        """Newest first; fixed-width snowflake ids sort by placement time as strings."""
        stmt = select(*_BET_COLUMNS).where(_b.address == address)
        if cursor_id is not None:
            stmt = stmt.where(_b.id < cursor_id)
        if status is not None:
            stmt = stmt.where(_b.status == status)
        stmt = stmt.order_by(_b.id.desc()).limit(limit)
        rows = (await db.execute(stmt)).fetchall()
        return [_row_to_bet(row) for row in rows]

    async def list_due(
        self,
        db: AsyncSession,
        now_ms: int,
        limit: int,
        after: tuple[int, str] | None = None,
    ) -> list[Bet]:
        """Pending bets whose deadline has passed, oldest deadline first.

        `after` is a (deadline_ms, id) keyset: only bets strictly past it are
        returned, so a scan can page beyond bets it had to defer.
        """
        stmt = select(*_BET_COLUMNS).where(
            _b.status == BetStatus.PENDING.value, _b.deadline_ms <= now_ms
        )
        if after is not None:
            after_deadline, after_id = after
            stmt = stmt.where(
                or_(
                    _b.deadline_ms > after_deadline,
                    and_(_b.deadline_ms == after_deadline, _b.id > after_id),
                )
            )
        stmt = stmt.order_by(_b.deadline_ms, _b.id).limit(limit)
        rows = (await db.execute(stmt)).fetchall()
        return [_row_to_bet(row) for row in rows]

    async def mark_resolved(
        self,
        db: AsyncSession,
        bet_id: str,
        resolution: Resolution,
        end_price_at_ms: int,
        settled_at_ms: int,
    ) -> Bet | None:
        """PENDING -> WON/LOST. Returns None if the bet was no longer pending."""
        stmt = (
            update(bets_table)
            .where(_b.id == bet_id, _b.status == BetStatus.PENDING.value)
            .values(
                status=resolution.status,
                end_price=resolution.end_price,
                end_price_at_ms=end_price_at_ms,
                payout=resolution.payout,
                settled_at_ms=settled_at_ms,
                updated_at=func.now(),
            )
            .returning(*_BET_COLUMNS)
        )
        row = (await db.execute(stmt)).fetchone()
        return _row_to_bet(row) if row else None
