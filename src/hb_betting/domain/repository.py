"""Repository Protocol — dependency inversion for testability."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_betting.domain.models import Bet, Resolution


class BetRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, bet: Bet) -> Bet: ...

    async def get(self, db: AsyncSession, bet_id: str) -> Bet | None: ...

    async def list_by_address(
        self,
        db: AsyncSession,
        address: str,
        cursor_id: str | None,
        limit: int,
        status: str | None,
    ) -> list[Bet]: ...

    async def list_due(
        self,
        db: AsyncSession,
        now_ms: int,
        limit: int,
        after: tuple[int, str] | None = None,
    ) -> list[Bet]: ...

    async def mark_resolved(
        self,
        db: AsyncSession,
        bet_id: str,
        resolution: Resolution,
        end_price_at_ms: int,
        settled_at_ms: int,
    ) -> Bet | None: ...
