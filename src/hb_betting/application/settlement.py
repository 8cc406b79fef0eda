"""SettlementEngine — resolves PENDING bets once their deadline has passed.

Flow per due bet:
  1. Ask the oracle for the first price at or after the deadline, bounded by
     the grace window. No sample -> the bet stays PENDING for the next scan.
  2. One transaction under the address lock: conditional PENDING -> WON/LOST
     on the bet row, then the payout credit (or the zero-amount loss record).

Step 1 never runs inside a transaction. Step 2 is idempotent: a bet already
resolved by another scan or another replica matches no row and is skipped.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.hb_betting.domain.models import Bet
from src.hb_betting.domain.outcome import resolve
from src.hb_betting.domain.repository import BetRepositoryProtocol
from src.hb_betting.infrastructure.persistence import BetRepository
from src.hb_common.database import unit_of_work
from src.hb_common.datetime_utils import now_ms
from src.hb_common.enums import Asset
from src.hb_common.errors import BetNotFoundError, PriceUnavailableError, StorageUnavailableError
from src.hb_common.locks import AddressLocks
from src.hb_common.redis_client import RedisLeaderLock
from src.hb_common.retry import storage_retrying
from src.hb_ledger.domain.repository import LedgerRepositoryProtocol
from src.hb_ledger.infrastructure.persistence import LedgerRepository
from src.hb_oracle.domain.models import PriceOracle

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    scanned: int = 0
    settled: int = 0
    deferred: int = 0
    overdue: list[str] = field(default_factory=list)


class SettlementEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: AddressLocks,
        oracle: PriceOracle,
        grace_seconds: int = 5,
        max_delay_seconds: int = 120,
        batch_size: int = 100,
        scan_interval_seconds: float = 1.0,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        leader_lock: RedisLeaderLock | None = None,
        retry_attempts: int = 5,
        retry_max_wait_seconds: float = 10.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks
        self._oracle = oracle
        self._grace_ms = grace_seconds * 1000
        self._max_delay_ms = max_delay_seconds * 1000
        self._batch_size = batch_size
        self._interval = scan_interval_seconds
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._leader = leader_lock
        self._retry_attempts = retry_attempts
        self._retry_max_wait = retry_max_wait_seconds
        self._clock = clock
        self._stop = asyncio.Event()

    async def scan_once(self, now: int | None = None) -> ScanReport:
        now = self._clock() if now is None else now
        report = ScanReport()

        after: tuple[int, str] | None = None
        while True:
            async with self._session_factory() as db:
                due = await self._bets.list_due(db, now, self._batch_size, after)
            report.scanned += len(due)
            await self._settle_batch(due, now, report)
            if len(due) < self._batch_size:
                break
            # Deferred bets stay PENDING; page past them instead of re-reading them.
            after = (due[-1].deadline_ms, due[-1].id)

        if report.scanned:
            logger.info(
                "Settlement scan: %d due, %d settled, %d deferred, %d overdue",
                report.scanned, report.settled, report.deferred, len(report.overdue),
            )
        return report

    async def _settle_batch(self, due: list[Bet], now: int, report: ScanReport) -> None:
        for bet in due:
            try:
                sample = await self._oracle.get_price(
                    Asset(bet.asset), bet.deadline_ms, self._grace_ms
                )
            except PriceUnavailableError as exc:
                report.deferred += 1
                if now - bet.deadline_ms > self._max_delay_ms:
                    report.overdue.append(bet.id)
                    logger.error(
                        "Bet %s overdue by %d ms, still no price: %s",
                        bet.id, now - bet.deadline_ms, exc.message,
                    )
                else:
                    logger.debug("Bet %s deferred: %s", bet.id, exc.message)
                continue

            try:
                settled = await self._settle_with_retry(bet, sample.price, sample.publish_time_ms)
            except StorageUnavailableError:
                logger.error("Storage retries exhausted settling bet %s; left pending", bet.id)
                report.deferred += 1
                continue
            if settled is not None:
                report.settled += 1

    async def settle_bet(self, bet_id: str, end_price: int, end_price_at_ms: int) -> Bet | None:
        """Resolve one bet against end_price. Returns None if it was already terminal."""
        async with self._session_factory() as db:
            bet = await self._bets.get(db, bet_id)
            if bet is None:
                raise BetNotFoundError(bet_id)
            if not bet.is_pending:
                return None
            resolution = resolve(bet, end_price)

            async with self._locks.hold(bet.address):
                async with unit_of_work(db):
                    settled = await self._bets.mark_resolved(
                        db, bet_id, resolution, end_price_at_ms, self._clock()
                    )
                    if settled is None:
                        logger.info("Bet %s already settled elsewhere", bet_id)
                        return None
                    if resolution.won:
                        await self._ledger.credit_for_payout(
                            db, bet.address, resolution.payout, bet_id
                        )
                    else:
                        await self._ledger.record_bet_loss(db, bet.address, bet_id)

        logger.info(
            "Bet %s %s: delta %d vs target %d, payout %d",
            bet_id, resolution.status, resolution.delta,
            bet.price_change_target, resolution.payout,
        )
        return settled

    async def list_overdue(self, db: AsyncSession, now: int | None = None) -> list[Bet]:
        """PENDING bets past their deadline by more than the max settlement delay."""
        now = self._clock() if now is None else now
        return await self._bets.list_due(db, now - self._max_delay_ms, self._batch_size)

    async def run(self) -> None:
        logger.info("Settlement engine started (interval %.1fs)", self._interval)
        while not self._stop.is_set():
            try:
                if self._leader is None or await self._leader.acquire_or_renew():
                    await self.scan_once()
            except StorageUnavailableError as exc:
                logger.warning("Settlement scan skipped: %s", exc.message)
            except Exception:
                logger.exception("Settlement scan failed")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        if self._leader is not None:
            await self._leader.release()
        logger.info("Settlement engine stopped")

    def stop(self) -> None:
        self._stop.set()

    async def _settle_with_retry(
        self, bet: Bet, end_price: int, end_price_at_ms: int
    ) -> Bet | None:
        retrying = storage_retrying(self._retry_attempts, self._retry_max_wait)
        return await retrying(self.settle_bet, bet.id, end_price, end_price_at_ms)
