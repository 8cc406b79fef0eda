"""ChainEventReconciler — applies treasury events to the ledger exactly once.

Delivery from the chain is at-least-once, so every event is keyed by its
transaction hash: a replay hits the ledger's idempotence check and counts as
a successful DUPLICATE. Malformed events are dropped, overdrafts rejected,
and storage outages retried with backoff before the whole page is abandoned
for a later poll.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.hb_chain.domain.models import (
    ChainApplyStats,
    ChainEvent,
    ChainEventSource,
    validate_event,
)
from src.hb_common.database import unit_of_work
from src.hb_common.enums import ApplyOutcome, ChainEventType
from src.hb_common.errors import (
    ChainUnavailableError,
    DuplicateTransactionError,
    InsufficientFundsError,
    MalformedChainEventError,
    StorageUnavailableError,
)
from src.hb_common.locks import AddressLocks
from src.hb_common.retry import storage_retrying
from src.hb_ledger.domain.repository import LedgerRepositoryProtocol
from src.hb_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class ChainEventReconciler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: AddressLocks,
        source: ChainEventSource | None = None,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        poll_interval_seconds: float = 5.0,
        retry_attempts: int = 5,
        retry_max_wait_seconds: float = 10.0,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks
        self._source = source
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._interval = poll_interval_seconds
        self._retry_attempts = retry_attempts
        self._retry_max_wait = retry_max_wait_seconds
        self._cursor: dict[str, Any] | None = None
        self._stop = asyncio.Event()

    @property
    def cursor(self) -> dict[str, Any] | None:
        return self._cursor

    async def apply(self, event: ChainEvent) -> ApplyOutcome:
        try:
            validate_event(event)
        except MalformedChainEventError as exc:
            logger.warning("Dropping chain event %s: %s", event.transaction_hash, exc.message)
            return ApplyOutcome.DROPPED

        retrying = storage_retrying(self._retry_attempts, self._retry_max_wait)
        try:
            return await retrying(self._apply_once, event)
        except StorageUnavailableError:
            logger.error(
                "Storage retries exhausted for chain event %s; will re-fetch",
                event.transaction_hash,
            )
            raise

    async def run_once(self) -> ChainApplyStats:
        """Drain every page available from the cursor.

        The cursor only moves past a page once each of its events has an
        outcome; an exception leaves it where it was.
        """
        if self._source is None:
            raise ChainUnavailableError("no chain event source configured")
        stats = ChainApplyStats()
        while True:
            page = await self._source.fetch(self._cursor)
            for event in page.events:
                outcome = await self.apply(event)
                if outcome == ApplyOutcome.APPLIED:
                    stats.applied += 1
                elif outcome == ApplyOutcome.DUPLICATE:
                    stats.duplicate += 1
                elif outcome == ApplyOutcome.DROPPED:
                    stats.dropped += 1
                else:
                    stats.rejected += 1
            if page.next_cursor is not None:
                self._cursor = page.next_cursor
            if not page.has_more:
                break
        if stats.applied or stats.rejected or stats.dropped:
            logger.info(
                "Chain poll: %d applied, %d duplicate, %d dropped, %d rejected",
                stats.applied, stats.duplicate, stats.dropped, stats.rejected,
            )
        return stats

    async def run(self) -> None:
        logger.info("Chain event poller started (interval %.1fs)", self._interval)
        while not self._stop.is_set():
            try:
                await self.run_once()
            except (ChainUnavailableError, StorageUnavailableError) as exc:
                logger.warning("Chain poll failed: %s", exc.message)
            except Exception:
                logger.exception("Chain poll crashed")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Chain event poller stopped")

    def stop(self) -> None:
        self._stop.set()

    async def _apply_once(self, event: ChainEvent) -> ApplyOutcome:
        # validate_event() has already guaranteed these are set.
        address: str = event.address  # type: ignore[assignment]
        amount: int = event.amount  # type: ignore[assignment]
        tx_hash: str = event.transaction_hash  # type: ignore[assignment]

        async with self._session_factory() as db:
            try:
                async with self._locks.hold(address):
                    async with unit_of_work(db):
                        if event.event_type == ChainEventType.DEPOSIT.value:
                            mutation = await self._ledger.credit_for_deposit(
                                db, address, amount, tx_hash
                            )
                        else:
                            mutation = await self._ledger.debit_for_withdrawal(
                                db, address, amount, tx_hash
                            )
            except DuplicateTransactionError:
                logger.debug("Chain event %s already applied", tx_hash)
                return ApplyOutcome.DUPLICATE
            except InsufficientFundsError as exc:
                logger.error(
                    "Rejected withdrawal %s for %s: %s", tx_hash, address, exc.message
                )
                return ApplyOutcome.REJECTED

        logger.info(
            "Applied %s %s: %s %d units -> %d",
            event.event_type, tx_hash, address, amount, mutation.new_balance,
        )
        return ApplyOutcome.APPLIED
