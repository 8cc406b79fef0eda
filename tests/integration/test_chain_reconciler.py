"""ChainEventReconciler against a real SQL store with a scripted event source."""

from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.hb_chain.application.reconciler import ChainEventReconciler
from src.hb_chain.domain.models import ChainEvent, ChainEventPage
from src.hb_common.enums import ApplyOutcome
from src.hb_common.errors import ChainUnavailableError, StorageUnavailableError
from src.hb_common.locks import AddressLocks
from src.hb_ledger.domain.models import LedgerMutation
from src.hb_ledger.infrastructure.persistence import LedgerRepository

U = 10**8
ALICE = "0xa11ce"
BOB = "0xb0b"


def deposit(tx: str, amount: int = 100 * U, address: str = ALICE) -> ChainEvent:
    return ChainEvent("deposit", address, amount, tx)


def withdrawal(tx: str, amount: int, address: str = ALICE) -> ChainEvent:
    return ChainEvent("withdrawal", address, amount, tx)


class ScriptedSource:
    """Serves pre-built pages keyed by cursor; raises when told to."""

    def __init__(self, pages: list[ChainEventPage], treasury: int = 0) -> None:
        self.pages = pages
        self.treasury = treasury
        self.fetched: list[dict[str, Any] | None] = []
        self.fail_on: int | None = None

    async def fetch(self, cursor: dict[str, Any] | None) -> ChainEventPage:
        self.fetched.append(cursor)
        index = 0 if cursor is None else int(cursor["page"])
        if self.fail_on == index:
            raise ChainUnavailableError("rpc timeout")
        if index >= len(self.pages):
            return ChainEventPage(events=[], next_cursor=None)
        return self.pages[index]

    async def treasury_balance(self) -> int:
        return self.treasury


class FlakyLedgerRepository(LedgerRepository):
    """Fails the first `failures` deposit writes with a storage outage."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def credit_for_deposit(
        self, db: AsyncSession, address: str, amount: int, transaction_hash: str
    ) -> LedgerMutation:
        self.calls += 1
        if self.calls <= self.failures:
            raise StorageUnavailableError("connection reset")
        return await super().credit_for_deposit(db, address, amount, transaction_hash)


def _reconciler(
    session_factory: async_sessionmaker[AsyncSession],
    source: ScriptedSource | None = None,
    ledger_repo: LedgerRepository | None = None,
) -> ChainEventReconciler:
    return ChainEventReconciler(
        session_factory,
        AddressLocks(),
        source,
        ledger_repo=ledger_repo,
        retry_attempts=3,
        retry_max_wait_seconds=0.01,
    )


async def _balance(db: AsyncSession, address: str) -> int:
    account = await LedgerRepository().get_account(db, address)
    return account.balance if account else 0


class TestApply:
    async def test_deposit_applied(
        self, session_factory: async_sessionmaker[AsyncSession], db: AsyncSession
    ) -> None:
        reconciler = _reconciler(session_factory)

        assert await reconciler.apply(deposit("0xA")) == ApplyOutcome.APPLIED
        assert await _balance(db, ALICE) == 100 * U

    async def test_replay_is_duplicate_and_applied_once(
        self, session_factory: async_sessionmaker[AsyncSession], db: AsyncSession
    ) -> None:
        reconciler = _reconciler(session_factory)
        await reconciler.apply(deposit("0xA"))

        assert await reconciler.apply(deposit("0xA")) == ApplyOutcome.DUPLICATE
        assert await _balance(db, ALICE) == 100 * U
        audit = await LedgerRepository().list_audit_entries(db, ALICE, None, 10, None)
        assert len(audit) == 1

    @pytest.mark.parametrize(
        "event",
        [
            ChainEvent("deposit", ALICE, 0, "0xZERO"),
            ChainEvent("deposit", ALICE, 5 * U, None),
            ChainEvent("deposit", "not-an-address", 5 * U, "0xADDR"),
            ChainEvent("stake", ALICE, 5 * U, "0xTYPE"),
        ],
    )
    async def test_malformed_dropped(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        db: AsyncSession,
        event: ChainEvent,
    ) -> None:
        reconciler = _reconciler(session_factory)

        assert await reconciler.apply(event) == ApplyOutcome.DROPPED
        assert await LedgerRepository().total_balance(db) == 0

    async def test_withdrawal_overdraft_rejected(
        self, session_factory: async_sessionmaker[AsyncSession], db: AsyncSession
    ) -> None:
        reconciler = _reconciler(session_factory)
        await reconciler.apply(deposit("0xA", 10 * U))

        assert await reconciler.apply(withdrawal("0xB", 11 * U)) == ApplyOutcome.REJECTED
        assert await _balance(db, ALICE) == 10 * U

    async def test_withdrawal_applied(
        self, session_factory: async_sessionmaker[AsyncSession], db: AsyncSession
    ) -> None:
        reconciler = _reconciler(session_factory)
        await reconciler.apply(deposit("0xA", 10 * U))

        assert await reconciler.apply(withdrawal("0xB", 4 * U)) == ApplyOutcome.APPLIED
        assert await _balance(db, ALICE) == 6 * U

    async def test_storage_outage_retried(
        self, session_factory: async_sessionmaker[AsyncSession], db: AsyncSession
    ) -> None:
        repo = FlakyLedgerRepository(failures=1)
        reconciler = _reconciler(session_factory, ledger_repo=repo)

        assert await reconciler.apply(deposit("0xA")) == ApplyOutcome.APPLIED
        assert repo.calls == 2
        assert await _balance(db, ALICE) == 100 * U

    async def test_storage_outage_exhausted_raises(
        self, session_factory: async_sessionmaker[AsyncSession], db: AsyncSession
    ) -> None:
        repo = FlakyLedgerRepository(failures=10)
        reconciler = _reconciler(session_factory, ledger_repo=repo)

        with pytest.raises(StorageUnavailableError):
            await reconciler.apply(deposit("0xA"))
        assert repo.calls == 3
        assert await _balance(db, ALICE) == 0


class TestRunOnce:
    async def test_drains_pages_and_advances_cursor(
        self, session_factory: async_sessionmaker[AsyncSession], db: AsyncSession
    ) -> None:
        source = ScriptedSource([
            ChainEventPage(
                events=[deposit("0x1"), deposit("0x2", 5 * U, BOB)],
                next_cursor={"page": 1},
                has_more=True,
            ),
            ChainEventPage(
                events=[
                    deposit("0x1"),
                    withdrawal("0x3", 500 * U),
                    ChainEvent("deposit", None, U, "0x4"),
                ],
                next_cursor={"page": 2},
                has_more=False,
            ),
        ])
        reconciler = _reconciler(session_factory, source)

        stats = await reconciler.run_once()

        assert (stats.applied, stats.duplicate, stats.rejected, stats.dropped) == (2, 1, 1, 1)
        assert reconciler.cursor == {"page": 2}
        assert await _balance(db, ALICE) == 100 * U
        assert await _balance(db, BOB) == 5 * U

    async def test_second_poll_resumes_from_cursor(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        source = ScriptedSource([
            ChainEventPage(events=[deposit("0x1")], next_cursor={"page": 1}),
        ])
        reconciler = _reconciler(session_factory, source)

        await reconciler.run_once()
        stats = await reconciler.run_once()

        assert source.fetched == [None, {"page": 1}]
        assert stats.applied == 0

    async def test_fetch_failure_keeps_cursor(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        source = ScriptedSource([
            ChainEventPage(events=[deposit("0x1")], next_cursor={"page": 1}, has_more=True),
        ])
        source.fail_on = 1
        reconciler = _reconciler(session_factory, source)

        with pytest.raises(ChainUnavailableError):
            await reconciler.run_once()
        assert reconciler.cursor == {"page": 1}

    async def test_storage_failure_does_not_advance_past_page(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        source = ScriptedSource([
            ChainEventPage(events=[deposit("0x1")], next_cursor={"page": 1}),
        ])
        reconciler = _reconciler(
            session_factory, source, ledger_repo=FlakyLedgerRepository(failures=10)
        )

        with pytest.raises(StorageUnavailableError):
            await reconciler.run_once()
        assert reconciler.cursor is None

    async def test_without_source(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        with pytest.raises(ChainUnavailableError):
            await _reconciler(session_factory).run_once()
