"""ReconciliationReporter — compares the ledger with the on-chain treasury.

Discrepancies are reported and logged, never corrected: fixing one is an
operator decision, not something the service may do to balances.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.hb_admin.application.schemas import InvariantReport, ReconciliationReport
from src.hb_chain.domain.models import ChainEventSource
from src.hb_common.errors import ChainUnavailableError, ReconciliationDiscrepancyError
from src.hb_ledger.domain.invariants import check_audit_chains
from src.hb_ledger.domain.repository import LedgerRepositoryProtocol
from src.hb_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class ReconciliationReporter:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        source: ChainEventSource | None = None,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        interval_seconds: float = 0,
    ) -> None:
        self._session_factory = session_factory
        self._source = source
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._interval = interval_seconds
        self._stop = asyncio.Event()

    async def reconcile(
        self, db: AsyncSession, expected: int, strict: bool = False
    ) -> ReconciliationReport:
        """Sum every balance and compare with `expected` (units).

        strict=True raises ReconciliationDiscrepancyError instead of returning
        a non-ok report.
        """
        ledger_total = await self._ledger.total_balance(db)
        report = ReconciliationReport.from_units(ledger_total, expected)
        if report.ok:
            logger.info("Reconciliation ok: ledger total %d units", ledger_total)
        else:
            logger.warning(
                "Reconciliation discrepancy %d units (ledger %d, treasury %d)",
                report.discrepancy_units, ledger_total, expected,
            )
            if strict:
                raise ReconciliationDiscrepancyError(
                    report.discrepancy_units, ledger_total, expected
                )
        return report

    async def reconcile_with_chain(
        self, db: AsyncSession, strict: bool = False
    ) -> ReconciliationReport:
        if self._source is None:
            raise ChainUnavailableError("no treasury source configured")
        # Chain read first, before the ledger read.
        treasury = await self._source.treasury_balance()
        return await self.reconcile(db, treasury, strict=strict)

    async def verify_audit_chains(self, db: AsyncSession) -> InvariantReport:
        accounts = await self._ledger.list_accounts(db)
        entries = await self._ledger.list_audit_chain(db)
        violations = check_audit_chains(accounts, entries)
        return InvariantReport(
            ok=not violations, accounts_checked=len(accounts), violations=violations
        )

    async def run(self) -> None:
        if self._interval <= 0:
            return
        logger.info("Reconciliation reporter started (interval %.0fs)", self._interval)
        while not self._stop.is_set():
            try:
                async with self._session_factory() as db:
                    await self.reconcile_with_chain(db)
            except ChainUnavailableError as exc:
                logger.warning("Reconciliation skipped: %s", exc.message)
            except Exception:
                logger.exception("Reconciliation run failed")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Reconciliation reporter stopped")

    def stop(self) -> None:
        self._stop.set()
