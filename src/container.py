"""Service wiring.

build_container() constructs every service explicitly from Settings and the
externally created clients; main.py attaches the result to app.state and
routers reach it through the get_container dependency.
"""

from collections.abc import Callable
from dataclasses import dataclass

import redis.asyncio as aioredis
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.hb_admin.application.service import ReconciliationReporter
from src.hb_betting.application.admission import BetAdmissionService
from src.hb_betting.application.settlement import SettlementEngine
from src.hb_chain.application.reconciler import ChainEventReconciler
from src.hb_chain.domain.models import ChainEventSource
from src.hb_common.datetime_utils import now_ms
from src.hb_common.id_generator import SnowflakeIdGenerator
from src.hb_common.locks import AddressLocks
from src.hb_common.redis_client import RedisLeaderLock
from src.hb_ledger.application.service import LedgerApplicationService
from src.hb_oracle.application.oracle import HermesPriceOracle
from src.hb_oracle.domain.models import PriceOracle
from src.hb_oracle.infrastructure.hermes_client import HermesClient
from src.hb_oracle.infrastructure.price_history import PriceHistory

SETTLEMENT_LEADER_KEY = "settlement:leader"


@dataclass
class ServiceContainer:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    locks: AddressLocks
    price_history: PriceHistory
    oracle: PriceOracle
    ledger: LedgerApplicationService
    admission: BetAdmissionService
    settlement: SettlementEngine
    chain_reconciler: ChainEventReconciler
    reconciliation: ReconciliationReporter


def build_container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    oracle: PriceOracle | None = None,
    hermes: HermesClient | None = None,
    chain_source: ChainEventSource | None = None,
    redis: aioredis.Redis | None = None,
    clock: Callable[[], int] = now_ms,
) -> ServiceContainer:
    locks = AddressLocks()
    history = PriceHistory(window_ms=settings.PRICE_HISTORY_SECONDS * 1000)
    if oracle is None:
        oracle = HermesPriceOracle(
            history, hermes, max_age_ms=settings.PRICE_MAX_AGE_SECONDS * 1000, clock=clock
        )

    leader_lock = None
    if redis is not None and settings.SETTLEMENT_LEADER_LOCK:
        leader_lock = RedisLeaderLock(
            redis, SETTLEMENT_LEADER_KEY, settings.SETTLEMENT_LEADER_TTL_SECONDS * 1000
        )

    return ServiceContainer(
        settings=settings,
        session_factory=session_factory,
        locks=locks,
        price_history=history,
        oracle=oracle,
        ledger=LedgerApplicationService(locks),
        admission=BetAdmissionService(
            locks,
            oracle,
            SnowflakeIdGenerator(settings.NODE_ID),
            round_duration_seconds=settings.ROUND_DURATION_SECONDS,
            clock=clock,
        ),
        settlement=SettlementEngine(
            session_factory,
            locks,
            oracle,
            grace_seconds=settings.SETTLEMENT_GRACE_SECONDS,
            max_delay_seconds=settings.SETTLEMENT_MAX_DELAY_SECONDS,
            batch_size=settings.SETTLEMENT_BATCH_SIZE,
            scan_interval_seconds=settings.SETTLEMENT_SCAN_INTERVAL_SECONDS,
            leader_lock=leader_lock,
            retry_attempts=settings.STORAGE_RETRY_ATTEMPTS,
            retry_max_wait_seconds=settings.STORAGE_RETRY_MAX_WAIT_SECONDS,
            clock=clock,
        ),
        chain_reconciler=ChainEventReconciler(
            session_factory,
            locks,
            chain_source,
            poll_interval_seconds=settings.CHAIN_POLL_INTERVAL_SECONDS,
            retry_attempts=settings.STORAGE_RETRY_ATTEMPTS,
            retry_max_wait_seconds=settings.STORAGE_RETRY_MAX_WAIT_SECONDS,
        ),
        reconciliation=ReconciliationReporter(
            session_factory,
            chain_source,
            interval_seconds=settings.RECONCILE_INTERVAL_SECONDS,
        ),
    )


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency: the container main.py attached to app.state."""
    container: ServiceContainer = request.app.state.container
    return container
