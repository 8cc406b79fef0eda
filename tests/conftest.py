"""Shared test fixtures.

Store-backed tests run against a throwaway SQLite file per test
(sqlite+aiosqlite), built from the ORM metadata, so the ledger's conditional
UPDATEs and unique constraints execute as real SQL.
"""

import os

os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

import src.hb_betting.infrastructure.db_models  # noqa: F401  (registers bets)
import src.hb_ledger.infrastructure.db_models  # noqa: F401  (registers accounts, audit_entries)
from config.settings import Settings
from src.container import ServiceContainer, build_container
from src.hb_common.database import Base, build_session_factory
from src.hb_common.enums import Asset
from src.hb_oracle.domain.models import PriceSample

ADMIN_KEY = "test-admin-key"
T0_MS = 1_760_000_000_000


class FakeClock:
    """Epoch-ms clock the tests move by hand."""

    def __init__(self, start_ms: int = T0_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        ADMIN_API_KEY=ADMIN_KEY,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        STORAGE_RETRY_ATTEMPTS=3,
        STORAGE_RETRY_MAX_WAIT_SECONDS=0.01,
    )


@pytest.fixture
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    eng = create_async_engine(settings.DATABASE_URL)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    clock: FakeClock,
) -> ServiceContainer:
    return build_container(settings, session_factory, clock=clock)


@pytest.fixture
def record_price(container: ServiceContainer) -> Callable[..., PriceSample]:
    """Feed a sample into the container's price history: record_price(50_000, at_ms)."""

    def _record(whole_price: int, publish_time_ms: int, asset: Asset = Asset.BTC) -> PriceSample:
        sample = PriceSample(
            asset=asset,
            price=whole_price * 10**8,
            confidence=0,
            publish_time_ms=publish_time_ms,
        )
        container.price_history.record(sample)
        return sample

    return _record


@pytest.fixture
async def client(container: ServiceContainer) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the test container (lifespan is not run)."""
    from src.main import app

    app.state.container = container
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
