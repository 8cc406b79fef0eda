"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import Settings, get_settings
from src.container import build_container
from src.hb_admin.api.router import router as admin_router
from src.hb_betting.api.router import router as bets_router
from src.hb_chain.infrastructure.sui_client import SuiRpcClient, SuiTreasuryEventSource
from src.hb_common.database import build_session_factory, create_engine_from_settings
from src.hb_common.enums import Asset
from src.hb_common.errors import AppError
from src.hb_common.redis_client import close_redis, create_redis
from src.hb_common.response import error_response
from src.hb_gateway.middleware.request_log import RequestLogMiddleware
from src.hb_ledger.api.router import router as balance_router
from src.hb_oracle.application.feed import PriceFeedPoller
from src.hb_oracle.infrastructure.hermes_client import HermesClient

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: connect, wire services, start workers. Shutdown: the reverse."""
    settings: Settings = app.state.settings
    engine = create_engine_from_settings(settings)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    redis = create_redis(settings.REDIS_URL) if settings.SETTLEMENT_LEADER_LOCK else None
    hermes = HermesClient(settings.PYTH_HERMES_URL, settings.HTTP_TIMEOUT_SECONDS)
    sui = None
    chain_source = None
    if settings.TREASURY_PACKAGE_ID:
        sui = SuiRpcClient(settings.SUI_RPC_URL, settings.HTTP_TIMEOUT_SECONDS)
        chain_source = SuiTreasuryEventSource(
            sui,
            settings.TREASURY_PACKAGE_ID,
            settings.TREASURY_OBJECT_ID,
            coin_decimals=settings.COIN_DECIMALS,
            page_size=settings.CHAIN_EVENT_PAGE_SIZE,
        )

    container = build_container(
        settings,
        build_session_factory(engine),
        hermes=hermes,
        chain_source=chain_source,
        redis=redis,
    )
    app.state.container = container

    workers = []
    if settings.PRICE_FEED_ENABLED:
        workers.append(
            PriceFeedPoller(
                hermes,
                container.price_history,
                [Asset(a) for a in settings.PRICE_ASSETS],
                settings.PRICE_POLL_INTERVAL_SECONDS,
            )
        )
    if settings.SETTLEMENT_ENABLED:
        workers.append(container.settlement)
    if settings.CHAIN_POLL_ENABLED and chain_source is not None:
        workers.append(container.chain_reconciler)
    if settings.RECONCILE_INTERVAL_SECONDS > 0 and chain_source is not None:
        workers.append(container.reconciliation)
    tasks = [asyncio.create_task(w.run(), name=type(w).__name__) for w in workers]

    yield

    for worker in workers:
        worker.stop()
    await asyncio.gather(*tasks, return_exceptions=True)
    await hermes.aclose()
    if sui is not None:
        await sui.aclose()
    await close_redis(redis)
    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.APP_NAME, version=VERSION, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.warning("%s failed: %s", request.url.path, exc.message)
        resp = error_response(exc.code, exc.message)
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
        return JSONResponse(
            status_code=exc.http_status,
            content=resp.model_dump(),
        )

    app.include_router(balance_router, prefix="/api/v1")
    app.include_router(bets_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
