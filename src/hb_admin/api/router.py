"""Admin REST API — reconciliation, invariant checks, overdue settlements."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import ServiceContainer, get_container
from src.hb_admin.application.schemas import OverdueBetsResponse, ReconcileRequest
from src.hb_betting.application.schemas import BetSummary
from src.hb_common.amounts import to_units
from src.hb_common.database import get_db_session
from src.hb_common.response import ApiResponse, success_response
from src.hb_gateway.auth.dependencies import require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/reconcile")
async def reconcile(
    body: ReconcileRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    strict: bool = Query(False, description="Answer 409 on any discrepancy"),
) -> ApiResponse:
    data = await container.reconciliation.reconcile(
        db, to_units(body.expected_treasury_balance), strict=strict
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/reconcile/chain")
async def reconcile_with_chain(
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    strict: bool = Query(False, description="Answer 409 on any discrepancy"),
) -> ApiResponse:
    data = await container.reconciliation.reconcile_with_chain(db, strict=strict)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/invariants")
async def verify_invariants(
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await container.reconciliation.verify_audit_chains(db)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/settlement/overdue")
async def list_overdue(
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    bets = await container.settlement.list_overdue(db)
    data = OverdueBetsResponse(items=[BetSummary.from_bet(b) for b in bets])
    return success_response(data.model_dump(mode="json"), request)
