"""hb_ledger REST API — balance, chain movements and audit trail."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import ServiceContainer, get_container
from src.hb_common.amounts import to_units
from src.hb_common.database import get_db_session
from src.hb_common.enums import OperationType
from src.hb_common.response import ApiResponse, success_response
from src.hb_ledger.application.schemas import DepositRequest, WithdrawRequest

router = APIRouter(prefix="/balance", tags=["balance"])


@router.get("/{address}")
async def get_balance(
    address: str,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await container.ledger.get_balance(db, address)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/deposit")
async def record_deposit(
    body: DepositRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await container.ledger.record_deposit(
        db, body.address, to_units(body.amount), body.transaction_hash
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/withdraw")
async def record_withdrawal(
    body: WithdrawRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await container.ledger.record_withdrawal(
        db, body.address, to_units(body.amount), body.transaction_hash
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{address}/audit")
async def list_audit(
    address: str,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    operation_type: OperationType | None = Query(None, description="Filter by operation"),
) -> ApiResponse:
    data = await container.ledger.list_audit(
        db, address, cursor, limit, operation_type.value if operation_type else None
    )
    return success_response(data.model_dump(mode="json"), request)
