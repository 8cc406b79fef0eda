"""hb_betting REST API — place bets, bet history, target presets."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import ServiceContainer, get_container
from src.hb_betting.application.schemas import PlaceBetRequest, TargetCellItem
from src.hb_betting.domain.targets import DEFAULT_TARGET_CELLS
from src.hb_common.database import get_db_session
from src.hb_common.enums import BetStatus
from src.hb_common.response import ApiResponse, success_response

router = APIRouter(prefix="/bets", tags=["bets"])


@router.post("", status_code=201)
async def place_bet(
    body: PlaceBetRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await container.admission.place_bet_for_request(db, body)
    return success_response(data.model_dump(mode="json"), request)


@router.get("")
async def list_bets(
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    address: str = Query(..., min_length=3, max_length=128),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    status: BetStatus | None = Query(None, description="Filter by status"),
) -> ApiResponse:
    data = await container.admission.list_bets(
        db, address, cursor, limit, status.value if status else None
    )
    return success_response(data.model_dump(mode="json"), request)


# Declared before /{bet_id} so "targets" is not captured as an id.
@router.get("/targets")
async def list_targets(request: Request) -> ApiResponse:
    items = [TargetCellItem.from_cell(c).model_dump(mode="json") for c in DEFAULT_TARGET_CELLS]
    return success_response({"items": items}, request)


@router.get("/{bet_id}")
async def get_bet(
    bet_id: str,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await container.admission.get_bet(db, bet_id)
    return success_response(data.model_dump(mode="json"), request)
