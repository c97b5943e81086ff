"""POS router: shifts, cash-drawer movements and shift reconciliation."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.context import RequestContext, get_context
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.core.response import DataResponse, ListResponse, paginated
from cafe_erp.db.base import get_db
from cafe_erp.schemas.pos import (
    DrawerMovementCreate,
    DrawerMovementOut,
    ShiftClose,
    ShiftOpen,
    ShiftOut,
    ShiftSummaryOut,
)
from cafe_erp.services.pos import ShiftService

router = APIRouter(prefix="/pos", tags=["POS"])


def _svc(session: AsyncSession, ctx: RequestContext) -> ShiftService:
    return ShiftService(session, ctx.tenant_id)


@router.get("/shifts", response_model=ListResponse[ShiftOut])
async def list_shifts(
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    shift_status: Literal["open", "closed", "all"] = Query(default="all", alias="status"),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Shifts, newest first. Filter by ?status=open|closed."""
    items, total = await _svc(session, ctx).list_shifts(
        location_id=location_id,
        status=shift_status,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return paginated(
        [ShiftOut.model_validate(s) for s in items],
        total, pagination.page, pagination.limit,
    )


@router.post(
    "/shifts/open", response_model=DataResponse[ShiftOut], status_code=status.HTTP_201_CREATED,
)
async def open_shift(
    body: ShiftOpen,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Open a shift. Rejected with 409 when the location already has an open shift."""
    shift = await _svc(session, ctx).open_shift(body, ctx.user_id)
    return {"data": ShiftOut.model_validate(shift)}


@router.get("/shifts/{shift_id}", response_model=DataResponse[ShiftOut])
async def get_shift(
    shift_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    shift = await _svc(session, ctx).get_shift(shift_id)
    return {"data": ShiftOut.model_validate(shift)}


@router.get("/shifts/{shift_id}/summary", response_model=DataResponse[ShiftSummaryOut])
async def shift_summary(
    shift_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, ctx).shift_summary(shift_id)}


@router.post("/shifts/{shift_id}/close", response_model=DataResponse[ShiftOut])
async def close_shift(
    shift_id: str,
    body: ShiftClose,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Close a shift and record variance = actual cash - expected cash."""
    shift = await _svc(session, ctx).close_shift(shift_id, body, ctx.user_id)
    return {"data": ShiftOut.model_validate(shift)}


@router.post(
    "/shifts/{shift_id}/drawer-movements",
    response_model=DataResponse[DrawerMovementOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_drawer_movement(
    shift_id: str,
    body: DrawerMovementCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    movement = await _svc(session, ctx).add_drawer_movement(shift_id, body, ctx.user_id)
    return {"data": DrawerMovementOut.model_validate(movement)}


@router.get(
    "/shifts/{shift_id}/drawer-movements", response_model=DataResponse[list[DrawerMovementOut]],
)
async def list_drawer_movements(
    shift_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    movements = await _svc(session, ctx).list_drawer_movements(shift_id)
    return {"data": [DrawerMovementOut.model_validate(m) for m in movements]}
