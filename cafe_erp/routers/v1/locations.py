"""Location CRUD router (outlets, central kitchens, warehouses)."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.context import RequestContext, get_context
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.core.response import DataResponse, ListResponse, paginated
from cafe_erp.db.base import get_db
from cafe_erp.schemas.master_data import LocationCreate, LocationOut, LocationUpdate
from cafe_erp.services.master_data import LocationService

router = APIRouter(prefix="/locations", tags=["Locations"])


def _svc(session: AsyncSession, ctx: RequestContext) -> LocationService:
    return LocationService(session, ctx.tenant_id)


@router.get("", response_model=ListResponse[LocationOut])
async def list_locations(
    location_type: Optional[str] = Query(default=None, alias="type"),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    search: Optional[str] = Query(default=None),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """List locations (paginated). Filter by ?type=outlet|central_kitchen|warehouse."""
    items, total = await _svc(session, ctx).list_locations(
        pagination, type=location_type, is_active=is_active, search=search
    )
    return paginated(
        [LocationOut.model_validate(loc) for loc in items],
        total, pagination.page, pagination.limit,
    )


@router.post("", response_model=DataResponse[LocationOut], status_code=status.HTTP_201_CREATED)
async def create_location(
    body: LocationCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    location = await _svc(session, ctx).create_location(body)
    return {"data": LocationOut.model_validate(location)}


@router.get("/{location_id}", response_model=DataResponse[LocationOut])
async def get_location(
    location_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    location = await _svc(session, ctx).get_location(location_id)
    return {"data": LocationOut.model_validate(location)}


@router.patch("/{location_id}", response_model=DataResponse[LocationOut])
async def update_location(
    location_id: str,
    body: LocationUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    location = await _svc(session, ctx).update_location(location_id, body)
    return {"data": LocationOut.model_validate(location)}


@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(
    location_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, ctx).delete_location(location_id)
