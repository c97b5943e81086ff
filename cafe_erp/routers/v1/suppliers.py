"""Supplier CRUD router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.context import RequestContext, get_context
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.core.response import DataResponse, ListResponse, paginated
from cafe_erp.db.base import get_db
from cafe_erp.schemas.master_data import SupplierCreate, SupplierOut, SupplierUpdate
from cafe_erp.services.master_data import SupplierService

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


def _svc(session: AsyncSession, ctx: RequestContext) -> SupplierService:
    return SupplierService(session, ctx.tenant_id)


@router.get("", response_model=ListResponse[SupplierOut])
async def list_suppliers(
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    search: Optional[str] = Query(default=None),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, ctx).list_suppliers(
        pagination, is_active=is_active, search=search
    )
    return paginated(
        [SupplierOut.model_validate(s) for s in items],
        total, pagination.page, pagination.limit,
    )


@router.post("", response_model=DataResponse[SupplierOut], status_code=status.HTTP_201_CREATED)
async def create_supplier(
    body: SupplierCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    supplier = await _svc(session, ctx).create_supplier(body)
    return {"data": SupplierOut.model_validate(supplier)}


@router.get("/{supplier_id}", response_model=DataResponse[SupplierOut])
async def get_supplier(
    supplier_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    supplier = await _svc(session, ctx).get_supplier(supplier_id)
    return {"data": SupplierOut.model_validate(supplier)}


@router.patch("/{supplier_id}", response_model=DataResponse[SupplierOut])
async def update_supplier(
    supplier_id: str,
    body: SupplierUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    supplier = await _svc(session, ctx).update_supplier(supplier_id, body)
    return {"data": SupplierOut.model_validate(supplier)}


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_supplier(
    supplier_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, ctx).delete_supplier(supplier_id)
