"""Product CRUD router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.context import RequestContext, get_context
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.core.response import DataResponse, ListResponse, paginated
from cafe_erp.db.base import get_db
from cafe_erp.schemas.master_data import ProductCreate, ProductOut, ProductUpdate
from cafe_erp.services.master_data import ProductService

router = APIRouter(prefix="/products", tags=["Products"])


def _svc(session: AsyncSession, ctx: RequestContext) -> ProductService:
    return ProductService(session, ctx.tenant_id)


@router.get("", response_model=ListResponse[ProductOut])
async def list_products(
    kind: Optional[str] = Query(default=None),
    is_perishable: Optional[bool] = Query(default=None, alias="isPerishable"),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    search: Optional[str] = Query(default=None, description="Matches SKU or name"),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, ctx).list_products(
        pagination, kind=kind, is_perishable=is_perishable, is_active=is_active, search=search
    )
    return paginated(
        [ProductOut.model_validate(p) for p in items],
        total, pagination.page, pagination.limit,
    )


@router.post("", response_model=DataResponse[ProductOut], status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    product = await _svc(session, ctx).create_product(body)
    return {"data": ProductOut.model_validate(product)}


@router.get("/{product_id}", response_model=DataResponse[ProductOut])
async def get_product(
    product_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    product = await _svc(session, ctx).get_product(product_id)
    return {"data": ProductOut.model_validate(product)}


@router.patch("/{product_id}", response_model=DataResponse[ProductOut])
async def update_product(
    product_id: str,
    body: ProductUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    product = await _svc(session, ctx).update_product(product_id, body)
    return {"data": ProductOut.model_validate(product)}


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, ctx).delete_product(product_id)
