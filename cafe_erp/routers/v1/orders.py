"""Orders router: create/price, post to stock, void, payments and kitchen flow."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.context import RequestContext, get_context
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.core.response import DataResponse, ListResponse, ok, paginated
from cafe_erp.db.base import get_db
from cafe_erp.schemas.order import (
    KitchenStatusUpdate,
    OrderCreate,
    OrderItemOut,
    OrderOut,
    OrderQuoteOut,
    OrderUpdate,
    OrderVoid,
    PaymentCreate,
    PaymentOut,
    PrepStatusOut,
    PrepStatusUpdate,
)
from cafe_erp.services.orders import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


def _svc(session: AsyncSession, ctx: RequestContext) -> OrderService:
    return OrderService(session, ctx.tenant_id)


@router.get("", response_model=ListResponse[OrderOut])
async def list_orders(
    order_status: Optional[str] = Query(default=None, alias="status"),
    channel: Optional[str] = Query(default=None),
    order_type: Optional[str] = Query(default=None, alias="orderType"),
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    search: Optional[str] = Query(default=None, description="Matches order number or table"),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, ctx).list_orders(
        pagination,
        status=order_status,
        channel=channel,
        order_type=order_type,
        location_id=location_id,
        search=search,
    )
    return paginated(
        [OrderOut.model_validate(o) for o in items],
        total, pagination.page, pagination.limit,
    )


@router.post("", response_model=DataResponse[OrderOut], status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    order = await _svc(session, ctx).create_order(body, ctx.user_id)
    return {"data": OrderOut.model_validate(order)}


@router.get("/{order_id}", response_model=DataResponse[OrderOut])
async def get_order(
    order_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    order = await _svc(session, ctx).get_order(order_id)
    return {"data": OrderOut.model_validate(order)}


@router.patch("/{order_id}", response_model=DataResponse[OrderOut])
async def update_order(
    order_id: str,
    body: OrderUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    order = await _svc(session, ctx).update_order(order_id, body)
    return {"data": OrderOut.model_validate(order)}


@router.post("/{order_id}/quote", response_model=DataResponse[OrderQuoteOut])
async def quote_order(
    order_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, ctx).quote_order(order_id)}


@router.post("/{order_id}/post", response_model=DataResponse[OrderOut])
async def post_order(
    order_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Issue the order's items from stock (FEFO) and mark it posted."""
    order = await _svc(session, ctx).post_order(order_id, ctx.user_id)
    return ok(OrderOut.model_validate(order), "Order posted")


@router.post("/{order_id}/void", response_model=DataResponse[OrderOut])
async def void_order(
    order_id: str,
    body: OrderVoid,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    order = await _svc(session, ctx).void_order(order_id, body.reason, ctx.user_id)
    return ok(OrderOut.model_validate(order), "Order voided")


# ------------------------------------------------------------------
# Payments
# ------------------------------------------------------------------

@router.post(
    "/{order_id}/payments",
    response_model=DataResponse[list[PaymentOut]],
    status_code=status.HTTP_201_CREATED,
)
async def add_payment(
    order_id: str,
    body: PaymentCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    payments = await _svc(session, ctx).add_payment(order_id, body, ctx.user_id)
    return {"data": [PaymentOut.model_validate(p) for p in payments]}


@router.get("/{order_id}/payments", response_model=DataResponse[list[PaymentOut]])
async def list_payments(
    order_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    payments = await _svc(session, ctx).list_payments(order_id)
    return {"data": [PaymentOut.model_validate(p) for p in payments]}


# ------------------------------------------------------------------
# Kitchen
# ------------------------------------------------------------------

@router.patch("/{order_id}/kitchen-status", response_model=DataResponse[OrderOut])
async def update_kitchen_status(
    order_id: str,
    body: KitchenStatusUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    order = await _svc(session, ctx).update_kitchen_status(order_id, body)
    return {"data": OrderOut.model_validate(order)}


@router.patch("/items/{item_id}/prep-status", response_model=DataResponse[PrepStatusOut])
async def update_item_prep_status(
    item_id: str,
    body: PrepStatusUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    item, kitchen_status = await _svc(session, ctx).update_item_prep_status(item_id, body)
    return {
        "data": PrepStatusOut(
            item=OrderItemOut.model_validate(item), order_kitchen_status=kitchen_status
        )
    }
