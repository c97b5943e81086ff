"""Inventory router: lots, receipts, movements, ledger, on-hand, FEFO, costing and valuation."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.context import RequestContext, get_context
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.core.response import DataResponse, ListResponse, ok, paginated
from cafe_erp.db.base import get_db
from cafe_erp.schemas.inventory import (
    FefoAllocateRequest,
    FefoAllocationOut,
    FefoRecommendationsOut,
    LedgerEntryOut,
    LotBalanceRow,
    LotCreate,
    LotDetailOut,
    LotOut,
    LotWithStockOut,
    MavgCostOut,
    OnHandRow,
    StockMovementCreate,
    StockReceiptCreate,
    StockReceiptOut,
    ValuationOut,
    ValuationRequest,
)
from cafe_erp.services.inventory import InventoryService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _svc(session: AsyncSession, ctx: RequestContext) -> InventoryService:
    return InventoryService(session, ctx.tenant_id)


# ------------------------------------------------------------------
# Lots
# ------------------------------------------------------------------

@router.get("/lots", response_model=DataResponse[list[LotWithStockOut]])
async def list_lots(
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    product_id: Optional[str] = Query(default=None, alias="productId"),
    lot_no: Optional[str] = Query(default=None, alias="lotNo", description="Contains match"),
    include_expired: bool = Query(default=False, alias="includeExpired"),
    expiring_soon: bool = Query(default=False, alias="expiringSoon"),
    low_stock: bool = Query(default=False, alias="lowStock"),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Lots with their current stock, earliest expiry first."""
    lots = await _svc(session, ctx).list_lots(
        location_id=location_id,
        product_id=product_id,
        lot_no=lot_no,
        include_expired=include_expired,
        expiring_soon=expiring_soon,
        low_stock=low_stock,
    )
    return {"data": lots}


@router.post("/lots", response_model=DataResponse[LotOut], status_code=status.HTTP_201_CREATED)
async def create_lot(
    body: LotCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    lot = await _svc(session, ctx).create_lot(body)
    return {"data": LotOut.model_validate(lot)}


@router.get("/lots/{lot_id}", response_model=DataResponse[LotDetailOut])
async def get_lot(
    lot_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, ctx).get_lot(lot_id)}


# ------------------------------------------------------------------
# Movements and ledger
# ------------------------------------------------------------------

@router.post(
    "/receipts", response_model=DataResponse[StockReceiptOut], status_code=status.HTTP_201_CREATED,
)
async def receive_stock(
    body: StockReceiptCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Receive stock into a lot (found or created by lot number) and open a cost layer."""
    receipt = await _svc(session, ctx).receive_stock(body, ctx.user_id)
    return {"data": receipt}


@router.post(
    "/movements", response_model=DataResponse[LedgerEntryOut], status_code=status.HTTP_201_CREATED,
)
async def record_movement(
    body: StockMovementCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Manual adjustment. Rejected with 409 when it would make stock negative."""
    row = await _svc(session, ctx).record_movement(body, ctx.user_id)
    return {"data": LedgerEntryOut.model_validate(row)}


@router.get("/ledger", response_model=ListResponse[LedgerEntryOut])
async def list_ledger(
    product_id: Optional[str] = Query(default=None, alias="productId"),
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    lot_id: Optional[str] = Query(default=None, alias="lotId"),
    txn_type: Optional[str] = Query(default=None, alias="type"),
    ref_type: Optional[str] = Query(default=None, alias="refType"),
    ref_id: Optional[str] = Query(default=None, alias="refId"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    rows, total = await _svc(session, ctx).list_ledger(
        pagination,
        product_id=product_id,
        location_id=location_id,
        lot_id=lot_id,
        type=txn_type,
        ref_type=ref_type,
        ref_id=ref_id,
        date_from=date_from,
        date_to=date_to,
    )
    return paginated(
        [LedgerEntryOut.model_validate(r) for r in rows],
        total, pagination.page, pagination.limit,
    )


# ------------------------------------------------------------------
# On-hand and lot balances
# ------------------------------------------------------------------

@router.get("/onhand", response_model=DataResponse[list[OnHandRow]])
async def on_hand(
    product_id: Optional[str] = Query(default=None, alias="productId"),
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    rows = await _svc(session, ctx).on_hand(product_id=product_id, location_id=location_id)
    return {"data": rows}


@router.get("/lot-balances", response_model=DataResponse[list[LotBalanceRow]])
async def lot_balances(
    product_id: Optional[str] = Query(default=None, alias="productId"),
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    expiry_status: Optional[str] = Query(default=None, alias="expiryStatus"),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    rows = await _svc(session, ctx).lot_balances(
        product_id=product_id, location_id=location_id, expiry_status=expiry_status
    )
    return {"data": rows}


# ------------------------------------------------------------------
# FEFO
# ------------------------------------------------------------------

@router.get("/fefo/recommendations", response_model=DataResponse[FefoRecommendationsOut])
async def fefo_recommendations(
    product_id: str = Query(alias="productId"),
    location_id: str = Query(alias="locationId"),
    quantity_needed: Optional[Decimal] = Query(default=None, alias="quantityNeeded", gt=0),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Lots to pick from, earliest expiry first. Expired lots are never recommended."""
    out = await _svc(session, ctx).fefo_recommendations(product_id, location_id, quantity_needed)
    return {"data": out}


@router.post("/fefo/allocate", response_model=DataResponse[FefoAllocationOut])
async def fefo_allocate(
    body: FefoAllocateRequest,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    out = await _svc(session, ctx).fefo_allocate(body, ctx.user_id)
    message = "Allocation calculated" if body.reserve_only else "Stock allocated"
    return ok(out, message)


# ------------------------------------------------------------------
# Costing / valuation
# ------------------------------------------------------------------

@router.get("/cost/{product_id}", response_model=DataResponse[MavgCostOut])
async def mavg_cost(
    product_id: str,
    location_id: str = Query(alias="locationId"),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Moving-average cost over open cost layers (product standard cost when none)."""
    return {"data": await _svc(session, ctx).mavg_cost(product_id, location_id)}


@router.post("/valuation", response_model=DataResponse[ValuationOut])
async def valuation(
    body: ValuationRequest,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session, ctx).valuation(body)}
