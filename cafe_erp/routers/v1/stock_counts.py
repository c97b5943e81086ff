"""Stock-count router: counts, counted lines, review and posting."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.context import RequestContext, get_context
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.core.response import DataResponse, ListResponse, ok, paginated
from cafe_erp.db.base import get_db
from cafe_erp.schemas.stock_count import (
    StockCountCreate,
    StockCountLineCreate,
    StockCountLineOut,
    StockCountLineUpdate,
    StockCountOut,
    StockCountUpdate,
)
from cafe_erp.services.stock_counts import StockCountService

router = APIRouter(prefix="/stock-counts", tags=["Stock Counts"])


def _svc(session: AsyncSession, ctx: RequestContext) -> StockCountService:
    return StockCountService(session, ctx.tenant_id)


@router.get("", response_model=ListResponse[StockCountOut])
async def list_stock_counts(
    count_status: Optional[str] = Query(default=None, alias="status"),
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    search: Optional[str] = Query(default=None),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    items, total = await _svc(session, ctx).list_counts(
        pagination, status=count_status, location_id=location_id, search=search
    )
    return paginated(
        [StockCountOut.model_validate(c) for c in items],
        total, pagination.page, pagination.limit,
    )


@router.post("", response_model=DataResponse[StockCountOut], status_code=status.HTTP_201_CREATED)
async def create_stock_count(
    body: StockCountCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    count = await _svc(session, ctx).create_count(body, ctx.user_id)
    return {"data": StockCountOut.model_validate(count)}


@router.get("/{count_id}", response_model=DataResponse[StockCountOut])
async def get_stock_count(
    count_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    count = await _svc(session, ctx).get_count(count_id)
    return {"data": StockCountOut.model_validate(count)}


@router.patch("/{count_id}", response_model=DataResponse[StockCountOut])
async def update_stock_count(
    count_id: str,
    body: StockCountUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    count = await _svc(session, ctx).update_count(count_id, body)
    return {"data": StockCountOut.model_validate(count)}


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------

@router.get("/{count_id}/lines", response_model=DataResponse[list[StockCountLineOut]])
async def list_stock_count_lines(
    count_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    count = await _svc(session, ctx).get_count(count_id)
    return {"data": [StockCountLineOut.model_validate(line) for line in count.lines]}


@router.post(
    "/{count_id}/lines",
    response_model=DataResponse[StockCountLineOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_stock_count_line(
    count_id: str,
    body: StockCountLineCreate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Record a counted quantity. Omit lotId to count the unlotted balance."""
    line = await _svc(session, ctx).add_line(count_id, body)
    return {"data": StockCountLineOut.model_validate(line)}


@router.patch("/lines/{line_id}", response_model=DataResponse[StockCountLineOut])
async def update_stock_count_line(
    line_id: str,
    body: StockCountLineUpdate,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    line = await _svc(session, ctx).update_line(line_id, body)
    return {"data": StockCountLineOut.model_validate(line)}


@router.delete("/lines/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stock_count_line(
    line_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    await _svc(session, ctx).delete_line(line_id)


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

@router.post("/{count_id}/review", response_model=DataResponse[StockCountOut])
async def review_stock_count(
    count_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Snapshot system quantities from the ledger and lock the count for posting."""
    count = await _svc(session, ctx).review(count_id)
    return ok(StockCountOut.model_validate(count), "Stock count ready for posting")


@router.post("/{count_id}/post", response_model=DataResponse[StockCountOut])
async def post_stock_count(
    count_id: str,
    ctx: RequestContext = Depends(get_context),
    session: AsyncSession = Depends(get_db),
):
    """Write every non-zero variance to the ledger as an ``adj`` movement."""
    count = await _svc(session, ctx).post(count_id, ctx.user_id)
    return ok(StockCountOut.model_validate(count), "Stock count posted")
