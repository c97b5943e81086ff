"""Stock-count service: draft → review → posted.

Lines record the counted quantity of a (product, lot) key at the count's
location. Review snapshots the ledger balance of each key as the system
quantity; posting writes every non-zero variance as an ``adj`` ledger row
through the same guarded issue / receive paths as other movements.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.exceptions import ConflictError, NotFoundError
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.domain.stock_count import StockCount, StockCountLine
from cafe_erp.repositories.inventory import LotRepository
from cafe_erp.repositories.master_data import LocationRepository, ProductRepository
from cafe_erp.repositories.stock_count import StockCountRepository
from cafe_erp.schemas.stock_count import (
    StockCountCreate,
    StockCountLineCreate,
    StockCountLineUpdate,
    StockCountUpdate,
)
from cafe_erp.services.doc_sequence import next_doc_number
from cafe_erp.services.inventory import InventoryService
from cafe_erp.services.ledger import ADJUSTMENT, LedgerEntry

logger = logging.getLogger(__name__)

STOCK_COUNT_REF = "STOCK_COUNT"


class StockCountService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._tenant_id = tenant_id
        self._repo = StockCountRepository(session, tenant_id)
        self._locations = LocationRepository(session, tenant_id)
        self._products = ProductRepository(session, tenant_id)
        self._lots = LotRepository(session, tenant_id)
        self._inventory = InventoryService(session, tenant_id)

    async def list_counts(
        self,
        pagination: PaginationParams,
        *,
        status: str | None = None,
        location_id: str | None = None,
        search: str | None = None,
    ) -> tuple[list[StockCount], int]:
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"status": status, "location_id": location_id},
            search=search,
            search_fields=("count_number", "notes"),
        )

    async def get_count(self, count_id: str) -> StockCount:
        count = await self._repo.get_by_id(count_id)
        if not count:
            raise NotFoundError("Stock count", count_id)
        return count

    async def _get_draft(self, count_id: str) -> StockCount:
        count = await self.get_count(count_id)
        if count.status != "draft":
            raise ConflictError(f"Stock count can only be edited in draft (count is {count.status})")
        return count

    async def _check_location(self, location_id: str) -> None:
        if not await self._locations.get_by_id(location_id):
            raise NotFoundError("Location", location_id)

    async def create_count(self, data: StockCountCreate, user_id: str | None = None) -> StockCount:
        await self._check_location(data.location_id)
        count = await self._repo.create(
            count_number=await next_doc_number(
                "stock_count",
                lambda number: self._repo.find_one(count_number=number),
                prefix="SC",
                tenant_id=self._tenant_id,
            ),
            location_id=data.location_id,
            notes=data.notes,
            created_by=user_id,
        )
        return await self._repo.reload(count)

    async def update_count(self, count_id: str, data: StockCountUpdate) -> StockCount:
        count = await self._get_draft(count_id)
        changes = data.model_dump(exclude_none=True, exclude_unset=True)
        if changes.get("location_id", count.location_id) != count.location_id:
            if count.lines:
                raise ConflictError("Remove the counted lines before moving the count to another location")
            await self._check_location(changes["location_id"])
        updated = await self._repo.update(count.id, **changes)
        return updated  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    async def add_line(self, count_id: str, data: StockCountLineCreate) -> StockCountLine:
        count = await self._get_draft(count_id)
        if not await self._products.get_by_id(data.product_id):
            raise NotFoundError("Product", data.product_id)
        if data.lot_id:
            lot = await self._lots.get_by_id(data.lot_id)
            if not lot or lot.product_id != data.product_id or lot.location_id != count.location_id:
                raise NotFoundError("Lot", data.lot_id)
        if any(l.product_id == data.product_id and l.lot_id == data.lot_id for l in count.lines):
            raise ConflictError("This product / lot is already on the count")

        system_qty = await self._inventory.ledger.balance(
            data.product_id, count.location_id, data.lot_id
        )
        return await self._repo.add_line(
            count,
            product_id=data.product_id,
            lot_id=data.lot_id,
            system_qty_base=system_qty,
            counted_qty_base=data.counted_qty_base,
            variance_qty_base=data.counted_qty_base - system_qty,
        )

    async def _get_draft_line(self, line_id: str) -> tuple[StockCountLine, StockCount]:
        found = await self._repo.get_line(line_id)
        if not found:
            raise NotFoundError("Stock count line", line_id)
        line, count = found
        if count.status != "draft":
            raise ConflictError(f"Stock count can only be edited in draft (count is {count.status})")
        return line, count

    async def update_line(self, line_id: str, data: StockCountLineUpdate) -> StockCountLine:
        line, _ = await self._get_draft_line(line_id)
        line.counted_qty_base = data.counted_qty_base
        line.variance_qty_base = data.counted_qty_base - line.system_qty_base
        await self._repo.session.flush()
        return line

    async def delete_line(self, line_id: str) -> None:
        line, count = await self._get_draft_line(line_id)
        await self._repo.delete_line(count, line)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def review(self, count_id: str) -> StockCount:
        """Freeze the count: refresh system quantities from the ledger and recompute variances."""
        count = await self._get_draft(count_id)
        if not count.lines:
            raise ConflictError("Cannot review a stock count without lines")
        for line in count.lines:
            system_qty = await self._inventory.ledger.balance(
                line.product_id, count.location_id, line.lot_id
            )
            line.system_qty_base = system_qty
            line.variance_qty_base = line.counted_qty_base - system_qty
        await self._repo.session.flush()
        reviewed = await self._repo.update(count.id, status="review")
        return reviewed  # type: ignore[return-value]

    async def post(self, count_id: str, user_id: str | None = None) -> StockCount:
        count = await self.get_count(count_id)
        if count.status != "review":
            raise ConflictError(f"Stock count must be reviewed before posting (count is {count.status})")

        entries = [
            LedgerEntry(
                product_id=line.product_id,
                location_id=count.location_id,
                lot_id=line.lot_id,
                type=ADJUSTMENT,
                qty_delta_base=line.variance_qty_base,
                ref_type=STOCK_COUNT_REF,
                ref_id=count.id,
                note=f"Stock count {count.count_number} variance: {line.variance_qty_base}",
                created_by=user_id,
            )
            for line in count.lines
            if line.variance_qty_base != 0
        ]
        if entries:
            await self._inventory.adjust(entries)

        posted = await self._repo.update(
            count.id, status="posted", posted_by=user_id, posted_at=datetime.now(timezone.utc)
        )
        logger.info("Stock count %s posted: %d adjustment row(s)", count.count_number, len(entries))
        return posted  # type: ignore[return-value]
