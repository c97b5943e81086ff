"""Inventory service: lots, receipts, manual movements, on-hand, FEFO and valuation.

All quantity changes go through :class:`LedgerService` (negative-stock guard)
and :class:`CostLayerService` (FIFO layers). Order posting reuses
:meth:`InventoryService.issue` and :meth:`InventoryService.fefo_candidates`.
"""

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.config import settings
from cafe_erp.core.exceptions import ConflictError, InsufficientStockError, NotFoundError
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.domain.inventory import CostLayer, Lot, StockLedger
from cafe_erp.domain.location import Location
from cafe_erp.domain.mixins import new_id
from cafe_erp.domain.product import Product
from cafe_erp.repositories.inventory import LedgerRepository, LotRepository
from cafe_erp.repositories.master_data import (
    LocationRepository,
    ProductRepository,
    SupplierRepository,
)
from cafe_erp.schemas.inventory import (
    FefoAllocateRequest,
    FefoAllocationLine,
    FefoAllocationOut,
    FefoRecommendation,
    FefoRecommendationsOut,
    LedgerEntryOut,
    LocationValuation,
    LotBalanceRow,
    LotCreate,
    LotDetailOut,
    LotOut,
    LotWithStockOut,
    MavgCostOut,
    OnHandRow,
    ProductValuation,
    StockMovementCreate,
    StockReceiptCreate,
    StockReceiptOut,
    ValuationOut,
    ValuationRequest,
)
from cafe_erp.services import costing
from cafe_erp.services.cost_layers import CostLayerService
from cafe_erp.services.doc_sequence import next_doc_number
from cafe_erp.services.ledger import ISSUE, RECEIPT, LedgerEntry, LedgerService

logger = logging.getLogger(__name__)


def _oldest_cost_by_lot(layers: Sequence[CostLayer]) -> dict[str, Decimal]:
    """Unit cost of the oldest open layer of each lot (``layers`` are FIFO-ordered)."""
    costs: dict[str, Decimal] = {}
    for layer in layers:
        if layer.lot_id and layer.lot_id not in costs:
            costs[layer.lot_id] = layer.unit_cost
    return costs


def _latest_cost(layers: Sequence[CostLayer]) -> Decimal | None:
    return layers[-1].unit_cost if layers else None


class InventoryService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._tenant_id = tenant_id
        self._lots = LotRepository(session, tenant_id)
        self._ledger_repo = LedgerRepository(session, tenant_id)
        self._products = ProductRepository(session, tenant_id)
        self._locations = LocationRepository(session, tenant_id)
        self._suppliers = SupplierRepository(session, tenant_id)
        self.ledger = LedgerService(session, tenant_id)
        self.layers = CostLayerService(session, tenant_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_product(self, product_id: str) -> Product:
        product = await self._products.get_by_id(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    async def get_location(self, location_id: str) -> Location:
        location = await self._locations.get_by_id(location_id)
        if not location:
            raise NotFoundError("Location", location_id)
        return location

    async def _check_supplier(self, supplier_id: str | None) -> None:
        if supplier_id and not await self._suppliers.get_by_id(supplier_id):
            raise NotFoundError("Supplier", supplier_id)

    # ------------------------------------------------------------------
    # Lots
    # ------------------------------------------------------------------

    async def list_lots(
        self,
        *,
        location_id: str | None = None,
        product_id: str | None = None,
        lot_no: str | None = None,
        include_expired: bool = False,
        expiring_soon: bool = False,
        low_stock: bool = False,
    ) -> list[LotWithStockOut]:
        lots = await self._lots.list_filtered(
            location_id=location_id, product_id=product_id, lot_no=lot_no
        )
        totals = await self._ledger_repo.lot_totals([lot.id for lot in lots])
        today = date.today()

        result = []
        for lot in lots:
            stock = totals.get(lot.id, costing.ZERO)
            status = self._expiry_status(lot.expiry_date, today)
            if not include_expired and status == costing.EXPIRED:
                continue
            if expiring_soon and status != costing.EXPIRING_SOON:
                continue
            if low_stock and stock > settings.low_stock_threshold:
                continue
            result.append(
                LotWithStockOut(
                    **LotOut.model_validate(lot).model_dump(),
                    current_stock=stock,
                    expiry_status=status,
                )
            )
        return result

    async def get_lot(self, lot_id: str) -> LotDetailOut:
        lot = await self._lots.get_by_id(lot_id)
        if not lot:
            raise NotFoundError("Lot", lot_id)
        movements = await self._ledger_repo.by_lot(lot_id)
        stock = sum((Decimal(m.qty_delta_base) for m in movements), costing.ZERO)
        return LotDetailOut(
            **LotOut.model_validate(lot).model_dump(),
            current_stock=stock,
            expiry_status=self._expiry_status(lot.expiry_date, date.today()),
            movements=[LedgerEntryOut.model_validate(m) for m in movements],
        )

    async def create_lot(self, data: LotCreate) -> Lot:
        await self.get_product(data.product_id)
        await self.get_location(data.location_id)
        await self._check_supplier(data.supplier_id)
        if data.lot_no and await self._lots.find_one(
            product_id=data.product_id, location_id=data.location_id, lot_no=data.lot_no
        ):
            raise ConflictError(f"Lot '{data.lot_no}' already exists for this product and location")
        return await self._lots.create(**data.model_dump(exclude_none=True))

    async def _find_or_create_lot(self, data: StockReceiptCreate) -> Lot | None:
        def existing(lot_no: str):
            return self._lots.find_one(
                product_id=data.product_id, location_id=data.location_id, lot_no=lot_no
            )

        lot_no = data.lot_no
        if not lot_no:
            if data.expiry_date is None:
                return None
            lot_no = await next_doc_number("lot", existing, tenant_id=self._tenant_id)
        else:
            lot = await existing(lot_no)
            if lot:
                return lot
        return await self._lots.create(
            product_id=data.product_id,
            location_id=data.location_id,
            supplier_id=data.supplier_id,
            lot_no=lot_no,
            expiry_date=data.expiry_date,
            manufacture_date=data.manufacture_date,
            notes=data.note,
        )

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    async def receive_stock(
        self, data: StockReceiptCreate, user_id: str | None = None,
    ) -> StockReceiptOut:
        await self.get_product(data.product_id)
        await self.get_location(data.location_id)
        await self._check_supplier(data.supplier_id)

        lot = await self._find_or_create_lot(data)
        ref_id = data.ref_id or new_id()
        [row] = await self.ledger.record_movements(
            [
                LedgerEntry(
                    product_id=data.product_id,
                    location_id=data.location_id,
                    lot_id=lot.id if lot else None,
                    type=RECEIPT,
                    qty_delta_base=data.quantity,
                    unit_cost=data.unit_cost,
                    ref_type=data.ref_type,
                    ref_id=ref_id,
                    note=data.note,
                    created_by=user_id,
                )
            ]
        )
        layer = await self.layers.open_layer(
            product_id=data.product_id,
            location_id=data.location_id,
            lot_id=row.lot_id,
            quantity=data.quantity,
            unit_cost=data.unit_cost,
            source_type=data.ref_type,
            source_id=ref_id,
        )
        logger.info(
            "Received %s of product %s at %s (lot %s) @ %s",
            data.quantity, data.product_id, data.location_id,
            lot.lot_no if lot else "-", data.unit_cost,
        )
        return StockReceiptOut(
            lot=LotOut.model_validate(lot) if lot else None,
            ledger_entry=LedgerEntryOut.model_validate(row),
            cost_layer_id=layer.id,
        )

    async def record_movement(
        self, data: StockMovementCreate, user_id: str | None = None,
    ) -> StockLedger:
        await self.get_product(data.product_id)
        await self.get_location(data.location_id)
        if data.lot_id:
            lot = await self._lots.get_by_id(data.lot_id)
            if not lot or lot.product_id != data.product_id or lot.location_id != data.location_id:
                raise NotFoundError("Lot", data.lot_id)

        entry = LedgerEntry(
            product_id=data.product_id,
            location_id=data.location_id,
            lot_id=data.lot_id,
            type=RECEIPT if data.quantity > 0 else ISSUE,
            qty_delta_base=data.quantity,
            unit_cost=data.unit_cost,
            ref_type=data.ref_type,
            ref_id=data.ref_id or new_id(),
            note=data.note,
            created_by=user_id,
        )
        if data.quantity < 0:
            [row] = await self.issue([entry])
            return row

        [row] = await self.receive_entries([entry])
        return row

    async def receive_entries(self, entries: Sequence[LedgerEntry]) -> list[StockLedger]:
        """Write inbound ledger rows and open a cost layer for each.

        Entries without a unit cost are valued at the current moving average
        (falling back to the product standard cost).
        """
        products = await self._products.get_many(e.product_id for e in entries)
        costed = []
        for entry in entries:
            if entry.unit_cost is None:
                product = products.get(entry.product_id)
                entry = replace(
                    entry,
                    unit_cost=await self.layers.mavg_cost(
                        entry.product_id, entry.location_id,
                        product.standard_cost if product else None,
                    ),
                )
            costed.append(entry)

        rows = await self.ledger.record_movements(costed)
        for entry in costed:
            await self.layers.open_layer(
                product_id=entry.product_id,
                location_id=entry.location_id,
                lot_id=entry.lot_id,
                quantity=entry.qty_delta_base,
                unit_cost=entry.unit_cost,
                source_type=entry.ref_type,
                source_id=entry.ref_id,
            )
        return rows

    async def adjust(self, entries: Sequence[LedgerEntry]) -> list[StockLedger]:
        """Post signed adjustment rows: shortages are issued, surpluses received."""
        shortages = [e for e in entries if e.qty_delta_base < 0]
        surpluses = [e for e in entries if e.qty_delta_base > 0]
        rows = await self.issue(shortages) if shortages else []
        if surpluses:
            rows += await self.receive_entries(surpluses)
        return rows

    async def issue(self, entries: Sequence[LedgerEntry]) -> list[StockLedger]:
        """Write outbound ledger rows, consuming cost layers and stamping the issue cost.

        The whole batch is checked against current balances before any layer
        is touched. With ``COSTING_METHOD=mavg`` the moving average before the
        issue is written; otherwise the FIFO cost of the consumed layers.
        """
        await self.ledger.ensure_available(entries)
        products = await self._products.get_many(e.product_id for e in entries)

        costed = []
        for entry in entries:
            product = products.get(entry.product_id)
            fallback = product.standard_cost if product else None
            mavg = await self.layers.mavg_cost(entry.product_id, entry.location_id, fallback)
            plan = await self.layers.consume(
                product_id=entry.product_id,
                location_id=entry.location_id,
                lot_id=entry.lot_id,
                quantity=-entry.qty_delta_base,
                ref_type=entry.ref_type,
                ref_id=entry.ref_id,
            )
            if plan.remaining > 0:
                logger.warning(
                    "Issue of %s for %s/%s left %s uncosted",
                    -entry.qty_delta_base, entry.product_id, entry.location_id, plan.remaining,
                )
            cost = mavg if settings.costing_method == "mavg" else (plan.unit_cost or mavg)
            costed.append(replace(entry, unit_cost=cost))
        return await self.ledger.record_movements(costed)

    async def restore(
        self,
        ref_type: str,
        ref_id: str,
        *,
        created_by: str | None = None,
        note_prefix: str | None = None,
    ) -> list[StockLedger]:
        """Reverse every issue of a document and put its quantity back into the layers."""
        rows = await self.ledger.reverse_ref(
            ref_type, ref_id, types=[ISSUE], created_by=created_by, note_prefix=note_prefix
        )
        await self.layers.restore(ref_type, ref_id)
        return rows

    async def list_ledger(
        self,
        pagination: PaginationParams,
        *,
        product_id: str | None = None,
        location_id: str | None = None,
        lot_id: str | None = None,
        type: str | None = None,
        ref_type: str | None = None,
        ref_id: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> tuple[list[StockLedger], int]:
        return await self._ledger_repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            filters={
                "product_id": product_id,
                "location_id": location_id,
                "lot_id": lot_id,
                "type": type,
                "ref_type": ref_type,
                "ref_id": ref_id,
            },
            date_from=date_from,
            date_to=date_to,
        )

    # ------------------------------------------------------------------
    # On-hand / lot balances
    # ------------------------------------------------------------------

    async def on_hand(
        self, *, product_id: str | None = None, location_id: str | None = None,
    ) -> list[OnHandRow]:
        rows = await self._ledger_repo.on_hand(product_id=product_id, location_id=location_id)
        products = await self._products.get_many(r[0] for r in rows)
        locations = await self._locations.get_many(r[1] for r in rows)
        layers = await self._layers_by_key(product_id=product_id, location_id=location_id)

        result = []
        for prod_id, loc_id, qty, lot_count, first_ts, last_ts in rows:
            product = products.get(prod_id)
            location = locations.get(loc_id)
            latest = _latest_cost(layers.get((prod_id, loc_id), []))
            result.append(
                OnHandRow(
                    product_id=prod_id,
                    product_sku=product.sku if product else None,
                    product_name=product.name if product else None,
                    is_perishable=product.is_perishable if product else False,
                    location_id=loc_id,
                    location_code=location.code if location else None,
                    location_name=location.name if location else None,
                    quantity_on_hand=qty,
                    stock_status=costing.stock_status(qty, settings.low_stock_threshold),
                    latest_unit_cost=latest,
                    total_value=costing.money(qty * (latest or costing.ZERO)),
                    lot_count=lot_count,
                    first_transaction_date=first_ts,
                    last_transaction_date=last_ts,
                )
            )
        return result

    async def lot_balances(
        self,
        *,
        product_id: str | None = None,
        location_id: str | None = None,
        expiry_status: str | None = None,
    ) -> list[LotBalanceRow]:
        balances = await self._lots.balances(product_id=product_id, location_id=location_id)
        open_layers = await self.layers.open_layers(product_id=product_id, location_id=location_id)
        lot_costs = _oldest_cost_by_lot(open_layers)
        today = date.today()

        result = []
        for lot, qty, first_ts, last_ts in balances:
            status = self._expiry_status(lot.expiry_date, today)
            if expiry_status and status != expiry_status:
                continue
            result.append(
                LotBalanceRow(
                    lot_id=lot.id,
                    lot_no=lot.lot_no,
                    product_id=lot.product_id,
                    location_id=lot.location_id,
                    quantity_on_hand=qty,
                    expiry_date=lot.expiry_date,
                    days_to_expiry=costing.days_to_expiry(lot.expiry_date, today),
                    expiry_status=status,
                    lot_unit_cost=lot_costs.get(lot.id),
                    first_transaction_date=first_ts,
                    last_transaction_date=last_ts,
                )
            )
        result.sort(key=lambda r: (r.expiry_date is None, r.expiry_date or date.max))
        return result

    # ------------------------------------------------------------------
    # FEFO
    # ------------------------------------------------------------------

    async def fefo_candidates(
        self, product_id: str, location_id: str, *, include_unlotted: bool = False,
    ) -> list[costing.FefoPick]:
        """Pickable lot balances in FEFO order; the unlotted balance goes last when asked for."""
        balances = await self._lots.balances(product_id=product_id, location_id=location_id)
        open_layers = await self.layers.open_layers(product_id=product_id, location_id=location_id)
        lot_costs = _oldest_cost_by_lot(open_layers)
        today = date.today()

        picks = self._rank(
            [
                costing.LotBalance(
                    lot_id=lot.id,
                    lot_no=lot.lot_no,
                    quantity=qty,
                    expiry_date=lot.expiry_date,
                    first_txn_at=first_ts,
                    unit_cost=lot_costs.get(lot.id),
                )
                for lot, qty, first_ts, _ in balances
            ],
            today,
        )
        if include_unlotted:
            unlotted = await self.ledger.balance(product_id, location_id, None)
            if unlotted > 0:
                picks.append(
                    costing.FefoPick(
                        lot=costing.LotBalance(lot_id=None, lot_no=None, quantity=unlotted),
                        pick_priority=len(picks) + 1,
                        expiry_status=costing.NO_EXPIRY,
                        days_to_expiry=None,
                    )
                )
        return picks

    async def fefo_recommendations(
        self, product_id: str, location_id: str, quantity_needed: Decimal | None = None,
    ) -> FefoRecommendationsOut:
        product = await self.get_product(product_id)
        location = await self.get_location(location_id)
        picks = await self.fefo_candidates(product_id, location_id)
        total = sum((p.lot.quantity for p in picks), costing.ZERO)

        out = FefoRecommendationsOut(
            product_id=product.id,
            product_sku=product.sku,
            product_name=product.name,
            location_id=location.id,
            location_code=location.code,
            location_name=location.name,
            recommendations=[
                FefoRecommendation(
                    lot_id=p.lot.lot_id,
                    lot_no=p.lot.lot_no,
                    quantity_available=p.lot.quantity,
                    expiry_date=p.lot.expiry_date,
                    days_to_expiry=p.days_to_expiry,
                    expiry_status=p.expiry_status,
                    pick_priority=p.pick_priority,
                    unit_cost=p.lot.unit_cost,
                )
                for p in picks
            ],
            total_available=total,
        )
        if quantity_needed is not None:
            out.quantity_needed = quantity_needed
            out.sufficient_stock = total >= quantity_needed
            out.lots_required = costing.lots_required(picks, quantity_needed)
        return out

    async def fefo_allocate(
        self, data: FefoAllocateRequest, user_id: str | None = None,
    ) -> FefoAllocationOut:
        await self.get_product(data.product_id)
        await self.get_location(data.location_id)
        picks = await self.fefo_candidates(data.product_id, data.location_id)
        plan = costing.allocate_fefo([p.lot for p in picks], data.quantity_needed)

        if not plan.fully_allocated and not data.allow_partial:
            raise InsufficientStockError(
                f"Insufficient stock for FEFO allocation: requested {data.quantity_needed}, "
                f"available {plan.allocated}"
            )

        if not data.reserve_only and plan.allocations:
            await self.issue(
                [
                    LedgerEntry(
                        product_id=data.product_id,
                        location_id=data.location_id,
                        lot_id=a.lot_id,
                        type=ISSUE,
                        qty_delta_base=-a.quantity,
                        ref_type=data.ref_type,
                        ref_id=data.ref_id,
                        note=f"FEFO allocation for {data.ref_type} {data.ref_id}",
                        created_by=user_id,
                    )
                    for a in plan.allocations
                ]
            )
            logger.info(
                "FEFO allocated %s of %s across %d lot(s) for %s %s",
                plan.allocated, data.product_id, len(plan.allocations), data.ref_type, data.ref_id,
            )

        return FefoAllocationOut(
            product_id=data.product_id,
            location_id=data.location_id,
            quantity_requested=data.quantity_needed,
            quantity_allocated=plan.allocated,
            fully_allocated=plan.fully_allocated,
            allocations=[
                FefoAllocationLine(
                    lot_id=a.lot_id,
                    lot_no=a.lot_no,
                    quantity_allocated=a.quantity,
                    expiry_date=a.expiry_date,
                    unit_cost=a.unit_cost,
                )
                for a in plan.allocations
            ],
            ref_type=data.ref_type,
            ref_id=data.ref_id,
            reserve_only=data.reserve_only,
        )

    # ------------------------------------------------------------------
    # Costing / valuation
    # ------------------------------------------------------------------

    async def mavg_cost(self, product_id: str, location_id: str) -> MavgCostOut:
        product = await self.get_product(product_id)
        await self.get_location(location_id)
        layers = await self.layers.open_layers(product_id=product_id, location_id=location_id)
        return MavgCostOut(
            product_id=product_id,
            location_id=location_id,
            mavg_cost=costing.moving_average_cost(layers, product.standard_cost),
            quantity_costed=sum((l.qty_remaining_base for l in layers), costing.ZERO),
            layer_count=len(layers),
        )

    async def valuation(self, data: ValuationRequest) -> ValuationOut:
        """Value every positive (product, location, lot) balance with the requested cost method.

        ``fifo`` uses the oldest open layer of the lot, ``mavg`` the moving
        average of the product at the location, ``latest`` the newest open
        layer. Product standard cost is the fallback for uncosted stock.
        """
        balances = await self._ledger_repo.key_balances(
            product_id=data.product_id, location_id=data.location_id
        )
        layers = await self._layers_by_key(
            product_id=data.product_id, location_id=data.location_id
        )
        products = await self._products.get_many(b[0] for b in balances)
        locations = await self._locations.get_many(b[1] for b in balances)

        by_location: dict[str, LocationValuation] = {}
        by_product: dict[str, ProductValuation] = {}
        total_value = costing.ZERO

        for prod_id, loc_id, lot_id, qty in balances:
            product = products.get(prod_id)
            key_layers = layers.get((prod_id, loc_id), [])
            fallback = product.standard_cost if product else None
            if data.cost_method == "mavg":
                cost = costing.moving_average_cost(key_layers, fallback)
            elif data.cost_method == "latest":
                cost = _latest_cost(key_layers)
            else:
                cost = _oldest_cost_by_lot(key_layers).get(lot_id) if lot_id else next(
                    (l.unit_cost for l in key_layers if l.lot_id is None), None
                )
            value = qty * (cost if cost is not None else (fallback or costing.ZERO))
            total_value += value

            location = locations.get(loc_id)
            loc_row = by_location.setdefault(
                loc_id,
                LocationValuation(
                    location_id=loc_id,
                    location_name=location.name if location else None,
                    total_value=costing.ZERO,
                    item_count=0,
                ),
            )
            loc_row.total_value += value
            loc_row.item_count += 1

            prod_row = by_product.setdefault(
                prod_id,
                ProductValuation(
                    product_id=prod_id,
                    product_name=product.name if product else None,
                    total_quantity=costing.ZERO,
                    total_value=costing.ZERO,
                    average_cost=costing.ZERO,
                ),
            )
            prod_row.total_quantity += qty
            prod_row.total_value += value

        for loc_row in by_location.values():
            loc_row.total_value = costing.money(loc_row.total_value)
        for prod_row in by_product.values():
            prod_row.average_cost = costing.unit_cost(prod_row.total_value / prod_row.total_quantity)
            prod_row.total_value = costing.money(prod_row.total_value)

        return ValuationOut(
            total_value=costing.money(total_value),
            location_breakdown=list(by_location.values()),
            product_breakdown=list(by_product.values()),
            cost_method=data.cost_method,
            calculated_at=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _layers_by_key(
        self, *, product_id: str | None = None, location_id: str | None = None,
    ) -> dict[tuple[str, str], list[CostLayer]]:
        grouped: dict[tuple[str, str], list[CostLayer]] = defaultdict(list)
        for layer in await self.layers.open_layers(product_id=product_id, location_id=location_id):
            grouped[(layer.product_id, layer.location_id)].append(layer)
        return grouped

    @staticmethod
    def _expiry_status(expiry_date: date | None, today: date) -> str:
        return costing.expiry_status(
            expiry_date, today, settings.expiring_soon_days, settings.expiring_this_month_days
        )

    @staticmethod
    def _rank(lots: list[costing.LotBalance], today: date) -> list[costing.FefoPick]:
        return costing.rank_fefo(
            lots, today, settings.expiring_soon_days, settings.expiring_this_month_days
        )
