"""Order service: pricing, posting to the stock ledger, voiding, payments and kitchen flow.

Posting issues every item FEFO across the non-expired lots at the order's
location, then from the unlotted balance. Voiding a posted order writes
reversal rows and puts the consumed quantity back into the cost layers.
"""

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.config import settings
from cafe_erp.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.domain.order import Order, OrderItem, Payment
from cafe_erp.repositories.master_data import LocationRepository, ProductRepository
from cafe_erp.repositories.order import OrderRepository
from cafe_erp.repositories.pos import ShiftRepository
from cafe_erp.schemas.order import (
    KitchenStatusUpdate,
    OrderCreate,
    OrderQuoteOut,
    OrderUpdate,
    PaymentCreate,
    PrepStatusUpdate,
)
from cafe_erp.services.costing import ZERO, allocate_fefo, money
from cafe_erp.services.doc_sequence import next_doc_number
from cafe_erp.services.inventory import InventoryService
from cafe_erp.services.ledger import ISSUE, LedgerEntry

logger = logging.getLogger(__name__)

ORDER_REF = "ORDER"

KITCHEN_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "open": ("preparing", "cancelled"),
    "preparing": ("ready", "cancelled"),
    "ready": ("served",),
    "served": (),
    "cancelled": (),
}

PREP_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "queued": ("preparing", "cancelled"),
    "preparing": ("ready", "cancelled"),
    "ready": ("served",),
    "served": (),
    "cancelled": (),
}


def compute_totals(
    items: list[OrderItem], discount: Decimal = ZERO, tax_rate: Decimal | None = None,
) -> dict[str, Decimal]:
    """subtotal = Σ line totals, tax = subtotal × rate, total = subtotal + tax - discount."""
    rate = settings.order_tax_rate if tax_rate is None else tax_rate
    subtotal = money(sum((Decimal(i.line_total) for i in items), ZERO))
    tax = money(subtotal * rate)
    discount = money(discount or ZERO)
    return {
        "subtotal": subtotal,
        "tax_amount": tax,
        "discount_amount": discount,
        "total_amount": money(max(subtotal + tax - discount, ZERO)),
    }


def rollup_kitchen_status(current: str, prep_statuses: list[str]) -> str:
    """Order kitchen status implied by its items' prep statuses."""
    if any(s == "served" for s in prep_statuses) and current != "served":
        return "served"
    if current == "preparing" and all(s in ("ready", "served", "cancelled") for s in prep_statuses):
        return "ready"
    if current == "open" and any(s == "preparing" for s in prep_statuses):
        return "preparing"
    return current


class OrderService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._tenant_id = tenant_id
        self._repo = OrderRepository(session, tenant_id)
        self._products = ProductRepository(session, tenant_id)
        self._locations = LocationRepository(session, tenant_id)
        self._shifts = ShiftRepository(session, tenant_id)
        self._inventory = InventoryService(session, tenant_id)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def list_orders(
        self,
        pagination: PaginationParams,
        *,
        status: str | None = None,
        channel: str | None = None,
        order_type: str | None = None,
        location_id: str | None = None,
        search: str | None = None,
    ) -> tuple[list[Order], int]:
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={
                "status": status,
                "channel": channel,
                "order_type": order_type,
                "location_id": location_id,
            },
            search=search,
            search_fields=("order_number", "table_no"),
        )

    async def get_order(self, order_id: str) -> Order:
        order = await self._repo.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    async def create_order(self, data: OrderCreate, user_id: str | None = None) -> Order:
        if not await self._locations.get_by_id(data.location_id):
            raise NotFoundError("Location", data.location_id)
        products = await self._products.get_many(i.product_id for i in data.items)

        items = []
        for line in data.items:
            product = products.get(line.product_id)
            if not product:
                raise NotFoundError("Product", line.product_id)
            price = line.unit_price
            if price is None:
                price = product.default_price or ZERO
            items.append(
                OrderItem(
                    product_id=product.id,
                    quantity=line.quantity,
                    unit_price=money(price),
                    discount_amount=ZERO,
                    line_total=money(line.quantity * price),
                    station=line.station,
                    notes=line.notes,
                )
            )

        order = await self._repo.create(
            order_number=await next_doc_number(
                "order",
                lambda number: self._repo.find_one(order_number=number),
                prefix="ORD",
                tenant_id=self._tenant_id,
                include_time=True,
            ),
            location_id=data.location_id,
            device_id=data.device_id,
            channel=data.channel,
            order_type=data.order_type,
            table_no=data.table_no,
            created_by=user_id,
            items=items,
            **compute_totals(items),
        )
        return await self._repo.reload(order)

    async def update_order(self, order_id: str, data: OrderUpdate) -> Order:
        order = await self.get_order(order_id)
        if order.status != "open":
            raise ConflictError(f"Only open orders can be updated (order is {order.status})")

        changes = data.model_dump(exclude_none=True, exclude_unset=True)
        if "discount_amount" in changes:
            changes.update(compute_totals(order.items, changes["discount_amount"]))
        updated = await self._repo.update(order.id, **changes)
        return updated  # type: ignore[return-value]

    async def quote_order(self, order_id: str) -> OrderQuoteOut:
        order = await self.get_order(order_id)
        totals = compute_totals(order.items, order.discount_amount)
        if order.status == "open":
            await self._repo.update(order.id, **totals)
        paid = money(sum((Decimal(p.amount) - Decimal(p.change) for p in order.payments), ZERO))
        return OrderQuoteOut(
            order_id=order.id,
            amount_paid=paid,
            balance_due=max(totals["total_amount"] - paid, ZERO),
            recalculated_at=datetime.now(timezone.utc),
            **totals,
        )

    # ------------------------------------------------------------------
    # Posting / voiding
    # ------------------------------------------------------------------

    async def post_order(self, order_id: str, user_id: str | None = None) -> Order:
        order = await self.get_order(order_id)
        if order.status != "open":
            raise ConflictError(f"Only open orders can be posted (order is {order.status})")
        if not order.items:
            raise ConflictError("Cannot post an order without items")

        entries: list[LedgerEntry] = []
        # Quantity already planned per (product, lot) so repeated products share balances
        planned: dict[tuple[str, str | None], Decimal] = defaultdict(lambda: ZERO)
        for item in order.items:
            picks = await self._inventory.fefo_candidates(
                item.product_id, order.location_id, include_unlotted=True
            )
            candidates = [
                replace(p.lot, quantity=p.lot.quantity - planned[(item.product_id, p.lot.lot_id)])
                for p in picks
            ]
            plan = allocate_fefo(candidates, item.quantity)
            if not plan.fully_allocated:
                raise InsufficientStockError(
                    f"Insufficient stock for product {item.product_id}: "
                    f"requested {item.quantity}, available {plan.allocated}"
                )
            for alloc in plan.allocations:
                planned[(item.product_id, alloc.lot_id)] += alloc.quantity
                entries.append(
                    LedgerEntry(
                        product_id=item.product_id,
                        location_id=order.location_id,
                        lot_id=alloc.lot_id,
                        type=ISSUE,
                        qty_delta_base=-alloc.quantity,
                        ref_type=ORDER_REF,
                        ref_id=order.id,
                        note=f"Order {order.order_number} - {alloc.quantity} units",
                        created_by=user_id,
                    )
                )
            if len(plan.allocations) == 1:
                item.lot_id = plan.allocations[0].lot_id

        await self._inventory.issue(entries)
        posted = await self._repo.update(
            order.id, status="posted", posted_at=datetime.now(timezone.utc)
        )
        logger.info("Order %s posted: %d ledger row(s)", order.order_number, len(entries))
        return posted  # type: ignore[return-value]

    async def void_order(self, order_id: str, reason: str, user_id: str | None = None) -> Order:
        order = await self.get_order(order_id)
        if order.status == "voided":
            raise ConflictError("Order is already voided")

        if order.status == "posted":
            rows = await self._inventory.restore(
                ORDER_REF,
                order.id,
                created_by=user_id,
                note_prefix=f"Void order {order.order_number} - Reversal: {reason}",
            )
            logger.info("Order %s voided: %d reversal row(s)", order.order_number, len(rows))

        voided = await self._repo.update(
            order.id,
            status="voided",
            kitchen_status="cancelled",
            void_reason=reason,
            voided_at=datetime.now(timezone.utc),
        )
        return voided  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def add_payment(
        self, order_id: str, data: PaymentCreate, user_id: str | None = None,
    ) -> list[Payment]:
        order = await self.get_order(order_id)
        if order.status == "voided":
            raise ConflictError("Cannot take payment on a voided order")

        shift = await self._shifts.find_open_for_location(order.location_id)
        payments = [
            Payment(
                shift_id=shift.id if shift else None,
                tender=tender.payment_method,
                amount=money(tender.amount),
                reference=tender.transaction_ref,
                change=money(tender.change_given),
                created_by=user_id,
            )
            for tender in data.tenders
        ]
        return await self._repo.add_payments(order, payments)

    async def list_payments(self, order_id: str) -> list[Payment]:
        order = await self.get_order(order_id)
        return list(order.payments)

    # ------------------------------------------------------------------
    # Kitchen flow
    # ------------------------------------------------------------------

    async def update_kitchen_status(self, order_id: str, data: KitchenStatusUpdate) -> Order:
        order = await self.get_order(order_id)
        if data.kitchen_status not in KITCHEN_TRANSITIONS.get(order.kitchen_status, ()):
            raise ValidationError(
                f"Cannot transition from {order.kitchen_status} to {data.kitchen_status}"
            )
        changes = {"kitchen_status": data.kitchen_status}
        if data.notes:
            changes["kitchen_notes"] = data.notes
        updated = await self._repo.update(order.id, **changes)
        return updated  # type: ignore[return-value]

    async def update_item_prep_status(
        self, item_id: str, data: PrepStatusUpdate,
    ) -> tuple[OrderItem, str]:
        found = await self._repo.get_item(item_id)
        if not found:
            raise NotFoundError("Order item", item_id)
        item, order = found
        if data.prep_status not in PREP_TRANSITIONS.get(item.prep_status, ()):
            raise ValidationError(f"Cannot transition from {item.prep_status} to {data.prep_status}")

        item.prep_status = data.prep_status
        if data.station is not None:
            item.station = data.station
        if data.notes is not None:
            item.notes = data.notes

        status = rollup_kitchen_status(order.kitchen_status, [i.prep_status for i in order.items])
        if status != order.kitchen_status:
            order.kitchen_status = status
        await self._repo.session.flush()
        return item, status
