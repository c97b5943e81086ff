"""Order, order-item and payment repositories."""

from __future__ import annotations

from sqlalchemy import select

from cafe_erp.domain.order import Order, OrderItem, Payment
from cafe_erp.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    model = Order

    async def get_item(self, item_id: str) -> tuple[OrderItem, Order] | None:
        """Order item joined with its (tenant-scoped) order."""
        result = await self._session.execute(
            select(OrderItem, Order)
            .join(Order, OrderItem.order_id == Order.id)
            .where(OrderItem.id == item_id)
            .where(Order.tenant_id == self._tenant_id)
            .limit(1)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def add_payments(self, order: Order, payments: list[Payment]) -> list[Payment]:
        for payment in payments:
            order.payments.append(payment)
        await self._session.flush()
        return payments

    async def reload(self, order: Order) -> Order:
        await self._session.refresh(order, ["items", "payments"])
        return order
