"""FIFO cost layers: opening, depleting, restoring, and moving-average cost."""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.domain.inventory import CostLayer
from cafe_erp.repositories.inventory import CostLayerRepository
from cafe_erp.services.costing import ZERO, FifoResult, consume_fifo, moving_average_cost


class CostLayerService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._repo = CostLayerRepository(session, tenant_id)

    async def open_layer(
        self,
        *,
        product_id: str,
        location_id: str,
        lot_id: str | None,
        quantity: Decimal,
        unit_cost: Decimal,
        source_type: str,
        source_id: str,
    ) -> CostLayer:
        return await self._repo.create(
            product_id=product_id,
            location_id=location_id,
            lot_id=lot_id,
            qty_remaining_base=quantity,
            unit_cost=unit_cost,
            source_type=source_type,
            source_id=source_id,
        )

    async def open_layers(
        self, *, product_id: str | None = None, location_id: str | None = None,
    ) -> list[CostLayer]:
        return await self._repo.open_layers(product_id=product_id, location_id=location_id)

    async def mavg_cost(
        self, product_id: str, location_id: str, fallback: Decimal | None = None,
    ) -> Decimal:
        layers = await self._repo.open_layers(product_id=product_id, location_id=location_id)
        return moving_average_cost(layers, fallback)

    async def consume(
        self,
        *,
        product_id: str,
        location_id: str,
        quantity: Decimal,
        ref_type: str,
        ref_id: str,
        lot_id: str | None = None,
    ) -> FifoResult:
        """Deplete layers oldest-first, starting with the layers of the issued key.

        ``lot_id=None`` is the unlotted balance: its own (NULL-lot) layers go first.
        """
        layers = await self._repo.open_layers(product_id=product_id, location_id=location_id)
        layers = [l for l in layers if l.lot_id == lot_id] + [l for l in layers if l.lot_id != lot_id]
        plan = consume_fifo(layers, quantity)

        by_id = {layer.id: layer for layer in layers}
        for take in plan.takes:
            by_id[take.layer_id].qty_remaining_base -= take.quantity
        await self._repo.add_consumptions(
            [
                {
                    "layer_id": take.layer_id,
                    "ref_type": ref_type,
                    "ref_id": ref_id,
                    "qty_out_base": take.quantity,
                    "amount": take.amount,
                }
                for take in plan.takes
            ]
        )
        return plan

    async def restore(self, ref_type: str, ref_id: str) -> Decimal:
        """Put back everything a document took out of its layers; returns the quantity restored."""
        net: dict[int, Decimal] = defaultdict(lambda: ZERO)
        for row in await self._repo.consumptions_by_ref(ref_type, ref_id):
            net[row.layer_id] += Decimal(row.qty_out_base)

        layers = await self._repo.get_many([lid for lid, qty in net.items() if qty > 0])
        restored = ZERO
        rows = []
        for layer_id, layer in layers.items():
            qty = net[layer_id]
            layer.qty_remaining_base += qty
            restored += qty
            rows.append(
                {
                    "layer_id": layer_id,
                    "ref_type": ref_type,
                    "ref_id": ref_id,
                    "qty_out_base": -qty,
                    "amount": -(qty * layer.unit_cost),
                }
            )
        await self._repo.add_consumptions(rows)
        return restored
