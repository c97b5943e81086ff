"""Lot, stock-ledger and cost-layer repositories.

The ledger is append-only: balances are always derived as SUM(qty_delta_base)
over the rows of a (product, location, lot) key.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.domain.inventory import CostLayer, CostLayerConsumption, Lot, StockLedger
from cafe_erp.repositories.base import BaseRepository

_ZERO = Decimal("0")


class LotRepository(BaseRepository[Lot]):
    model = Lot

    async def list_filtered(
        self,
        *,
        location_id: str | None = None,
        product_id: str | None = None,
        lot_no: str | None = None,
    ) -> list[Lot]:
        q = self._base_query()
        if location_id:
            q = q.where(Lot.location_id == location_id)
        if product_id:
            q = q.where(Lot.product_id == product_id)
        if lot_no:
            q = q.where(func.lower(Lot.lot_no).like(f"%{lot_no.lower()}%"))
        q = q.order_by(Lot.expiry_date.is_(None), Lot.expiry_date.asc(), Lot.created_at.asc())
        return list((await self._session.execute(q)).scalars().all())

    async def balances(
        self,
        *,
        product_id: str | None = None,
        location_id: str | None = None,
        only_positive: bool = True,
    ) -> list[tuple[Lot, Decimal, datetime, datetime]]:
        """(lot, quantity_on_hand, first_txn_ts, last_txn_ts) per lot with ledger rows."""
        qty = func.coalesce(func.sum(StockLedger.qty_delta_base), _ZERO)
        q = (
            select(Lot, qty, func.min(StockLedger.txn_ts), func.max(StockLedger.txn_ts))
            .join(StockLedger, StockLedger.lot_id == Lot.id)
            .where(Lot.tenant_id == self._tenant_id)
            .where(StockLedger.tenant_id == self._tenant_id)
            .group_by(Lot.id)
        )
        if product_id:
            q = q.where(Lot.product_id == product_id)
        if location_id:
            q = q.where(Lot.location_id == location_id)
        if only_positive:
            q = q.having(qty > 0)
        rows = (await self._session.execute(q)).all()
        return [(row[0], Decimal(row[1]), row[2], row[3]) for row in rows]


class LedgerRepository:
    """Stock ledger access. Not a BaseRepository: rows are never updated or soft-deleted."""

    def __init__(self, session: AsyncSession, tenant_id: str):
        self._session = session
        self._tenant_id = tenant_id

    async def balance(self, product_id: str, location_id: str, lot_id: str | None) -> Decimal:
        """Current balance of one (product, location, lot) key; a NULL lot matches only NULL."""
        q = (
            select(func.coalesce(func.sum(StockLedger.qty_delta_base), _ZERO))
            .where(StockLedger.tenant_id == self._tenant_id)
            .where(StockLedger.product_id == product_id)
            .where(StockLedger.location_id == location_id)
        )
        q = q.where(StockLedger.lot_id.is_(None) if lot_id is None else StockLedger.lot_id == lot_id)
        return Decimal((await self._session.execute(q)).scalar_one())

    async def insert_many(self, entries: Sequence[dict[str, Any]]) -> list[StockLedger]:
        rows = [StockLedger(tenant_id=self._tenant_id, **entry) for entry in entries]
        self._session.add_all(rows)
        await self._session.flush()
        return rows

    async def key_balances(
        self, *, product_id: str | None = None, location_id: str | None = None,
    ) -> list[tuple[str, str, str | None, Decimal]]:
        """(product_id, location_id, lot_id, qty) for every key with a positive balance."""
        qty = func.coalesce(func.sum(StockLedger.qty_delta_base), _ZERO)
        q = (
            select(StockLedger.product_id, StockLedger.location_id, StockLedger.lot_id, qty)
            .where(StockLedger.tenant_id == self._tenant_id)
            .group_by(StockLedger.product_id, StockLedger.location_id, StockLedger.lot_id)
            .having(qty > 0)
        )
        if product_id:
            q = q.where(StockLedger.product_id == product_id)
        if location_id:
            q = q.where(StockLedger.location_id == location_id)
        rows = (await self._session.execute(q)).all()
        return [(r[0], r[1], r[2], Decimal(r[3])) for r in rows]

    async def by_ref(self, ref_type: str, ref_id: str, types: Sequence[str] | None = None) -> list[StockLedger]:
        q = (
            select(StockLedger)
            .where(StockLedger.tenant_id == self._tenant_id)
            .where(StockLedger.ref_type == ref_type)
            .where(StockLedger.ref_id == ref_id)
            .order_by(StockLedger.id)
        )
        if types:
            q = q.where(StockLedger.type.in_(types))
        return list((await self._session.execute(q)).scalars().all())

    async def by_lot(self, lot_id: str) -> list[StockLedger]:
        q = (
            select(StockLedger)
            .where(StockLedger.tenant_id == self._tenant_id)
            .where(StockLedger.lot_id == lot_id)
            .order_by(StockLedger.txn_ts.desc(), StockLedger.id.desc())
        )
        return list((await self._session.execute(q)).scalars().all())

    async def lot_totals(self, lot_ids: Sequence[str]) -> dict[str, Decimal]:
        if not lot_ids:
            return {}
        q = (
            select(StockLedger.lot_id, func.sum(StockLedger.qty_delta_base))
            .where(StockLedger.tenant_id == self._tenant_id)
            .where(StockLedger.lot_id.in_(lot_ids))
            .group_by(StockLedger.lot_id)
        )
        return {lot_id: Decimal(total) for lot_id, total in (await self._session.execute(q)).all()}

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 50,
        filters: dict[str, Any] | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> tuple[list[StockLedger], int]:
        q = select(StockLedger).where(StockLedger.tenant_id == self._tenant_id)
        for col_name, value in (filters or {}).items():
            if value is not None:
                q = q.where(getattr(StockLedger, col_name) == value)
        if date_from:
            q = q.where(StockLedger.txn_ts >= date_from)
        if date_to:
            q = q.where(StockLedger.txn_ts <= date_to)

        total = (await self._session.execute(
            select(func.count()).select_from(q.subquery())
        )).scalar_one()
        q = q.order_by(StockLedger.txn_ts.desc(), StockLedger.id.desc()).offset(offset).limit(limit)
        return list((await self._session.execute(q)).scalars().all()), total

    async def on_hand(
        self, *, product_id: str | None = None, location_id: str | None = None,
    ) -> list[tuple[str, str, Decimal, int, datetime, datetime]]:
        """(product_id, location_id, qty, lot_count, first_ts, last_ts) for non-zero balances."""
        qty = func.coalesce(func.sum(StockLedger.qty_delta_base), _ZERO)
        q = (
            select(
                StockLedger.product_id,
                StockLedger.location_id,
                qty,
                func.count(func.distinct(StockLedger.lot_id)),
                func.min(StockLedger.txn_ts),
                func.max(StockLedger.txn_ts),
            )
            .where(StockLedger.tenant_id == self._tenant_id)
            .group_by(StockLedger.product_id, StockLedger.location_id)
            .having(qty != 0)
        )
        if product_id:
            q = q.where(StockLedger.product_id == product_id)
        if location_id:
            q = q.where(StockLedger.location_id == location_id)
        rows = (await self._session.execute(q)).all()
        return [(r[0], r[1], Decimal(r[2]), int(r[3]), r[4], r[5]) for r in rows]


class CostLayerRepository:
    """FIFO cost layers and their consumption records."""

    def __init__(self, session: AsyncSession, tenant_id: str):
        self._session = session
        self._tenant_id = tenant_id

    async def create(self, **kwargs: Any) -> CostLayer:
        layer = CostLayer(tenant_id=self._tenant_id, **kwargs)
        self._session.add(layer)
        await self._session.flush()
        return layer

    async def open_layers(
        self,
        *,
        product_id: str | None = None,
        location_id: str | None = None,
        lot_id: str | None = None,
    ) -> list[CostLayer]:
        """Layers with quantity left, oldest first (FIFO order)."""
        q = (
            select(CostLayer)
            .where(CostLayer.tenant_id == self._tenant_id)
            .where(CostLayer.qty_remaining_base > 0)
            .order_by(CostLayer.created_at.asc(), CostLayer.id.asc())
        )
        if product_id:
            q = q.where(CostLayer.product_id == product_id)
        if location_id:
            q = q.where(CostLayer.location_id == location_id)
        if lot_id:
            q = q.where(CostLayer.lot_id == lot_id)
        return list((await self._session.execute(q)).scalars().all())

    async def get_many(self, layer_ids: Sequence[int]) -> dict[int, CostLayer]:
        if not layer_ids:
            return {}
        q = (
            select(CostLayer)
            .where(CostLayer.tenant_id == self._tenant_id)
            .where(CostLayer.id.in_(layer_ids))
        )
        return {layer.id: layer for layer in (await self._session.execute(q)).scalars().all()}

    async def add_consumptions(self, rows: Sequence[dict[str, Any]]) -> None:
        self._session.add_all([CostLayerConsumption(**row) for row in rows])
        await self._session.flush()

    async def consumptions_by_ref(self, ref_type: str, ref_id: str) -> list[CostLayerConsumption]:
        q = (
            select(CostLayerConsumption)
            .join(CostLayer, CostLayer.id == CostLayerConsumption.layer_id)
            .where(CostLayer.tenant_id == self._tenant_id)
            .where(CostLayerConsumption.ref_type == ref_type)
            .where(CostLayerConsumption.ref_id == ref_id)
        )
        return list((await self._session.execute(q)).scalars().all())
