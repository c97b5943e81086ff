"""POS shift and drawer-movement repositories."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select

from cafe_erp.domain.order import Payment
from cafe_erp.domain.pos import DrawerMovement, PosShift
from cafe_erp.repositories.base import BaseRepository

_ZERO = Decimal("0")


class ShiftRepository(BaseRepository[PosShift]):
    model = PosShift

    async def list_shifts(
        self,
        *,
        location_id: str | None = None,
        status: str = "all",
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[PosShift], int]:
        q = self._base_query()
        if location_id:
            q = q.where(PosShift.location_id == location_id)
        if status == "open":
            q = q.where(PosShift.closed_at.is_(None))
        elif status == "closed":
            q = q.where(PosShift.closed_at.is_not(None))

        total = (await self._session.execute(
            select(func.count()).select_from(q.subquery())
        )).scalar_one()
        q = q.order_by(PosShift.opened_at.desc()).offset(offset).limit(limit)
        return list((await self._session.execute(q)).scalars().all()), total

    async def find_open_for_location(self, location_id: str) -> PosShift | None:
        result = await self._session.execute(
            self._base_query()
            .where(PosShift.location_id == location_id)
            .where(PosShift.closed_at.is_(None))
            .order_by(PosShift.opened_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    # ------------------------------------------------------------------
    # Drawer movements
    # ------------------------------------------------------------------

    async def add_movement(self, **kwargs) -> DrawerMovement:
        movement = DrawerMovement(**kwargs)
        self._session.add(movement)
        await self._session.flush()
        await self._session.refresh(movement)
        return movement

    async def list_movements(self, shift_id: str) -> list[DrawerMovement]:
        result = await self._session.execute(
            select(DrawerMovement)
            .where(DrawerMovement.shift_id == shift_id)
            .order_by(DrawerMovement.created_at.desc())
        )
        return list(result.scalars().all())

    async def movement_totals(self, shift_id: str) -> dict[str, Decimal]:
        """Σ amount per drawer-movement kind."""
        result = await self._session.execute(
            select(DrawerMovement.kind, func.coalesce(func.sum(DrawerMovement.amount), _ZERO))
            .where(DrawerMovement.shift_id == shift_id)
            .group_by(DrawerMovement.kind)
        )
        return {kind: Decimal(total) for kind, total in result.all()}

    async def cash_taken(self, shift_id: str) -> tuple[Decimal, Decimal]:
        """(Σ cash tendered, Σ change given) for cash payments booked to the shift."""
        result = await self._session.execute(
            select(
                func.coalesce(func.sum(Payment.amount), _ZERO),
                func.coalesce(func.sum(Payment.change), _ZERO),
            )
            .where(Payment.shift_id == shift_id)
            .where(Payment.tender == "cash")
        )
        tendered, change = result.one()
        return Decimal(tendered), Decimal(change)
