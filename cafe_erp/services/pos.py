"""POS shift service: one open shift per location, drawer movements, cash reconciliation."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.exceptions import ConflictError, NotFoundError
from cafe_erp.domain.pos import DrawerMovement, PosShift
from cafe_erp.repositories.master_data import LocationRepository
from cafe_erp.repositories.pos import ShiftRepository
from cafe_erp.schemas.pos import DrawerMovementCreate, ShiftClose, ShiftOpen, ShiftSummaryOut
from cafe_erp.services.costing import ZERO, money

logger = logging.getLogger(__name__)

# Drawer movements that take cash out of the drawer
OUTFLOW_KINDS = ("cash_out", "paid_out", "drop")


class ShiftService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._repo = ShiftRepository(session, tenant_id)
        self._locations = LocationRepository(session, tenant_id)

    async def list_shifts(
        self,
        *,
        location_id: str | None = None,
        status: str = "all",
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[PosShift], int]:
        return await self._repo.list_shifts(
            location_id=location_id, status=status, offset=offset, limit=limit
        )

    async def get_shift(self, shift_id: str) -> PosShift:
        shift = await self._repo.get_by_id(shift_id)
        if not shift:
            raise NotFoundError("Shift", shift_id)
        return shift

    async def get_open_shift(self, location_id: str) -> PosShift | None:
        return await self._repo.find_open_for_location(location_id)

    async def open_shift(self, data: ShiftOpen, user_id: str | None = None) -> PosShift:
        if not await self._locations.get_by_id(data.location_id):
            raise NotFoundError("Location", data.location_id)
        if await self._repo.find_open_for_location(data.location_id):
            raise ConflictError("A shift is already open for this location")

        shift = await self._repo.create(
            location_id=data.location_id,
            device_id=data.device_id,
            opened_by=user_id,
            float_amount=money(data.float_amount),
            expected_cash=money(data.float_amount),
        )
        logger.info("Shift %s opened at %s with float %s", shift.id, shift.location_id, shift.float_amount)
        return shift

    async def add_drawer_movement(
        self, shift_id: str, data: DrawerMovementCreate, user_id: str | None = None,
    ) -> DrawerMovement:
        shift = await self.get_shift(shift_id)
        if not shift.is_open:
            raise ConflictError("Cannot record drawer movements on a closed shift")
        return await self._repo.add_movement(
            shift_id=shift.id,
            kind=data.kind,
            amount=money(data.amount),
            reason=data.reason,
            created_by=user_id,
        )

    async def list_drawer_movements(self, shift_id: str) -> list[DrawerMovement]:
        await self.get_shift(shift_id)
        return await self._repo.list_movements(shift_id)

    async def shift_summary(self, shift_id: str) -> ShiftSummaryOut:
        shift = await self.get_shift(shift_id)
        return await self._reconcile(shift)

    async def close_shift(
        self, shift_id: str, data: ShiftClose, user_id: str | None = None,
    ) -> PosShift:
        shift = await self.get_shift(shift_id)
        if not shift.is_open:
            raise ConflictError("Shift is already closed")

        summary = await self._reconcile(shift)
        actual = money(data.actual_cash)
        variance = money(actual - summary.expected_cash)
        closed = await self._repo.update(
            shift.id,
            expected_cash=summary.expected_cash,
            actual_cash=actual,
            variance=variance,
            closed_by=user_id,
            closed_at=datetime.now(timezone.utc),
            notes=data.notes if data.notes is not None else shift.notes,
        )
        logger.info(
            "Shift %s closed: expected %s, counted %s, variance %s",
            shift.id, summary.expected_cash, actual, variance,
        )
        return closed  # type: ignore[return-value]

    async def _reconcile(self, shift: PosShift) -> ShiftSummaryOut:
        """expected = float + cash_in - (cash_out + paid_out + drop) + (cash taken - change)."""
        totals = await self._repo.movement_totals(shift.id)
        cash_sales, change = await self._repo.cash_taken(shift.id)
        float_amount = Decimal(shift.float_amount)

        outflow = sum((totals.get(kind, ZERO) for kind in OUTFLOW_KINDS), ZERO)
        expected = float_amount + totals.get("cash_in", ZERO) - outflow + cash_sales - change
        return ShiftSummaryOut(
            shift_id=shift.id,
            float_amount=money(float_amount),
            cash_in=money(totals.get("cash_in", ZERO)),
            cash_out=money(totals.get("cash_out", ZERO)),
            paid_out=money(totals.get("paid_out", ZERO)),
            drops=money(totals.get("drop", ZERO)),
            cash_sales=money(cash_sales),
            change_given=money(change),
            expected_cash=money(expected),
        )
