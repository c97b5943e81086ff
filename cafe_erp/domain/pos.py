"""SQLAlchemy ORM models for POS shifts and cash-drawer movements."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from cafe_erp.db.base import Base
from cafe_erp.domain.mixins import TenantMixin, new_id, utcnow


class PosShift(Base, TenantMixin):
    """A cashier shift at one location. Open while closed_at is NULL."""

    __tablename__ = "pos_shifts"
    __table_args__ = (Index("idx_shift_loc", "location_id", "opened_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False
    )
    device_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    opened_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    closed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    float_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), default=Decimal("0"), nullable=False
    )
    expected_cash: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), default=Decimal("0"), nullable=False
    )
    actual_cash: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), default=Decimal("0"), nullable=False
    )
    variance: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.closed_at is None


class DrawerMovement(Base):
    __tablename__ = "drawer_movements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    shift_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("pos_shifts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # "cash_in" | "cash_out" | "paid_out" | "drop"
    kind: Mapped[str] = mapped_column(String(24), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
