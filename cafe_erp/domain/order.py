"""SQLAlchemy ORM models for unified POS / online orders, their items and payments."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafe_erp.db.base import Base
from cafe_erp.domain.mixins import TenantMixin, TimestampMixin, new_id, utcnow


class Order(Base, TenantMixin, TimestampMixin):
    __tablename__ = "orders"
    __table_args__ = (UniqueConstraint("tenant_id", "order_number", name="uq_order_no"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    device_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # "pos" | "online" | "wholesale"
    channel: Mapped[str] = mapped_column(String(16), default="pos", nullable=False)
    # "dine_in" | "take_away" | "delivery"
    order_type: Mapped[str] = mapped_column(String(16), default="take_away", nullable=False)
    # "open" | "posted" | "voided"
    status: Mapped[str] = mapped_column(String(24), default="open", nullable=False, index=True)
    # "open" | "preparing" | "ready" | "served" | "cancelled"
    kitchen_status: Mapped[str] = mapped_column(String(16), default="open", nullable=False)
    table_no: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), default=Decimal("0"), nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), default=Decimal("0"), nullable=False
    )

    kitchen_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    void_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order", lazy="selectin", cascade="all, delete-orphan",
        order_by="OrderItem.created_at",
    )
    payments: Mapped[List["Payment"]] = relationship(
        back_populates="order", lazy="selectin", cascade="all, delete-orphan",
        order_by="Payment.paid_at",
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_order_qty_pos"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    lot_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("lots.id", ondelete="SET NULL"), nullable=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), default=Decimal("0"), nullable=False
    )
    line_total: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    # "queued" | "preparing" | "ready" | "served" | "cancelled"
    prep_status: Mapped[str] = mapped_column(String(16), default="queued", nullable=False)
    station: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    order: Mapped["Order"] = relationship(back_populates="items")


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Open shift at the order's location when the payment was taken
    shift_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("pos_shifts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # "cash" | "card" | "qris" | "transfer" | "voucher"
    tender: Mapped[str] = mapped_column(String(24), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    change: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    order: Mapped["Order"] = relationship(back_populates="payments")
