"""SQLAlchemy ORM models for lots, the immutable stock ledger, and FIFO cost layers."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from cafe_erp.db.base import Base
from cafe_erp.domain.mixins import TenantMixin, new_id, utcnow

# SQLite only autoincrements INTEGER PRIMARY KEY columns
_SerialPK = BigInteger().with_variant(Integer, "sqlite")


class Lot(Base, TenantMixin):
    """A received batch of one product at one location."""

    __tablename__ = "lots"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "product_id", "location_id", "lot_no", name="uq_lot_tenant_prod_loc_no"
        ),
        Index("idx_lot_prod_loc_exp", "product_id", "location_id", "expiry_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False
    )
    supplier_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True
    )
    lot_no: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    manufacture_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    received_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class StockLedger(Base, TenantMixin):
    """One signed quantity movement. Rows are append-only; corrections are reversal rows."""

    __tablename__ = "stock_ledger"
    __table_args__ = (
        Index("idx_ledger_prod_loc_ts", "product_id", "location_id", "txn_ts"),
        Index("idx_ledger_ref", "ref_type", "ref_id"),
        Index("idx_ledger_lot_balance", "tenant_id", "lot_id", "product_id", "location_id"),
    )

    id: Mapped[int] = mapped_column(_SerialPK, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False
    )
    lot_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("lots.id", ondelete="SET NULL"), nullable=True
    )
    txn_ts: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    # "rcv" | "iss" | "adj" | "<type>_rev"
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    qty_delta_base: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    unit_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 6), nullable=True)
    ref_type: Mapped[str] = mapped_column(String(24), nullable=False)
    ref_id: Mapped[str] = mapped_column(String(36), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)


class CostLayer(Base, TenantMixin):
    """Remaining quantity of one inbound receipt at its cost; depleted oldest-first."""

    __tablename__ = "cost_layers"
    __table_args__ = (
        Index("idx_cost_layer_key", "tenant_id", "product_id", "location_id", "lot_id"),
    )

    id: Mapped[int] = mapped_column(_SerialPK, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False
    )
    lot_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("lots.id", ondelete="SET NULL"), nullable=True
    )
    qty_remaining_base: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    # "GR" | "ADJ" | "XFER" | "PROD"
    source_type: Mapped[str] = mapped_column(String(24), nullable=False)
    source_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class CostLayerConsumption(Base):
    """Quantity taken out of a layer by a document; negative rows restore a layer."""

    __tablename__ = "cost_layer_consumptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    layer_id: Mapped[int] = mapped_column(
        _SerialPK,
        ForeignKey("cost_layers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ref_type: Mapped[str] = mapped_column(String(24), nullable=False)
    ref_id: Mapped[str] = mapped_column(String(36), nullable=False)
    qty_out_base: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
