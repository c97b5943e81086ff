"""SQLAlchemy ORM models for physical stock counts and their counted lines."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafe_erp.db.base import Base
from cafe_erp.domain.mixins import TenantMixin, TimestampMixin, new_id, utcnow


class StockCount(Base, TenantMixin, TimestampMixin):
    """A count of one location. Posting writes the variances to the ledger as ``adj`` rows."""

    __tablename__ = "stock_counts"
    __table_args__ = (UniqueConstraint("tenant_id", "count_number", name="uq_stock_count_no"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    count_number: Mapped[str] = mapped_column(String(50), nullable=False)
    location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # "draft" | "review" | "posted"
    status: Mapped[str] = mapped_column(String(16), default="draft", nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    posted_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[List["StockCountLine"]] = relationship(
        back_populates="count", lazy="selectin", cascade="all, delete-orphan",
        order_by="StockCountLine.created_at",
    )


class StockCountLine(Base):
    __tablename__ = "stock_count_lines"
    __table_args__ = (
        UniqueConstraint("count_id", "product_id", "lot_id", name="uq_stock_count_line_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    count_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stock_counts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    # NULL counts the unlotted balance
    lot_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("lots.id", ondelete="SET NULL"), nullable=True
    )
    system_qty_base: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    counted_qty_base: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    variance_qty_base: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    count: Mapped["StockCount"] = relationship(back_populates="lines")
