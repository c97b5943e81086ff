"""SQLAlchemy ORM model for Products (raw materials through finished goods)."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cafe_erp.db.base import Base
from cafe_erp.domain.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, new_id


class Product(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("tenant_id", "sku", name="uq_product_tenant_sku"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "raw_material" | "semi_finished" | "finished_good" | "packaging" | "consumable"
    kind: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    base_uom: Mapped[str] = mapped_column(String(16), default="pcs", nullable=False)
    standard_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 6), nullable=True)
    default_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2), nullable=True)
    is_perishable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    shelf_life_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
