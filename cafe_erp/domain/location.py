"""SQLAlchemy ORM model for Locations (outlets, central kitchens, warehouses)."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cafe_erp.db.base import Base
from cafe_erp.domain.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, new_id


class Location(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "locations"
    __table_args__ = (UniqueConstraint("tenant_id", "code", name="uq_loc_tenant_code"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # "outlet" | "central_kitchen" | "warehouse"
    type: Mapped[str] = mapped_column(String(24), default="outlet", nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
