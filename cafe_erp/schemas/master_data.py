"""Location, product and supplier schemas (request DTOs and response models)."""


from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field

from cafe_erp.schemas.common import CamelModel

LocationType = Literal["outlet", "central_kitchen", "warehouse"]
ProductKind = Literal["raw_material", "semi_finished", "finished_good", "packaging", "consumable"]

# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

class LocationCreate(CamelModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    type: LocationType = "outlet"
    address: str | None = None
    city: str | None = None
    phone: str | None = None

class LocationUpdate(CamelModel):
    name: str | None = None
    type: LocationType | None = None
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    is_active: bool | None = None

class LocationOut(CamelModel):
    id: str
    tenant_id: str
    code: str
    name: str
    type: str
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

class ProductCreate(CamelModel):
    sku: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    kind: ProductKind
    description: str | None = None
    base_uom: str = "pcs"
    standard_cost: Decimal | None = Field(default=None, ge=0)
    default_price: Decimal | None = Field(default=None, ge=0)
    is_perishable: bool = False
    shelf_life_days: int | None = Field(default=None, ge=0)

class ProductUpdate(CamelModel):
    name: str | None = None
    kind: ProductKind | None = None
    description: str | None = None
    base_uom: str | None = None
    standard_cost: Decimal | None = Field(default=None, ge=0)
    default_price: Decimal | None = Field(default=None, ge=0)
    is_perishable: bool | None = None
    shelf_life_days: int | None = Field(default=None, ge=0)
    is_active: bool | None = None

class ProductOut(CamelModel):
    id: str
    tenant_id: str
    sku: str
    name: str
    kind: str
    description: str | None = None
    base_uom: str
    standard_cost: Decimal | None = None
    default_price: Decimal | None = None
    is_perishable: bool
    shelf_life_days: int | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

class SupplierCreate(CamelModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    tax_id: str | None = None
    payment_terms: int | None = Field(default=None, ge=0)
    credit_limit: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None

class SupplierUpdate(CamelModel):
    name: str | None = None
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    tax_id: str | None = None
    payment_terms: int | None = Field(default=None, ge=0)
    credit_limit: Decimal | None = Field(default=None, ge=0)
    is_active: bool | None = None
    notes: str | None = None

class SupplierOut(CamelModel):
    id: str
    tenant_id: str
    code: str
    name: str
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    tax_id: str | None = None
    payment_terms: int | None = None
    credit_limit: Decimal | None = None
    is_active: bool
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
