"""Stock-count schemas."""


from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field

from cafe_erp.schemas.common import CamelModel

StockCountStatus = Literal["draft", "review", "posted"]

class StockCountCreate(CamelModel):
    location_id: str
    notes: str | None = None

class StockCountUpdate(CamelModel):
    location_id: str | None = None
    notes: str | None = None

class StockCountLineCreate(CamelModel):
    product_id: str
    lot_id: str | None = None  # omitted: the unlotted balance
    counted_qty_base: Decimal = Field(ge=0)

class StockCountLineUpdate(CamelModel):
    counted_qty_base: Decimal = Field(ge=0)

class StockCountLineOut(CamelModel):
    id: str
    count_id: str
    product_id: str
    lot_id: str | None = None
    system_qty_base: Decimal
    counted_qty_base: Decimal
    variance_qty_base: Decimal
    created_at: datetime

class StockCountOut(CamelModel):
    id: str
    tenant_id: str
    count_number: str
    location_id: str
    status: str
    notes: str | None = None
    created_by: str | None = None
    posted_by: str | None = None
    posted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    lines: list[StockCountLineOut] = Field(default_factory=list)
