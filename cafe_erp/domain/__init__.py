"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  location.py   — outlets, central kitchens, warehouses
  product.py    — sellable and stocked items
  supplier.py   — vendors we receive stock from
  inventory.py  — lots, the append-only stock ledger, FIFO cost layers
  order.py      — unified POS / online orders, items, payments
  pos.py        — cashier shifts and drawer movements
  stock_count.py — physical counts whose variances post as ledger adjustments
  audit.py      — immutable audit trail (never updated or deleted)
  mixins.py     — shared TimestampMixin, SoftDeleteMixin, TenantMixin
"""

from cafe_erp.domain.audit import AuditTrail
from cafe_erp.domain.inventory import CostLayer, CostLayerConsumption, Lot, StockLedger
from cafe_erp.domain.location import Location
from cafe_erp.domain.order import Order, OrderItem, Payment
from cafe_erp.domain.pos import DrawerMovement, PosShift
from cafe_erp.domain.product import Product
from cafe_erp.domain.stock_count import StockCount, StockCountLine
from cafe_erp.domain.supplier import Supplier

__all__ = [
    "AuditTrail",
    "CostLayer",
    "CostLayerConsumption",
    "DrawerMovement",
    "Location",
    "Lot",
    "Order",
    "OrderItem",
    "Payment",
    "PosShift",
    "Product",
    "StockCount",
    "StockCountLine",
    "StockLedger",
    "Supplier",
]
