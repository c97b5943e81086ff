"""Services package — all business logic lives here, never in routers.

Files:
  costing.py       — pure FEFO / expiry / moving-average / FIFO algorithms (no I/O)
  doc_sequence.py  — human-friendly document numbers
  ledger.py        — stock-ledger writes with negative-stock prevention
  cost_layers.py   — FIFO cost-layer depletion and restore
  inventory.py     — lots, receipts, adjustments, on-hand, FEFO picking, valuation
  orders.py        — order pricing, order-to-ledger posting, voids, payments, kitchen flow
  pos.py           — POS shifts, drawer movements, cash reconciliation
  stock_counts.py  — physical counts, review, variance posting as adjustments
  master_data.py   — locations, products, suppliers

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
