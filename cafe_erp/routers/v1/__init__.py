"""v1 router package — all /api/v1/* endpoints live here.

Files:
  locations.py  — outlet / kitchen / warehouse master data
  products.py   — product master data
  suppliers.py  — supplier master data
  inventory.py  — lots, receipts, movements, ledger, on-hand, FEFO, costing, valuation
  orders.py     — orders, posting to stock, payments, kitchen flow
  pos.py        — POS shifts and cash drawer
  stock_counts.py — physical counts, review and variance posting

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to cafe_erp/services/.
"""
