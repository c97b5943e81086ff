"""Pydantic schemas package.

Folder intent:
  common.py       — CamelModel base (camelCase wire names) + HealthResponse
  master_data.py  — locations, products, suppliers
  inventory.py    — lots, ledger, on-hand, FEFO picking, costing, valuation
  order.py        — orders, payments, kitchen flow
  pos.py          — shifts and drawer movements
  stock_count.py  — stock counts and counted lines
"""
