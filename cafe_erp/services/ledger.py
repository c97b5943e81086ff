"""Stock-ledger writes with negative-stock prevention.

Every quantity change goes through :meth:`LedgerService.record_movements`.
Outbound rows are checked against the current balance of their
(product, location, lot) key before anything is inserted, so a batch is
either written whole or rejected with :class:`InsufficientStockError`.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.exceptions import InsufficientStockError
from cafe_erp.domain.inventory import StockLedger
from cafe_erp.repositories.inventory import LedgerRepository

logger = logging.getLogger(__name__)

RECEIPT = "rcv"
ISSUE = "iss"
ADJUSTMENT = "adj"


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")


@dataclass(frozen=True)
class LedgerEntry:
    product_id: str
    location_id: str
    type: str
    qty_delta_base: Decimal
    ref_type: str
    ref_id: str
    lot_id: str | None = None
    unit_cost: Decimal | None = None
    note: str | None = None
    created_by: str | None = None
    txn_ts: datetime | None = None

    @property
    def key(self) -> tuple[str, str, str | None]:
        return (self.product_id, self.location_id, self.lot_id)


def build_reversals(
    rows: Iterable[StockLedger],
    *,
    created_by: str | None = None,
    note_prefix: str | None = None,
    ref_id: str | None = None,
    type_override: str | None = None,
) -> list[LedgerEntry]:
    """Mirror ledger rows with negated quantities (type ``<type>_rev``)."""
    reversals = []
    for row in rows:
        note = row.note
        if note_prefix:
            note = f"{note_prefix} {row.note}" if row.note else note_prefix
        reversals.append(
            LedgerEntry(
                product_id=row.product_id,
                location_id=row.location_id,
                lot_id=row.lot_id,
                type=type_override or f"{row.type}_rev",
                qty_delta_base=-Decimal(row.qty_delta_base),
                unit_cost=row.unit_cost,
                ref_type=row.ref_type,
                ref_id=ref_id or row.ref_id,
                note=note,
                created_by=created_by or row.created_by,
            )
        )
    return reversals


class LedgerService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._repo = LedgerRepository(session, tenant_id)

    async def balance(self, product_id: str, location_id: str, lot_id: str | None = None) -> Decimal:
        return await self._repo.balance(product_id, location_id, lot_id)

    async def ensure_available(self, entries: Sequence[LedgerEntry]) -> None:
        """Raise InsufficientStockError if any outbound entry would take its key below zero."""
        # Running balance per key so several issues in one batch are checked together
        running: dict[tuple[str, str, str | None], Decimal] = {}
        for entry in entries:
            if entry.key not in running:
                running[entry.key] = await self._repo.balance(*entry.key)
            new_balance = running[entry.key] + entry.qty_delta_base
            if entry.qty_delta_base < 0 and new_balance < 0:
                raise InsufficientStockError(
                    f"Insufficient stock: current balance {_fmt(running[entry.key])} "
                    f"+ change {_fmt(entry.qty_delta_base)} = {_fmt(new_balance)}. "
                    "Cannot create negative inventory."
                )
            running[entry.key] = new_balance

    async def record_movements(self, entries: Sequence[LedgerEntry]) -> list[StockLedger]:
        if not entries:
            return []
        await self.ensure_available(entries)

        payload = []
        for entry in entries:
            row = asdict(entry)
            if row["txn_ts"] is None:
                row.pop("txn_ts")
            payload.append(row)
        rows = await self._repo.insert_many(payload)
        logger.debug("Recorded %d ledger row(s) for %s", len(rows), entries[0].ref_type)
        return rows

    async def reverse_ref(
        self,
        ref_type: str,
        ref_id: str,
        *,
        types: Sequence[str] | None = None,
        created_by: str | None = None,
        note_prefix: str | None = None,
    ) -> list[StockLedger]:
        """Post reversal rows for every ledger row of a document."""
        rows = await self._repo.by_ref(ref_type, ref_id, types)
        if not rows:
            return []
        return await self.record_movements(
            build_reversals(rows, created_by=created_by, note_prefix=note_prefix)
        )

