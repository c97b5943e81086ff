"""Stock-count and count-line repositories."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select

from cafe_erp.domain.stock_count import StockCount, StockCountLine
from cafe_erp.repositories.base import BaseRepository


class StockCountRepository(BaseRepository[StockCount]):
    model = StockCount

    async def reload(self, count: StockCount) -> StockCount:
        await self._session.refresh(count, ["lines"])
        return count

    async def get_line(self, line_id: str) -> tuple[StockCountLine, StockCount] | None:
        """Count line joined with its (tenant-scoped) count."""
        result = await self._session.execute(
            select(StockCountLine, StockCount)
            .join(StockCount, StockCountLine.count_id == StockCount.id)
            .where(StockCountLine.id == line_id)
            .where(StockCount.tenant_id == self._tenant_id)
            .limit(1)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def add_line(self, count: StockCount, **kwargs: Any) -> StockCountLine:
        line = StockCountLine(**kwargs)
        count.lines.append(line)
        await self._session.flush()
        return line

    async def delete_line(self, count: StockCount, line: StockCountLine) -> None:
        count.lines.remove(line)
        await self._session.flush()
