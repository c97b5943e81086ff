"""Audit logging middleware — records every state-changing request to audit_trail."""


import asyncio
import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from cafe_erp.core.config import settings

logger = logging.getLogger(__name__)

# Methods that mutate state
_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

_SKIP_SEGMENTS = {"api", "v1"}
# Trailing path segments that name an action rather than an entity
_ACTION_SEGMENTS = {"open", "close", "post", "void", "quote", "allocate", "review"}


def infer_entity(path: str) -> tuple[str, str | None]:
    """Infer (entity_type, entity_id) from a request path.

    /api/v1/orders/<uuid>/post -> ("order", "<uuid>")
    /api/v1/pos/shifts/open    -> ("shift", None)
    """
    parts = [p for p in path.strip("/").split("/") if p and p not in _SKIP_SEGMENTS]
    for index, part in enumerate(parts):
        if len(part) == 36 and part.count("-") == 4:
            entity_type = parts[index - 1] if index > 0 else "unknown"
            return entity_type.rstrip("s"), part
    while len(parts) > 1 and parts[-1] in _ACTION_SEGMENTS:
        parts.pop()
    entity_type = parts[-1] if parts else "unknown"
    return entity_type.rstrip("s"), None  # simple singularize


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs all write operations.

    Each audit row is written asynchronously AFTER the response is sent so it
    never adds latency to the request. Failures in audit logging are caught and
    logged; they never raise to the caller.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000)

        if settings.audit_enabled and request.method in _WRITE_METHODS:
            # Fire-and-forget: don't await here so the response is not delayed
            asyncio.create_task(
                self._record(request, response.status_code, duration_ms)
            )

        return response

    async def _record(
        self, request: Request, status_code: int, duration_ms: int
    ) -> None:
        """Persist an audit row. Errors are logged, never raised."""
        try:
            from cafe_erp.db.base import async_session_factory
            from cafe_erp.domain.audit import AuditTrail

            entity_type, entity_id = infer_entity(request.url.path)
            async with async_session_factory() as session:
                session.add(
                    AuditTrail(
                        tenant_id=request.headers.get("x-tenant-id") or settings.default_tenant_id,
                        user_id=request.headers.get("x-user-id"),
                        ip_address=request.client.host if request.client else None,
                        user_agent=request.headers.get("user-agent"),
                        action=f"{request.method}:{status_code}",
                        entity_type=entity_type,
                        entity_id=entity_id,
                        description=f"{request.method} {request.url.path} -> {status_code} ({duration_ms}ms)",
                    )
                )
                await session.commit()
        except Exception:  # pragma: no cover
            logger.exception("Audit write failed for %s %s", request.method, request.url.path)
