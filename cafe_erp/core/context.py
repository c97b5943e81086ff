"""Per-request tenant / user context."""

from dataclasses import dataclass

from fastapi import Header

from cafe_erp.core.config import settings


@dataclass(frozen=True)
class RequestContext:
    tenant_id: str
    user_id: str | None = None


def get_context(
    x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID", max_length=100),
    x_user_id: str | None = Header(default=None, alias="X-User-ID", max_length=36),
) -> RequestContext:
    """FastAPI dependency resolving the caller's tenant (falls back to the default tenant)."""
    return RequestContext(
        tenant_id=x_tenant_id or settings.default_tenant_id,
        user_id=x_user_id,
    )
