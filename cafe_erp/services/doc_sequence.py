"""Human-friendly document numbers (ORD-1A2B-20261019-7F3C)."""

import re
import secrets
from collections.abc import Awaitable, Callable
from datetime import datetime

from cafe_erp.core.exceptions import ConflictError

DEFAULT_RANDOM_LENGTH = 4
MAX_ATTEMPTS = 5


def generate_doc_number(
    entity: str,
    *,
    prefix: str | None = None,
    tenant_id: str | None = None,
    on: datetime | None = None,
    random_length: int = DEFAULT_RANDOM_LENGTH,
    include_time: bool = False,
) -> str:
    """Build ``PREFIX[-TENANT]-YYYYMMDD[-HHMM]-RAND``.

    Random suffixes can collide; callers that persist the number go through
    :func:`next_doc_number`.
    """
    on = on or datetime.now()
    parts = [re.sub(r"[^A-Z0-9]", "", (prefix or entity).upper())]
    if tenant_id:
        parts.append(tenant_id.replace("-", "")[-4:].upper())
    parts.append(on.strftime("%Y%m%d"))
    if include_time:
        parts.append(on.strftime("%H%M"))
    parts.append(secrets.token_hex((random_length + 1) // 2)[:random_length].upper())
    return "-".join(p for p in parts if p)


async def next_doc_number(
    entity: str,
    taken: Callable[[str], Awaitable[object]],
    *,
    attempts: int = MAX_ATTEMPTS,
    **kwargs,
) -> str:
    """Generate numbers until ``taken(number)`` reports a free one."""
    for _ in range(attempts):
        number = generate_doc_number(entity, **kwargs)
        if not await taken(number):
            return number
    raise ConflictError(f"Could not allocate a unique {entity} number, please retry")
