import re
from datetime import datetime

import pytest

from cafe_erp.core.exceptions import ConflictError
from cafe_erp.middleware.audit import infer_entity
from cafe_erp.services.doc_sequence import generate_doc_number, next_doc_number


def test_doc_number_layout():
    number = generate_doc_number(
        "order", prefix="ORD", tenant_id="acme-bakery-01", on=datetime(2026, 5, 4, 9, 30)
    )
    assert re.fullmatch(r"ORD-RY01-20260504-[0-9A-F]{4}", number)


def test_doc_number_with_time_and_longer_suffix():
    number = generate_doc_number(
        "lot", on=datetime(2026, 5, 4, 9, 30), include_time=True, random_length=6
    )
    assert re.fullmatch(r"LOT-20260504-0930-[0-9A-F]{6}", number)


def test_doc_numbers_differ():
    assert generate_doc_number("order", random_length=12) != generate_doc_number("order", random_length=12)


async def test_next_doc_number_skips_taken_numbers(monkeypatch):
    numbers = iter(["A", "B", "C"])
    monkeypatch.setattr(
        "cafe_erp.services.doc_sequence.generate_doc_number", lambda *args, **kwargs: next(numbers)
    )

    async def is_taken(number):
        return number in {"A", "B"}

    assert await next_doc_number("order", is_taken) == "C"


async def test_next_doc_number_gives_up_with_conflict():
    async def always_taken(number):
        return True

    with pytest.raises(ConflictError):
        await next_doc_number("order", always_taken, attempts=3)


def test_audit_entity_inference():
    order_id = "3f2b8c1e-1a2b-4c3d-8e9f-0a1b2c3d4e5f"
    assert infer_entity(f"/api/v1/orders/{order_id}/post") == ("order", order_id)
    assert infer_entity("/api/v1/pos/shifts/open") == ("shift", None)
    assert infer_entity("/api/v1/inventory/receipts") == ("receipt", None)
    assert infer_entity(f"/api/v1/stock-counts/{order_id}/review") == ("stock-count", order_id)
