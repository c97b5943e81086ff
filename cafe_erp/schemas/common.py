"""Schema base shared by every request / response model, plus the health payload."""

from __future__ import annotations

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python.

    ``from_attributes`` lets routers validate ORM rows directly; Decimal
    quantities and amounts are emitted as JSON strings, never floats.
    """

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
        "from_attributes": True,
    }


class HealthResponse(CamelModel):
    status: str = "ok"
    app: str
    env: str
    version: str
    costing_method: str
