
from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "Cafe ERP API"
    app_env: str = "development"
    app_port: int = 8000
    frontend_url: str = "http://localhost:3000"

    # Database (PostgreSQL via asyncpg in production, SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./cafe_erp_dev.db",
        alias="DATABASE_URL",
    )

    # Multi-tenancy default (used when no X-Tenant-ID header is sent)
    default_tenant_id: str = Field(default="default", alias="DEFAULT_TENANT_ID")

    # Orders
    order_tax_rate: Decimal = Field(
        default=Decimal("0.11"), alias="ORDER_TAX_RATE",
    )  # applied to the order subtotal

    # Inventory
    low_stock_threshold: Decimal = Field(
        default=Decimal("10"), alias="LOW_STOCK_THRESHOLD",
    )
    costing_method: str = Field(
        default="fifo", alias="COSTING_METHOD",
    )  # "fifo" | "mavg": unit cost written on issue rows
    expiring_soon_days: int = Field(default=7, alias="EXPIRING_SOON_DAYS")
    expiring_this_month_days: int = Field(default=30, alias="EXPIRING_THIS_MONTH_DAYS")

    # Audit trail for write requests
    audit_enabled: bool = Field(default=True, alias="AUDIT_ENABLED")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

settings = Settings()
