"""Cafe ERP API — FastAPI application factory."""


import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cafe_erp.core.config import settings
from cafe_erp.core.exceptions import register_exception_handlers
from cafe_erp.middleware.audit import AuditMiddleware
from cafe_erp.schemas.common import HealthResponse

# v1 routers
from cafe_erp.routers.v1.inventory import router as inventory_v1_router
from cafe_erp.routers.v1.locations import router as locations_v1_router
from cafe_erp.routers.v1.orders import router as orders_v1_router
from cafe_erp.routers.v1.pos import router as pos_v1_router
from cafe_erp.routers.v1.products import router as products_v1_router
from cafe_erp.routers.v1.stock_counts import router as stock_counts_v1_router
from cafe_erp.routers.v1.suppliers import router as suppliers_v1_router


def _configure_logging() -> None:
    """Set up structured logging for the application."""
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url="/redoc" if settings.app_env == "development" else None,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Audit middleware ---
    app.add_middleware(AuditMiddleware)

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- v1 API routes (/api/v1/*) ---
    for router in (
        locations_v1_router,
        products_v1_router,
        suppliers_v1_router,
        inventory_v1_router,
        orders_v1_router,
        pos_v1_router,
        stock_counts_v1_router,
    ):
        app.include_router(router, prefix="/api/v1")

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(
            app=settings.app_name,
            env=settings.app_env,
            version=app.version,
            costing_method=settings.costing_method,
        )

    return app


app = create_app()
