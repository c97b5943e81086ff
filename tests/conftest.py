"""Shared fixtures: an in-memory SQLite database per test and an HTTP client bound to it."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cafe_erp.core.config import settings

settings.audit_enabled = False

import cafe_erp.domain  # noqa: E402,F401
from cafe_erp.db.base import Base, get_db  # noqa: E402
from cafe_erp.main import create_app  # noqa: E402
from tests.helpers import create_location, create_product  # noqa: E402


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def client(session_factory):
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def location(client):
    return await create_location(client)


@pytest.fixture
async def product(client):
    return await create_product(client, default_price="10.00", standard_cost="1.50")
