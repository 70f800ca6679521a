"""
Pytest fixtures for all tests.

Provides:
- In-memory SQLite database with the usage triggers installed
- Fake object store and identity provider collaborators
- Application and HTTP client wired to the fakes
- Tenant fixtures with registered bearer tokens
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import storage_gateway.models  # noqa: F401  registers tables and trigger DDL
from storage_gateway.core.database import Base, get_db
from storage_gateway.features.auth.identity import InMemoryIdentityProvider
from storage_gateway.features.auth.principal import Principal
from storage_gateway.features.storage.backends import InMemoryObjectStore
from storage_gateway.main import create_application
from storage_gateway.models import Admin, StorageQuota
from tests.factories import AdminFactory, seed_tier_quotas

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_db_engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single connection alive, otherwise the in-memory
    database disappears between sessions.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session with the same configuration the application uses."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def tier_quotas(db_session: AsyncSession) -> dict[str, int]:
    """Billing-plan quotas plus a small ``trial`` tier for quota scenarios."""
    return await seed_tier_quotas(db_session, trial=5_000_000)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore(bucket="inspections", region="us-east-1")


@pytest.fixture
def identity_provider() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest_asyncio.fixture
async def app(
    db_session: AsyncSession,
    object_store: InMemoryObjectStore,
    identity_provider: InMemoryIdentityProvider,
):
    """
    FastAPI test application.

    Uses the fake collaborators and overrides the database dependency to use
    the test database.
    """
    application = create_application(
        object_store=object_store,
        identity_provider=identity_provider,
    )

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db

    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing API endpoints.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/usage")
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession, tier_quotas) -> Admin:
    """Tenant on the small ``trial`` tier."""
    return await AdminFactory.create(
        db_session,
        company_name="Acme Inspections Ltd.",
        subscription_tier="trial",
    )


@pytest_asyncio.fixture
async def other_admin(db_session: AsyncSession, tier_quotas) -> Admin:
    """Second, unrelated tenant."""
    return await AdminFactory.create(db_session, subscription_tier="professional")


@pytest.fixture
def test_principal(test_admin: Admin) -> Principal:
    return Principal(
        user_id=test_admin.owner_id,
        tenant_id=test_admin.id,
        tier=test_admin.subscription_tier,
        company_name=test_admin.company_name,
    )


@pytest.fixture
def test_token(identity_provider: InMemoryIdentityProvider, test_admin: Admin) -> str:
    token = "acme-owner-access-token"
    identity_provider.register(token, test_admin.owner_id, email="owner@acme.test")
    return token


@pytest.fixture
def other_token(identity_provider: InMemoryIdentityProvider, other_admin: Admin) -> str:
    token = "other-owner-access-token"
    identity_provider.register(token, other_admin.owner_id)
    return token


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient, test_token: str) -> AsyncClient:
    """HTTP client with the test tenant's bearer token."""
    client.headers.update({"Authorization": f"Bearer {test_token}"})
    return client
