"""
Global pytest fixtures for the CloudWarden test suite.

Provides:
- Async database session backed by a temporary SQLite file
- FastAPI app and async client wired to that session
- In-memory collaborators (cloud accounts, provider clients, rules)
"""
import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Set test environment BEFORE any cloudwarden imports
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "local"
os.environ["DEBUG"] = "false"

from cloudwarden.schemas.resources import CloudAccount, CloudProvider  # noqa: E402
from tests.utils import FakeCloudAccounts  # noqa: E402


def _register_models():
    # Import all models so Base.metadata knows every table
    from cloudwarden.models.resource import ResourceRecord  # noqa: F401
    from cloudwarden.models.audit_result import AuditResultRecord  # noqa: F401
    from cloudwarden.models.resource_group import ResourceGroupRecord, ResourceGroupMemberRecord  # noqa: F401


_register_models()


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """Create async SQLite engine for testing using a temporary file."""
    from sqlalchemy.ext.asyncio import create_async_engine

    db_url = f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite'}"
    engine = create_async_engine(db_url, echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator:
    """Create database tables and provide async session."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from cloudwarden.db.base import Base

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


# ============================================================================
# Domain Fixtures
# ============================================================================

@pytest.fixture
def aws_account() -> CloudAccount:
    return CloudAccount(
        id=1,
        name="prod-aws",
        provider=CloudProvider.AWS,
        credentials={
            "aws_access_key_id": "AKIATEST",
            "aws_secret_access_key": "secret",
            "region": "eu-west-1",
        },
    )


@pytest.fixture
def gcp_account() -> CloudAccount:
    return CloudAccount(
        id=2,
        name="prod-gcp",
        provider=CloudProvider.GCP,
        credentials={"project_id": "demo-project"},
    )


@pytest.fixture
def azure_account() -> CloudAccount:
    return CloudAccount(id=3, name="azure", provider=CloudProvider.AZURE)


@pytest.fixture
def cloud_accounts(aws_account, gcp_account, azure_account) -> FakeCloudAccounts:
    return FakeCloudAccounts([aws_account, gcp_account, azure_account])


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def async_client_factory(db_session):
    """
    Build an async client for an app created with the given collaborators.
    get_db is overridden to share the test session.
    """
    from httpx import ASGITransport, AsyncClient
    from cloudwarden.db.session import get_db
    from cloudwarden.main import create_app

    clients = []

    async def _build(**collaborators):
        app = create_app(**collaborators)
        app.dependency_overrides[get_db] = lambda: db_session
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _build

    for client in clients:
        await client.aclose()
