"""Shared pytest fixtures for the booking engine test suite."""
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from api.main import app
from core.audit_logger import AuditLogger
from core.record_store import RecordStore
from db.database import get_db
from db.models import Base, Booking
from providers.mock.inventory_provider import MockInventoryProvider
from providers.mock.payment_gateway import MockPaymentGateway

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(TEST_DB_URL, echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def audit_logger(db):
    return AuditLogger(db)


@pytest_asyncio.fixture
async def store(db):
    return RecordStore(db)


@pytest.fixture
def inventory():
    return MockInventoryProvider()


@pytest.fixture
def payments():
    return MockPaymentGateway()


@pytest_asyncio.fixture
async def booking(store) -> Booking:
    """A PENDING consultation booking for two adults."""
    created, _ = await store.create_booking(
        payload={"form": "consultation", "participants": [{"category": "ADULT"}, {"category": "ADULT"}]},
        amount=Decimal("1000.00"),
        submission_id="sub-fixture",
        form_key="consultation",
        participant_count=2,
        contact_email="ama@example.com",
    )
    return created


# ── API test client ────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def api_client(engine):
    """AsyncClient wired to FastAPI with an in-memory DB override."""
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()
