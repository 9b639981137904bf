# Shared pytest configuration and fixtures for all test types
import pytest
import pytest_asyncio
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import patch
from datetime import datetime, timezone, timedelta

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.db.session import get_db
from common.db.base import Base
from packages.billing.models.database import (  # noqa: F401
    EventLogEntity,
    PlanEntity,
    RefundEntity,
    SubscriptionEntity,
)
from packages.billing.models.domain.enums import SubscriptionStatus

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def billing_period():
    """A 30 day billing period starting 2026-03-01, as epoch seconds."""
    start = int(datetime(2026, 3, 1, tzinfo=timezone.utc).timestamp())
    return start, start + 30 * 86400


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factory to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession):
    """Create a test client."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def sample_plan(test_db: AsyncSession):
    """Create the basic monthly plan ($10.00)."""
    plan = PlanEntity(
        name="Basic",
        stripe_product_id="prod_basic",
        stripe_price_id="price_basic",
        amount=Decimal("10.00"),
        currency="usd",
        interval="month",
        active=True,
    )
    test_db.add(plan)
    await test_db.commit()
    await test_db.refresh(plan)
    return plan


@pytest_asyncio.fixture(scope="function")
async def premium_plan(test_db: AsyncSession):
    """Create the premium monthly plan ($30.00)."""
    plan = PlanEntity(
        name="Premium",
        stripe_product_id="prod_premium",
        stripe_price_id="price_premium",
        amount=Decimal("30.00"),
        currency="usd",
        interval="month",
        active=True,
    )
    test_db.add(plan)
    await test_db.commit()
    await test_db.refresh(plan)
    return plan


@pytest_asyncio.fixture(scope="function")
async def sample_subscription(test_db: AsyncSession, premium_plan, billing_period):
    """Create an active subscription on the premium plan."""
    subscription = SubscriptionEntity(
        stripe_subscription_id="sub_test123",
        customer_id="cus_test123",
        plan_id=premium_plan.id,
        status=SubscriptionStatus.ACTIVE.value,
        current_period_end=datetime.fromtimestamp(billing_period[1], tz=timezone.utc),
        cancel_at_period_end=False,
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
    )
    test_db.add(subscription)
    await test_db.commit()
    await test_db.refresh(subscription)
    return subscription
