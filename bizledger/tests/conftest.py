"""
Centralized Test Configuration.
"""

import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool
from redis.exceptions import ConnectionError as RedisConnectionError

from bizledger.app.main import app
from bizledger.app.db.session import get_db, Base
from bizledger.app.core.jwt import issue_token
import bizledger.app.core.redis_client as redis_client_module
from bizledger.app.models.enums import UserRole
from bizledger.app.models.sale import Sale
from bizledger.app.models.payment_schedule import PaymentSchedule
from bizledger.app.models.expenditure import Expenditure

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class FakeRedis:
    """
    In-process stand-in for the report cache.

    Records the TTL of every write. Setting `down` makes every call raise
    like an unreachable server.
    """

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("Error connecting to fake redis")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        self._check()
        removed = [key for key in keys if self.store.pop(key, None) is not None]
        for key in removed:
            self.ttls.pop(key, None)
        return len(removed)

    def reset(self):
        self.store.clear()
        self.ttls.clear()
        self.down = False


@pytest.fixture(scope="session")
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(fake_redis):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = fake_redis

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(fake_redis):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    fake_redis.reset()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def _auth_headers(role: UserRole, user_id: str, username: str) -> dict:
    token = issue_token(user_id=user_id, username=username, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _auth_headers(UserRole.ADMIN, "u-admin", "admin")


@pytest.fixture
def accountant_headers():
    return _auth_headers(UserRole.ACCOUNTANT, "u-accountant", "accountant")


@pytest.fixture
def viewer_headers():
    return _auth_headers(UserRole.VIEWER, "u-viewer", "viewer")


class Seeder:
    """Inserts collaborator-owned business records the ledger posts from."""

    BASE_DATE = datetime(2024, 3, 1, tzinfo=timezone.utc)

    def __init__(self, db: AsyncSession):
        self.db = db
        self._tick = 0

    def _next_date(self) -> datetime:
        # Later inserts are newer
        self._tick += 1
        return self.BASE_DATE + timedelta(hours=self._tick)

    async def sale(self, id, total, customer_name="Acme", status="completed", user_id="u-1"):
        sale = Sale(
            id=id, customer_name=customer_name, total=total,
            status=status, date=self._next_date(), user_id=user_id,
        )
        self.db.add(sale)
        await self.db.commit()
        return sale

    async def payment(self, id, amount, customer="Acme", product="Widget Rental",
                      payment_method="cash", status="paid", paid=True, user_id="u-1"):
        payment = PaymentSchedule(
            id=id, customer=customer, product=product, amount=amount,
            payment_method=payment_method, status=status,
            paid_date=self._next_date() if paid else None, user_id=user_id,
        )
        self.db.add(payment)
        await self.db.commit()
        return payment

    async def expense(self, id, amount, description="Office supplies", category=None,
                      type="purchase", user_id="u-1"):
        expense = Expenditure(
            id=id, description=description, amount=amount, category=category,
            type=type, date=self._next_date(), user_id=user_id,
        )
        self.db.add(expense)
        await self.db.commit()
        return expense

    async def reference_events(self):
        """One sale, one payment and one fixed-capital expense."""
        await self.sale("s1", 150.00, customer_name="Acme")
        await self.payment("p1", 75.00, customer="Acme", product="Widget Rental", payment_method="cash")
        await self.expense("e1", 40.00, description="New forklift", category="fixed-capital")


@pytest.fixture
def seed(db_session):
    return Seeder(db_session)
