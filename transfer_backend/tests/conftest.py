"""
Centralized Test Configuration.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from transfer_backend.app.main import app
from transfer_backend.app.db.session import get_db, Base
from transfer_backend.app.core.jwt import create_access_token
from transfer_backend.app.core.redis_client import get_redis
import transfer_backend.app.core.redis_client as redis_client_module
from transfer_backend.app.models.booking import Booking
from transfer_backend.app.models.booking_enums import BookingStatus, PaymentMethod, PaymentStatus
from transfer_backend.app.models.driver import Driver
from transfer_backend.app.models.enums import UserRole
from transfer_backend.app.models.profile import Profile
from transfer_backend.app.models.vehicle_tariff import VehicleTariff

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 13:00 in Riga; no night surcharge
DEFAULT_DEPARTURE = datetime(2026, 7, 1, 10, 0, tzinfo=timezone.utc)

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}

# Redis Fixture (Session Scope)
@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()

@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session.
    Global override is safer here than per-test override to avoid app state flux.
    """

    # Patch the global redis client used by the health check
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client

@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


# --- Domain fixtures ---

async def _add(db_session, obj):
    db_session.add(obj)
    await db_session.commit()
    await db_session.refresh(obj)
    return obj

@pytest.fixture
async def admin_profile(db_session):
    return await _add(db_session, Profile(
        email="admin@test.com", full_name="Test Admin", role=UserRole.ADMIN, is_active=True
    ))

@pytest.fixture
async def customer_profile(db_session):
    return await _add(db_session, Profile(
        email="customer@test.com", full_name="Test Customer", phone="+37120000001",
        role=UserRole.CUSTOMER, is_active=True
    ))

@pytest.fixture
async def other_customer_profile(db_session):
    return await _add(db_session, Profile(
        email="other@test.com", full_name="Other Customer", role=UserRole.CUSTOMER, is_active=True
    ))

def auth_headers(profile) -> dict:
    token = create_access_token(data={"sub": profile.email, "user_id": profile.id})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def admin_headers(admin_profile):
    return auth_headers(admin_profile)

@pytest.fixture
def customer_headers(customer_profile):
    return auth_headers(customer_profile)

@pytest.fixture
async def tariff(db_session):
    """Sedan: 20.00 + 1.50/km, 3 passengers, 3 bags."""
    return await _add(db_session, VehicleTariff(
        name="Sedan",
        description="Standard sedan",
        base_fare=Decimal("20.00"),
        per_kilometer=Decimal("1.50"),
        max_passengers=3,
        max_luggage=3,
        is_active=True
    ))

@pytest.fixture
async def drivers(db_session):
    """Three active drivers, returned in name order."""
    created = []
    for name in ("Anna Kalnina", "Boris Petrov", "Clara Ozola"):
        created.append(await _add(db_session, Driver(full_name=name, phone="+37120000100", is_active=True)))
    return created

@pytest.fixture
def make_booking(db_session, customer_profile, tariff):
    """Factory inserting a booking directly, bypassing pricing."""
    async def _make(
        departure_time=DEFAULT_DEPARTURE,
        status=BookingStatus.PENDING,
        payment_method=PaymentMethod.CARD,
        **overrides
    ):
        fields = dict(
            customer_id=customer_profile.id,
            customer_name="Test Customer",
            customer_phone="+37120000001",
            pickup_address="Riga Airport, Latvia",
            pickup_latitude=56.9236,
            pickup_longitude=23.9711,
            destination_address="Old Town, Riga, Latvia",
            destination_latitude=56.9496,
            destination_longitude=24.1052,
            distance_km=Decimal("40.00"),
            duration_minutes=Decimal("35.00"),
            vehicle_tariff_id=tariff.id,
            departure_time=departure_time,
            passenger_count=1,
            luggage_count=1,
            base_price=Decimal("80.00"),
            total_price=Decimal("80.00"),
            status=status,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
        )
        fields.update(overrides)
        return await _add(db_session, Booking(**fields))
    return _make

@pytest.fixture
def other_customer_headers(other_customer_profile):
    return auth_headers(other_customer_profile)

@pytest.fixture
def offline_routing():
    """Routing provider not configured: every lookup uses the great-circle fallback."""
    from transfer_backend.app.services.routing import RoutingService, get_routing_service

    app.dependency_overrides[get_routing_service] = lambda: RoutingService(redis=None, access_token="")
    yield
    app.dependency_overrides.pop(get_routing_service, None)

@pytest.fixture
def sms_dispatch(mocker):
    """Captures confirmation SMS dispatches scheduled by the endpoints."""
    return mocker.patch("transfer_backend.app.api.v1.endpoints.bookings.dispatch_booking_confirmation")
