"""
tests/conftest.py
Shared fixtures: a throwaway SQLite database per test, an ASGI client,
the seeded Ramadan calendar and admin session tokens.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="iftar-calendar-tests-")

# Must be set before anything imports config.settings
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/calendar.db")
os.environ.setdefault("ADMIN_USERNAME", "test_admin")
os.environ.setdefault("ADMIN_PASSWORD", "test-password")
os.environ["REDIS_URL"] = ""
os.environ["SEED_CALENDAR_ON_STARTUP"] = "false"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from config.calendar import CalendarConfig, get_calendar_config  # noqa: E402
from config.database import AsyncSessionLocal, Base, engine  # noqa: E402
from config.settings import settings  # noqa: E402
from services.auth.service import AuthService  # noqa: E402
from services.booking.engine import BookingLifecycleEngine  # noqa: E402
from services.calendar.dates import RAMADAN_2026  # noqa: E402
from services.calendar.store import CalendarStore  # noqa: E402
import shared.models.models  # noqa: E402,F401

API = settings.API_PREFIX

WEEKDAY_DATE = date(2026, 2, 23)      # Monday, available
WEEKEND_DATE = date(2026, 2, 22)      # Sunday, available
LAST_TEN_DATE = date(2026, 3, 16)     # 27th night, available
ORG_SPONSORED_DATE = date(2026, 2, 21)
BLOCKED_DATE = date(2026, 2, 18)
HOLIDAY_DATE = date(2026, 3, 20)

SPONSOR = {
    "sponsor_name": "Ali Khan",
    "sponsor_email": "ali.khan@example.com",
    "sponsor_phone": "(555) 123-4567",
    "sponsor_organization": "Khan Family",
    "vendor_name": "Lahore Kitchen",
    "vendor_contact_name": "Omar",
    "vendor_phone": "555-765-4321",
    "special_notes": "No nuts please",
    "payment_method": "zelle",
}


def auth_headers(token: str) -> dict:
    """Return Authorization header for an admin session token."""
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def calendar_config() -> CalendarConfig:
    return get_calendar_config()


@pytest_asyncio.fixture
async def store(db, calendar_config) -> CalendarStore:
    return CalendarStore(db, calendar_config)


@pytest_asyncio.fixture
async def seeded(store) -> CalendarStore:
    """The full Ramadan 1447 calendar, freshly seeded."""
    await store.initialize_calendar(RAMADAN_2026)
    return store


@pytest_asyncio.fixture
async def lifecycle(db, calendar_config, seeded) -> BookingLifecycleEngine:
    return BookingLifecycleEngine(db, calendar_config)


@pytest_asyncio.fixture
async def client(database):
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_token(db) -> str:
    token, _ = await AuthService(db).create_session(settings.ADMIN_USERNAME)
    return token
