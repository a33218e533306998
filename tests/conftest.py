"""
Pytest configuration and fixtures.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("HUBSPOT_PRIVATE_TOKEN", "test-token")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("SYNC_TO_CRM", "true")

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from src.engine import CommissionSettings, DEFAULT_SETTINGS, Period
from src.models import Base
from src.services.hubspot_client import CRMError


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def default_rules():
    return CommissionSettings.from_dict(DEFAULT_SETTINGS)


@pytest.fixture
def november():
    return Period(
        start=datetime(2025, 11, 1, tzinfo=timezone.utc),
        end=datetime(2025, 11, 30, 23, 59, 59, tzinfo=timezone.utc),
    )


class FakeCRM:
    """In-memory stand-in for HubSpotClient with the same async surface."""

    def __init__(self, owners=None, deals=None, meetings=None, fail_owner_ids=()):
        self.owners = owners or []
        self.deals = deals or []
        self.meetings = meetings or {}
        self.fail_owner_ids = set(fail_owner_ids)
        self.deal_searches = []
        self.meeting_searches = []
        self.statements = []

    async def list_owners(self):
        return list(self.owners)

    async def get_owner(self, owner_id):
        for owner in self.owners:
            if str(owner["id"]) == str(owner_id):
                return owner
        raise CRMError("HubSpot API error: 404", status_code=404)

    async def search_deals(self, start, end, extra_filters=None):
        self.deal_searches.append(extra_filters)
        for f in extra_filters or []:
            if f["value"] in self.fail_owner_ids:
                raise CRMError("HubSpot API error: 500", status_code=500)
        return list(self.deals)

    async def search_meetings(self, owner_id, start, end):
        self.meeting_searches.append(owner_id)
        return list(self.meetings.get(owner_id, []))

    async def create_commission_statement(self, properties):
        self.statements.append(properties)
        return f"stmt-{len(self.statements)}"


@pytest.fixture
def fake_crm_factory():
    return FakeCRM
