"""
Pytest configuration and fixtures.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("IS_PRODUCTION", "true")

from decimal import Decimal

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sahem.models import (
    Base,
    Investment,
    InvestmentStatus,
    Project,
    ProjectStatus,
    SystemSetting,
    User,
    UserRole,
)
from sahem.services import dispatch


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Post-commit email tasks must finish before the database goes away
    await dispatch.drain()
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


# ── Sample marketplace ───────────────────────────────────


@pytest_asyncio.fixture
async def admin(db_session):
    user = User(email="admin@example.com", name="Admin", role=UserRole.ADMIN)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def partner(db_session):
    user = User(email="partner@example.com", name="Nour Partner", role=UserRole.PARTNER)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def investors(db_session):
    """Two investors: A (English) and B (Arabic)."""
    a = User(email="a@example.com", name="Investor A", role=UserRole.INVESTOR, preferred_language="en")
    b = User(email="b@example.com", name="Investor B", role=UserRole.INVESTOR, preferred_language="ar")
    db_session.add_all([a, b])
    await db_session.commit()
    return a, b


@pytest_asyncio.fixture
async def deal(db_session, partner, investors):
    """Active deal with 6,000 from investor A and 4,000 from investor B."""
    a, b = investors
    project = Project(
        title="Riyadh Warehouse",
        description="Logistics warehouse",
        owner_id=partner.id,
        funding_goal=Decimal("10000.00"),
        current_funding=Decimal("10000.00"),
        status=ProjectStatus.FUNDED,
    )
    db_session.add(project)
    await db_session.flush()

    db_session.add_all([
        Investment(investor_id=a.id, project_id=project.id, amount=Decimal("6000.00"), status=InvestmentStatus.ACTIVE),
        Investment(investor_id=b.id, project_id=project.id, amount=Decimal("4000.00"), status=InvestmentStatus.ACTIVE),
    ])
    await db_session.commit()
    return project


@pytest_asyncio.fixture
async def admin_email_setting(db_session):
    db_session.add_all([
        SystemSetting(key="admin_notification_email", value={"v": "ops@example.com"}),
        SystemSetting(key="notify_on_profit_distribution", value={"v": True}),
    ])
    await db_session.commit()
