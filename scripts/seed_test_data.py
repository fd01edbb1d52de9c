"""
Seed test data for the profit distribution flow.

Usage:
    python scripts/seed_test_data.py

Or with custom DATABASE_URL:
    DATABASE_URL="postgresql://..." python scripts/seed_test_data.py

This script creates:
- An admin, a partner and two investors (one Arabic-speaking)
- An active deal owned by the partner
- Investments of 6,000 and 4,000 in that deal
- Session tokens for each user, printed for use as the access_token cookie
"""

import asyncio
import os
import sys
from decimal import Decimal

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sahem.auth.jwt import create_access_token
from sahem.config import settings
from sahem.models import (
    Base, Investment, InvestmentStatus, Project, ProjectStatus, User, UserRole
)

TEST_USERS = [
    {"email": "admin@sahem.test", "name": "Test Admin", "role": UserRole.ADMIN, "language": "en"},
    {"email": "partner@sahem.test", "name": "Test Partner", "role": UserRole.PARTNER, "language": "en"},
    {"email": "investor1@sahem.test", "name": "Investor One", "role": UserRole.INVESTOR, "language": "en"},
    {"email": "investor2@sahem.test", "name": "مستثمر اثنان", "role": UserRole.INVESTOR, "language": "ar"},
]

TEST_INVESTMENTS = {
    "investor1@sahem.test": Decimal("6000.00"),
    "investor2@sahem.test": Decimal("4000.00"),
}


async def get_or_create_user(db: AsyncSession, data: dict) -> User:
    user = await db.scalar(select(User).where(User.email == data["email"]))
    if user:
        print(f"  User already exists: {user.email}")
        return user

    user = User(
        email=data["email"],
        name=data["name"],
        role=data["role"],
        preferred_language=data["language"],
        is_active=True,
    )
    db.add(user)
    await db.flush()
    print(f"  Created {user.role.value}: {user.email} (id={user.id})")
    return user


async def create_test_deal(db: AsyncSession, partner: User, investors: dict) -> Project:
    total = sum(TEST_INVESTMENTS.values(), Decimal("0"))
    deal = Project(
        title="Test Real Estate Deal",
        description="Seeded deal for profit distribution testing",
        owner_id=partner.id,
        funding_goal=total,
        current_funding=total,
        status=ProjectStatus.ACTIVE,
    )
    db.add(deal)
    await db.flush()
    print(f"  Created deal #{deal.id}: {deal.title}")

    for email, amount in TEST_INVESTMENTS.items():
        investor = investors[email]
        db.add(Investment(
            investor_id=investor.id,
            project_id=deal.id,
            amount=amount,
            status=InvestmentStatus.ACTIVE,
        ))
        investor.total_invested = (investor.total_invested or Decimal("0")) + amount
        print(f"  Investment: {email} -> {amount}")

    return deal


async def seed_all(create_tables: bool = False):
    """Seed all test data."""
    print("\nConnecting to database...")
    print(f"URL: {settings.database_url[:50]}...")

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        print("\n=== Creating test data ===\n")

        users = {}
        for data in TEST_USERS:
            users[data["email"]] = await get_or_create_user(db, data)

        deal = await create_test_deal(db, users["partner@sahem.test"], users)
        await db.commit()

        print("\n" + "=" * 50)
        print("TEST DATA CREATED SUCCESSFULLY!")
        print("=" * 50)
        print(f"\nDeal #{deal.id} with {len(TEST_INVESTMENTS)} investors\n")
        print("access_token cookies:")
        for email, user in users.items():
            print(f"  {user.role.value:<8} {email}: {create_access_token(user.id, user.role.value)}")

    await engine.dispose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed profit distribution test data")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables from the models instead of relying on migrations",
    )

    args = parser.parse_args()

    asyncio.run(seed_all(create_tables=args.create_tables))
