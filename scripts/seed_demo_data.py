"""
Seed demo data: an admin, a client, three providers, two services and a package.
Prints a bearer token for each seeded user.

Usage:
    python scripts/seed_demo_data.py
"""
import asyncio
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from longa.api.auth import create_access_token
from longa.config import get_settings
from longa.models.package import PackageServiceInclusion, SubscriptionPackage
from longa.models.service import Service, ServiceType
from longa.models.user import User, UserRole

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"email": "admin@longa.example", "full_name": "Ops Admin", "role": UserRole.ADMIN},
    {"email": "client@longa.example", "full_name": "Ndapewa Client", "role": UserRole.CLIENT},
    {
        "email": "maria@longa.example", "full_name": "Maria Shikongo", "role": UserRole.PROVIDER,
        "phone": "+264811110001", "rating": 4.9, "current_work_location": "Windhoek",
        "bank_mobile_number": "0811110001", "verification_status": "verified",
    },
    {
        "email": "tomas@longa.example", "full_name": "Tomas Hamutenya", "role": UserRole.PROVIDER,
        "phone": "+264811110002", "rating": 4.6, "current_work_location": "Windhoek",
        "bank_mobile_number": "0811110002", "verification_status": "verified",
    },
    {
        "email": "selma@longa.example", "full_name": "Selma Iipumbu", "role": UserRole.PROVIDER,
        "phone": "+264811110003", "rating": 4.8, "current_work_location": "Swakopmund",
        "verification_status": "verified",
    },
]


async def seed():
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        existing = (await session.execute(
            select(User).where(User.email == DEMO_USERS[0]["email"])
        )).scalar_one_or_none()
        if existing:
            logger.info("Demo data already present (admin id=%s). Skipping.", existing.id)
            users = (await session.execute(
                select(User).where(User.email.in_([u["email"] for u in DEMO_USERS]))
            )).scalars().all()
        else:
            users = [User(**data) for data in DEMO_USERS]
            session.add_all(users)

            deep_clean = Service(
                name="Deep Clean",
                service_type=ServiceType.ONE_OFF,
                client_price=Decimal("1000.00"),
                commission_percentage=settings.default_commission_percentage,
                duration_minutes=240,
            )
            weekly = Service(
                name="Weekly Tidy",
                service_type=ServiceType.SUBSCRIPTION,
                client_price=Decimal("450.00"),
                provider_fee=Decimal("300.00"),
                duration_minutes=120,
            )
            session.add_all([deep_clean, weekly])
            await session.flush()

            package = SubscriptionPackage(name="Monthly Home Care", price=Decimal("1600.00"))
            session.add(package)
            await session.flush()
            session.add(PackageServiceInclusion(
                package_id=package.id,
                service_id=weekly.id,
                quantity_per_package=4,
                provider_fee_per_job=Decimal("320.00"),
            ))
            await session.commit()
            logger.info("Seeded %d users, 2 services and 1 package", len(users))

    await engine.dispose()

    for user in users:
        print(f"{user.role:<9} {user.email:<24} {create_access_token(user.id)}")


if __name__ == "__main__":
    asyncio.run(seed())
