"""
Database seeding script for development data.

Creates an ADMIN and a CUSTOMER profile, the standard vehicle tariffs and
a few drivers, then prints bearer tokens for both profiles.
Run this script after database is set up but before first use.
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from transfer_backend.app.core.jwt import create_access_token
from transfer_backend.app.db.session import AsyncSessionLocal, engine, Base
# Imported so every table is registered before create_all
from transfer_backend.app.models.admin_setting import AdminSetting
from transfer_backend.app.models.audit_log import AuditLog
from transfer_backend.app.models.booking import Booking
from transfer_backend.app.models.driver import Driver
from transfer_backend.app.models.driver_assignment import DriverAssignment
from transfer_backend.app.models.enums import UserRole
from transfer_backend.app.models.profile import Profile
from transfer_backend.app.models.vehicle_tariff import VehicleTariff


TARIFFS = [
    ("Sedan", "Up to 3 passengers with luggage", Decimal("20.00"), Decimal("1.50"), 3, 3),
    ("Business", "Premium sedan", Decimal("35.00"), Decimal("2.10"), 3, 3),
    ("Minivan", "Up to 7 passengers", Decimal("30.00"), Decimal("2.00"), 7, 7),
]

DRIVERS = [
    ("Janis Berzins", "+37120000001", "Skoda Superb, LV-1234"),
    ("Karlis Ozols", "+37120000002", "Mercedes V-Class, LV-5678"),
    ("Marta Liepa", "+37120000003", "Toyota Camry, LV-9012"),
]


async def seed_data():
    """
    Seed profiles, tariffs and drivers.

    Creates:
    - 1 ADMIN profile
    - 1 CUSTOMER profile
    - 3 vehicle tariffs
    - 3 drivers
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")

        existing_admin = await db.scalar(
            select(Profile).where(Profile.email == "admin@transfers.local")
        )

        if existing_admin:
            print("ℹ️  ADMIN profile already exists, skipping seeding")
            admin, customer = existing_admin, await db.scalar(
                select(Profile).where(Profile.email == "customer@transfers.local")
            )
        else:
            admin = Profile(
                email="admin@transfers.local",
                full_name="Dispatch Admin",
                role=UserRole.ADMIN,
                is_active=True
            )
            customer = Profile(
                email="customer@transfers.local",
                full_name="Test Customer",
                phone="+37120000099",
                role=UserRole.CUSTOMER,
                is_active=True
            )
            db.add_all([admin, customer])
            print("✅ Created ADMIN and CUSTOMER profiles")

            for name, description, base_fare, per_km, passengers, luggage in TARIFFS:
                db.add(VehicleTariff(
                    name=name,
                    description=description,
                    base_fare=base_fare,
                    per_kilometer=per_km,
                    max_passengers=passengers,
                    max_luggage=luggage,
                    is_active=True
                ))
            print(f"✅ Created {len(TARIFFS)} vehicle tariffs")

            for full_name, phone, vehicle in DRIVERS:
                db.add(Driver(full_name=full_name, phone=phone, vehicle_info=vehicle, is_active=True))
            print(f"✅ Created {len(DRIVERS)} drivers")

            await db.commit()
            await db.refresh(admin)
            await db.refresh(customer)

        print("\n🎉 Seeding completed successfully!")
        print("\nBearer tokens:")
        print(f"  - ADMIN:    {create_access_token({'sub': admin.email, 'user_id': admin.id})}")
        if customer:
            print(f"  - CUSTOMER: {create_access_token({'sub': customer.email, 'user_id': customer.id})}")


if __name__ == "__main__":
    asyncio.run(seed_data())
