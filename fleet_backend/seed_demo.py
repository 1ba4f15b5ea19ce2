"""
Database seeding script for a demo company.

Creates one company with an admin, a manager, a dispatcher and a read-only
user, plus a couple of drivers and vehicles.
Run this script after database is set up but before first use.
"""

import asyncio
import sys
from datetime import date
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from fleet_backend.app.db.session import AsyncSessionLocal, engine, Base
# Import models to ensure they are registered with Base
from fleet_backend.app.models.company import Company
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.models.driver import Driver
from fleet_backend.app.models.vehicle import Vehicle
from fleet_backend.app.models.assignment import Assignment
from fleet_backend.app.models.document import Document
from fleet_backend.app.models.audit_log import AuditLog
from fleet_backend.app.models.enums import Role, DriverStatus, VehicleStatus
from fleet_backend.app.core.security import get_password_hash

DEMO_PROFILES = [
    ("admin@demo-fleet.com", "Ada Admin", Role.ADMIN, "admin123"),
    ("manager@demo-fleet.com", "Max Manager", Role.MANAGER, "manager123"),
    ("dispatch@demo-fleet.com", "Dee Dispatcher", Role.DISPATCHER, "dispatch123"),
    ("viewer@demo-fleet.com", "Vic Viewer", Role.USER, "viewer123"),
]


async def seed_demo():
    """
    Seed a demo company.
    
    Creates:
    - 1 company with one profile per role
    - 2 drivers
    - 3 vehicles (one in maintenance)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        print("🌱 Starting demo seeding...")
        
        result = await db.execute(select(Profile).where(Profile.email == DEMO_PROFILES[0][0]))
        if result.scalar_one_or_none():
            print("ℹ️  Demo company already exists, skipping seeding")
            return
        
        company = Company(name="Demo Fleet", email="office@demo-fleet.com", phone="+1 555 0100")
        db.add(company)
        await db.flush()
        
        for email, full_name, role, password in DEMO_PROFILES:
            db.add(Profile(
                company_id=company.id,
                email=email,
                full_name=full_name,
                hashed_password=get_password_hash(password),
                role=role,
                explicit_permissions=[],
                is_active=True,
            ))
            print(f"✅ Created {role.value} profile ({email} / {password})")
        
        db.add_all([
            Driver(company_id=company.id, first_name="Dana", last_name="Reyes",
                   license_number="D-100200", license_expiry=date(2028, 5, 31), status=DriverStatus.ACTIVE),
            Driver(company_id=company.id, first_name="Sam", last_name="Okafor",
                   license_number="D-300400", license_expiry=date(2027, 1, 15), status=DriverStatus.ACTIVE),
        ])
        db.add_all([
            Vehicle(company_id=company.id, make="Ford", model="Transit", year=2022,
                    license_plate="DEMO-001", mileage=18500, status=VehicleStatus.AVAILABLE),
            Vehicle(company_id=company.id, make="Mercedes", model="Sprinter", year=2023,
                    license_plate="DEMO-002", mileage=7200, status=VehicleStatus.AVAILABLE),
            Vehicle(company_id=company.id, make="Iveco", model="Daily", year=2019,
                    license_plate="DEMO-003", mileage=143000, status=VehicleStatus.MAINTENANCE),
        ])
        print("✅ Created 2 drivers and 3 vehicles")
        
        await db.commit()
        
        print(f"\n🎉 Demo seeding completed successfully! (company id {company.id})")


if __name__ == "__main__":
    asyncio.run(seed_demo())
