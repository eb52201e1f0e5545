#!/usr/bin/env python3
"""
Ciderhouse Database Setup Script
Creates tables, an admin user, starter vessels and barrel origin types
"""

import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from ciderhouse.core.database import SessionLocal, init_db
from ciderhouse.core.security import get_password_hash
from ciderhouse.models import BarrelOriginType, FruitType, FruitVariety, RoleEnum, User
from ciderhouse.schemas.vessel import VesselCreate
from ciderhouse.services.vessel_service import VesselService

ADMIN_EMAIL = "admin@ciderhouse.example.com"
ADMIN_PASSWORD = "admin12345"

STARTER_VESSELS = [
    VesselCreate(name="T1", capacity=1000, capacity_unit="L", working_capacity=950, jacketed=True),
    VesselCreate(name="T2", capacity=500, capacity_unit="gal", working_capacity=480),
    VesselCreate(name="IBC-1", capacity=1000, capacity_unit="L", material="plastic"),
    VesselCreate(name="B1", capacity=59, capacity_unit="gal", material="wood", toast_level="medium"),
]

STARTER_ORIGINS = [
    ("Bourbon", "Ex-bourbon American oak"),
    ("Rye", "Ex-rye whiskey"),
    ("Calvados", "Ex-apple brandy"),
]

STARTER_VARIETIES = [
    ("Dabinett", FruitType.apple),
    ("Kingston Black", FruitType.apple),
    ("Yarlington Mill", FruitType.apple),
    ("Barland", FruitType.pear),
]


def setup_database():
    """Initialize database with starter data"""

    print("🍏 Setting up Ciderhouse database...")

    print("📊 Creating database tables...")
    init_db()
    print("✅ Tables created")

    db = SessionLocal()

    try:
        existing_admin = db.query(User).filter(User.email == ADMIN_EMAIL).first()
        if existing_admin:
            print("⚠️  Database already has data. Skipping setup.")
            print(f"   Existing admin: {existing_admin.email}")
            return

        print("\n👤 Creating admin user...")
        admin = User(
            email=ADMIN_EMAIL,
            name="Cellar Admin",
            password_hash=get_password_hash(ADMIN_PASSWORD),
            role=RoleEnum.admin,
            is_active=True
        )
        db.add(admin)

        print("\n🪵 Creating barrel origin types...")
        for name, description in STARTER_ORIGINS:
            db.add(BarrelOriginType(name=name, description=description))

        print("\n🍎 Creating fruit varieties...")
        for name, fruit_type in STARTER_VARIETIES:
            db.add(FruitVariety(name=name, fruit_type=fruit_type))
        db.commit()

        print("\n🛢️  Creating vessels...")
        service = VesselService(db)
        for data in STARTER_VESSELS:
            vessel = service.create(data)
            print(f"✅ {vessel.name}: {vessel.capacity_l:.1f} L ({vessel.material.value})")

        print("\n" + "="*60)
        print("🎉 Database setup complete!")
        print("="*60)
        print("\n📝 Login credentials:")
        print(f"   Email:    {ADMIN_EMAIL}")
        print(f"   Password: {ADMIN_PASSWORD}")
        print("\n🌐 API endpoints:")
        print("   API Docs: http://localhost:8000/docs")
        print("   Login:    POST http://localhost:8000/v1/auth/login")
        print()

    except Exception as e:
        print(f"\n❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_database()
