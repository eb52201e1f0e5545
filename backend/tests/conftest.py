"""
Shared fixtures: in-memory SQLite database, API client and role tokens
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import ciderhouse.models  # noqa: E402,F401
from ciderhouse.core.database import Base, get_db  # noqa: E402
from ciderhouse.core.security import create_access_token, get_password_hash  # noqa: E402
from ciderhouse.main import app  # noqa: E402
from ciderhouse.models import Batch, BatchStatus, ProductType, ReconciliationStatus, RoleEnum, User, Vessel, VesselMaterial  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _user(db, email: str, role: RoleEnum) -> User:
    user = User(
        email=email,
        name=role.value.capitalize(),
        password_hash=get_password_hash("password123"),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.token_payload())}"}


@pytest.fixture
def admin_user(db):
    return _user(db, "admin@example.com", RoleEnum.admin)


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def operator_headers(db):
    return _headers(_user(db, "operator@example.com", RoleEnum.operator))


@pytest.fixture
def viewer_headers(db):
    return _headers(_user(db, "viewer@example.com", RoleEnum.viewer))


@pytest.fixture
def make_vessel(db):
    def factory(name="T1", capacity_l=1000.0, working_capacity_l=None, **kwargs):
        vessel = Vessel(
            name=name,
            capacity=capacity_l,
            capacity_unit="L",
            capacity_l=capacity_l,
            working_capacity_l=working_capacity_l,
            material=kwargs.pop("material", VesselMaterial.stainless_steel),
            **kwargs
        )
        db.add(vessel)
        db.commit()
        db.refresh(vessel)
        return vessel
    return factory


@pytest.fixture
def make_batch(db):
    def factory(name="B-001", vessel=None, volume_l=500.0, start=datetime(2024, 3, 1), **kwargs):
        batch = Batch(
            name=name,
            vessel_id=vessel.id if vessel else None,
            product_type=kwargs.pop("product_type", ProductType.cider),
            status=kwargs.pop("status", BatchStatus.fermentation),
            reconciliation_status=kwargs.pop("reconciliation_status", ReconciliationStatus.pending),
            initial_volume_l=kwargs.pop("initial_volume_l", volume_l),
            current_volume_l=volume_l,
            start_date=start,
            **kwargs
        )
        db.add(batch)
        db.commit()
        db.refresh(batch)
        return batch
    return factory
