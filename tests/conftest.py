"""
Pytest fixtures for the cafe ledger tests.

Provides an in-memory database per test, principals for each role, a product
factory, and an HTTP client wired to the same database.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cafe_ledger.core.security import create_access_token
from cafe_ledger.db.database import Base, build_engine, get_db
from cafe_ledger.main import app
from cafe_ledger.models import User, UserRole
from cafe_ledger.schemas.inventory import ProductCreate
from cafe_ledger.services import products
from cafe_ledger.services.access import Principal


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory schema for each test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


def _make_user(db_session, external_id: str, name: str, role: UserRole) -> User:
    user = User(external_id=external_id, email=f"{external_id}@cafe.test", name=name, role=role)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db_session):
    return _make_user(db_session, "admin", "Ayu Admin", UserRole.ADMIN)


@pytest.fixture(scope="function")
def manager_user(db_session):
    return _make_user(db_session, "manager", "Made Manager", UserRole.MANAGER)


@pytest.fixture(scope="function")
def viewer_user(db_session):
    return _make_user(db_session, "viewer", "Vina Viewer", UserRole.VIEWER)


@pytest.fixture(scope="function")
def admin(admin_user):
    return Principal.from_user(admin_user)


@pytest.fixture(scope="function")
def manager(manager_user):
    return Principal.from_user(manager_user)


@pytest.fixture(scope="function")
def viewer(viewer_user):
    return Principal.from_user(viewer_user)


@pytest.fixture(scope="function")
def make_product(db_session, manager):
    """Create a product through the service so it starts with a valid ledger."""

    def _make(sku: str = "ESP-001", name: str = "Espresso Beans", **overrides):
        fields = {
            "sku": sku,
            "name": name,
            "category": "Coffee",
            "unit": "kg",
            "unit_cost": Decimal("0"),
            "qty": 0,
            "reorder_level": 0,
        }
        fields.update(overrides)
        return products.create_product(db_session, manager, ProductCreate(**fields))

    return _make


@pytest.fixture(scope="function")
def when():
    """A fixed point in time inside one month, so period filters are predictable."""
    return datetime(2026, 10, 15, 10, 0, 0)


@pytest.fixture(scope="function")
def client(session_factory):
    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def auth_headers():
    """Bearer headers carrying an identity token for the given user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(user.external_id, email=user.email, name=user.name)
        return {"Authorization": f"Bearer {token}"}

    return _headers
