"""Shared test fixtures.

Every test gets a brand-new in-memory SQLite database. Services commit and
roll back for real, so fixtures commit the rows they create.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bagline.app.core.database import Base, get_db
from bagline.app.core.security import create_access_token, get_password_hash
from bagline.app.main import app
from bagline.app.models.inventory import InventoryItem
from bagline.app.models.order import ComponentType, Order
from bagline.app.models.user import User, UserRole
from bagline.app.services.inventory import create_inventory_item
from bagline.app.services.orders import create_order


# ─── Database ────────────────────────────────────────────────────────────────


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Auth helpers ─────────────────────────────────────────────────────────────


def _make_user(db: Session, username: str, role: UserRole) -> User:
    user = User(
        username=username,
        hashed_password=get_password_hash("password123"),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin_user(db: Session) -> User:
    return _make_user(db, "test_admin", UserRole.ADMIN)


@pytest.fixture()
def staff_user(db: Session) -> User:
    return _make_user(db, "test_staff", UserRole.STAFF)


@pytest.fixture()
def cutting_user(db: Session) -> User:
    return _make_user(db, "test_cutter", UserRole.CUTTING)


@pytest.fixture()
def admin_token(admin_user: User) -> str:
    return create_access_token(subject=str(admin_user.id))


@pytest.fixture()
def staff_token(staff_user: User) -> str:
    return create_access_token(subject=str(staff_user.id))


@pytest.fixture()
def cutting_token(cutting_user: User) -> str:
    return create_access_token(subject=str(cutting_user.id))


def auth(token: str) -> dict[str, str]:
    """Return Authorization header dict."""
    return {"Authorization": f"Bearer {token}"}


# ─── Inventory fixtures ───────────────────────────────────────────────────────


@pytest.fixture()
def fabric(db: Session) -> InventoryItem:
    """100 m of non-woven fabric, booked as opening stock."""
    return create_inventory_item(
        db,
        fields={
            "material_name": "Non-woven 90 GSM Red",
            "unit": "meter",
            "color": "Red",
            "gsm": "90",
            "roll_width": Decimal("40"),
            "purchase_rate": Decimal("12.5"),
        },
        opening_quantity=Decimal("100"),
    )


@pytest.fixture()
def handle_tape(db: Session) -> InventoryItem:
    """50 m of handle tape, booked as opening stock."""
    return create_inventory_item(
        db,
        fields={
            "material_name": "Handle tape 1in",
            "unit": "meter",
            "purchase_rate": Decimal("2"),
        },
        opening_quantity=Decimal("50"),
    )


# ─── Order fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def make_order(db: Session) -> Callable[..., Order]:
    """Factory: ``make_order(components, quantity=1, **fields)``."""

    def _make(components: list[dict[str, Any]], quantity: int = 1, **fields: Any) -> Order:
        return create_order(
            db,
            company_name=fields.pop("company_name", "Acme Retail"),
            quantity=quantity,
            components=components,
            **fields,
        )

    return _make


@pytest.fixture()
def two_part_order(
    make_order: Callable[..., Order], fabric: InventoryItem, handle_tape: InventoryItem
) -> Order:
    """One bag order: 15 m fabric for the body, 5 m tape for the handle."""
    return make_order(
        [
            {
                "component_type": ComponentType.PART,
                "material_id": fabric.id,
                "formula": "manual",
                "consumption": Decimal("15"),
            },
            {
                "component_type": ComponentType.HANDLE,
                "material_id": handle_tape.id,
                "formula": "manual",
                "consumption": Decimal("5"),
            },
        ],
        quantity=1,
    )
