"""Pytest configuration and fixtures."""

import os

# Point the application engine at a throwaway database before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from decimal import Decimal
from typing import Callable, Generator, List, Tuple

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from siampos.core.email import EmailService, get_email_service
from siampos.core.rbac import UserRole
from siampos.core.security import create_access_token, get_password_hash
from siampos.db.base import Base
from siampos.db.session import enable_sqlite_foreign_keys, get_db
from siampos.main import app
# Import all models to ensure they're registered with Base.metadata
from siampos.models import *
from siampos.models.menu import Menu, MenuCategory
from siampos.models.restaurant import Restaurant
from siampos.models.table import DiningTable
from siampos.models.user import User

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_PASSWORD = "testpass123"


class RecordingEmailService(EmailService):
    """Email service that records messages instead of sending them."""

    def __init__(self):
        super().__init__(smtp_host="")
        self.sent: List[Tuple[str, str, str]] = []

    def send_password_reset(self, to: str, token: str) -> bool:
        self.sent.append(("password_reset", to, token))
        return True

    def send_email_verification(self, to: str, token: str) -> bool:
        self.sent.append(("email_verification", to, token))
        return True

    def tokens(self, kind: str) -> List[str]:
        return [token for sent_kind, _, token in self.sent if sent_kind == kind]


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def email_outbox() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture(scope="function")
def client(db_session: Session, email_outbox: RecordingEmailService) -> Generator[TestClient, None, None]:
    """Create a test client with database and email overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_outbox
    # Disable rate limiting during tests to avoid flaky failures
    from siampos.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


def _make_restaurant(db: Session, tax_id: str, name: str, promptpay_id: str = None) -> Restaurant:
    restaurant = Restaurant(
        name_th=f"ร้าน{name}",
        name_en=name,
        tax_id=tax_id,
        promptpay_id=promptpay_id,
    )
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    return restaurant


@pytest.fixture
def restaurant(db_session: Session) -> Restaurant:
    return _make_restaurant(db_session, "1234567890121", "Baan Thai", promptpay_id="0812345678")


@pytest.fixture
def other_restaurant(db_session: Session) -> Restaurant:
    return _make_restaurant(db_session, "9999999999994", "Other Kitchen")


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory creating an active user with the shared test password."""
    def _make(restaurant: Restaurant, role: UserRole = UserRole.STAFF, email: str = None) -> User:
        user = User(
            email=email or f"{role.value.lower()}@{restaurant.tax_id}.example.com",
            password_hash=get_password_hash(TEST_PASSWORD),
            role=role,
            restaurant_id=restaurant.id,
            name_en=f"Test {role.value.title()}",
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def owner(make_user, restaurant) -> User:
    return make_user(restaurant, UserRole.OWNER)


@pytest.fixture
def admin(make_user, restaurant) -> User:
    return make_user(restaurant, UserRole.ADMIN)


@pytest.fixture
def manager(make_user, restaurant) -> User:
    return make_user(restaurant, UserRole.MANAGER)


@pytest.fixture
def staff(make_user, restaurant) -> User:
    return make_user(restaurant, UserRole.STAFF)


@pytest.fixture
def other_owner(make_user, other_restaurant) -> User:
    return make_user(other_restaurant, UserRole.OWNER)


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def owner_headers(owner: User) -> dict:
    return headers_for(owner)


@pytest.fixture
def admin_headers(admin: User) -> dict:
    return headers_for(admin)


@pytest.fixture
def manager_headers(manager: User) -> dict:
    return headers_for(manager)


@pytest.fixture
def staff_headers(staff: User) -> dict:
    return headers_for(staff)


@pytest.fixture
def other_headers(other_owner: User) -> dict:
    return headers_for(other_owner)


@pytest.fixture
def category(db_session: Session, restaurant: Restaurant) -> MenuCategory:
    category = MenuCategory(
        restaurant_id=restaurant.id,
        name_th="อาหารจานเดียว",
        name_en="Single Dishes",
        sort_order=1,
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def menu_items(db_session: Session, restaurant: Restaurant, category: MenuCategory) -> List[Menu]:
    """Pad Thai (180.00) and Thai iced tea (45.00)."""
    items = [
        Menu(
            restaurant_id=restaurant.id,
            category_id=category.id,
            name_th="ผัดไทย",
            name_en="Pad Thai",
            price_thb=Decimal("180.00"),
            spice_level=2,
        ),
        Menu(
            restaurant_id=restaurant.id,
            category_id=category.id,
            name_th="ชาเย็น",
            name_en="Thai Iced Tea",
            price_thb=Decimal("45.00"),
        ),
    ]
    db_session.add_all(items)
    db_session.commit()
    for item in items:
        db_session.refresh(item)
    return items


@pytest.fixture
def dining_table(db_session: Session, restaurant: Restaurant) -> DiningTable:
    table = DiningTable(restaurant_id=restaurant.id, table_number="A1", capacity=4)
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def order_payload(restaurant: Restaurant, menu_items: List[Menu]) -> dict:
    return {
        "restaurant_id": restaurant.id,
        "customer_name": "Somchai",
        "order_items": [
            {"menu_id": menu_items[0].id, "quantity": 1, "unit_price_thb": 180.00},
            {"menu_id": menu_items[1].id, "quantity": 1, "unit_price_thb": 45.00},
        ],
        "service_charge_percentage": 10,
        "tax_rate": 7,
    }
