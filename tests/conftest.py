import os

os.environ.setdefault("VEHICULOS_DATABASE_URL", "sqlite://")
os.environ.setdefault("VEHICULOS_CACHE_ENABLED", "false")
os.environ.setdefault("VEHICULOS_SCHEDULER_ENABLED", "false")
os.environ.setdefault("VEHICULOS_SEED_ON_STARTUP", "false")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from vehiculos.core.cache import cache_client  # noqa: E402
from vehiculos.core.security import ACCESS, create_token, hash_password  # noqa: E402
from vehiculos.db.base import Base  # noqa: E402
from vehiculos.main import app  # noqa: E402
from vehiculos.models import User, UserRole, Vehicle  # noqa: E402

TEST_DB_URL = "sqlite://"
PASSWORD = "password123"


@pytest.fixture(autouse=True)
def clear_cache():
    cache_client.clear_fallback()
    yield
    cache_client.clear_fallback()


@pytest.fixture()
def session_factory():
    engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture()
def session(session_factory) -> Session:
    db = session_factory()
    password_hash = hash_password(PASSWORD)
    db.add_all(
        [
            User(email="admin@example.com", password_hash=password_hash, first_name="Ada", last_name="Admin", role=UserRole.ADMIN.value),
            User(email="sales@example.com", password_hash=password_hash, first_name="Sam", last_name="Sales", role=UserRole.SALES.value),
            User(email="customer@example.com", password_hash=password_hash, first_name="Cleo", last_name="Customer", role=UserRole.CUSTOMER.value),
            User(email="other@example.com", password_hash=password_hash, first_name="Otto", last_name="Other", role=UserRole.CUSTOMER.value),
        ]
    )
    db.add_all(
        [
            Vehicle(
                brand="Toyota",
                model="Corolla",
                year=2020,
                mileage=45000,
                price=Decimal("18000.00"),
                description="Un solo dueño",
                technical_specs={"engine": "1.8L", "doors": 4, "seats": 5},
            ),
            Vehicle(
                brand="Honda",
                model="Civic",
                year=2019,
                mileage=38000,
                price=Decimal("16500.00"),
                technical_specs={"engine": "1.5L Turbo", "doors": 4, "seats": 5},
            ),
            Vehicle(
                brand="BMW",
                model="3 Series",
                year=2021,
                mileage=22000,
                price=Decimal("32000.00"),
                status="sold",
                technical_specs={"engine": "2.0L Turbo", "doors": 4, "seats": 5},
            ),
        ]
    )
    db.commit()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session: Session) -> TestClient:
    from vehiculos.db.session import get_db

    def _get_db() -> Session:
        return session

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def user_by_email(session: Session, email: str) -> User:
    return session.query(User).filter(User.email == email).one()


def vehicle_by_model(session: Session, model: str) -> Vehicle:
    return session.query(Vehicle).filter(Vehicle.model == model).one()


def bearer(user: User) -> dict[str, str]:
    token, _ = create_token(user.id, user.email, user.role, ACCESS)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(session: Session) -> dict[str, str]:
    return bearer(user_by_email(session, "admin@example.com"))


@pytest.fixture()
def sales_headers(session: Session) -> dict[str, str]:
    return bearer(user_by_email(session, "sales@example.com"))


@pytest.fixture()
def customer_headers(session: Session) -> dict[str, str]:
    return bearer(user_by_email(session, "customer@example.com"))


@pytest.fixture()
def headers_for(session: Session):
    def _headers(email: str) -> dict[str, str]:
        return bearer(user_by_email(session, email))

    return _headers
