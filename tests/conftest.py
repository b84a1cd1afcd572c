"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown
- FastAPI test client with swapped rate limiters, email service and clock
- Stores and customers
"""

from datetime import datetime, timedelta, timezone

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, get_db
from app.core.deps import get_clock, get_email_service, get_rate_limiters
from app.core.rate_limiter import build_rate_limiters
from app.models.customer import Customer
from app.models.store import Store
from app.services.email_service import EmailService
from main import app


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class ManualClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start=None):
        # Real "now" so cookies issued in tests are not already expired
        self.now = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeSESClient:
    """Stands in for the boto3 SES client; records every send_email call."""

    def __init__(self):
        self.sent = []
        self.error_code = None
        self.error_message = None

    def fail_with(self, error_code="MessageRejected", message="Email address is not verified"):
        self.error_code = error_code
        self.error_message = message

    def send_email(self, **kwargs):
        if self.error_code:
            raise ClientError(
                {"Error": {"Code": self.error_code, "Message": self.error_message}},
                "SendEmail",
            )
        self.sent.append(kwargs)
        return {"MessageId": f"msg-{len(self.sent)}"}


@pytest.fixture
def db_session():
    """
    Create a fresh database session for each test.
    Tables are dropped after the test completes.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def limiters(clock):
    """Fresh in-memory send/verify limiters driven by the test clock."""
    return build_rate_limiters(settings, clock=clock)


@pytest.fixture
def ses_client():
    return FakeSESClient()


@pytest.fixture
def mailer(ses_client):
    return EmailService(ses_client=ses_client)


@pytest.fixture
def client(db_session, limiters, mailer, clock):
    """
    FastAPI test client with overridden dependencies.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiters] = lambda: limiters
    app.dependency_overrides[get_email_service] = lambda: mailer
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def store(db_session):
    store = Store(
        slug="location-velo",
        name="Location Vélo",
        email="contact@location-velo.fr",
        primary_color="#2563eb",
    )
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def other_store(db_session):
    store = Store(slug="kayak-club", name="Kayak Club", email="hello@kayak-club.fr")
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def customer(db_session, store):
    customer = Customer(
        store_id=store.id,
        email="Jane.Doe@Example.com",
        first_name="Jane",
        last_name="Doe",
        phone="+33600000000",
    )
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer
