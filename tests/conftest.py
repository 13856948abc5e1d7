import os

# Keep the app from creating its development database during tests
os.environ.setdefault("APP_ENV", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from payment_ledger.database import Base, get_db
from payment_ledger.main import app
from payment_ledger import models  # noqa: F401  registers tables on Base
from payment_ledger.models.payment import Payment

# Use TEST_DATABASE_URL from environment, in-memory SQLite by default
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")


def _make_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        return create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(TEST_DATABASE_URL, pool_pre_ping=True)


@pytest.fixture(scope="function")
def engine():
    """Fresh schema for every test."""
    test_engine = _make_engine()
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(db_session):
    """
    Create a TestClient that uses the test database session.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close, the db_session fixture handles it

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _add_payment(db_session, **overrides) -> Payment:
    fields = dict(
        payment_id="pay_test_123",
        idempotency_key="idem_test_123",
        payment_type="bid_fee",
        subject_id="user-42",
        project_id="project-1",
        amount=9,
        status="created",
        provider="razorpay",
    )
    fields.update(overrides)
    payment = Payment(**fields)
    db_session.add(payment)
    db_session.commit()
    db_session.refresh(payment)
    return payment


@pytest.fixture
def sample_payment(db_session):
    """A bid fee payment in CREATED status."""
    return _add_payment(db_session)


@pytest.fixture
def pending_payment(db_session):
    """A bid fee payment linked to a gateway order and awaiting confirmation."""
    return _add_payment(
        db_session,
        payment_id="pay_pending_1",
        idempotency_key="idem_pending_1",
        status="pending",
        order_id="order_abc",
    )


@pytest.fixture
def make_payment(db_session):
    """Factory for payments with arbitrary fields."""
    def _make(**overrides):
        return _add_payment(db_session, **overrides)
    return _make
