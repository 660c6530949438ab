import os

# Settings are read once at import time; pin the test environment first.
# TEST_DATABASE_URL points the suite at PostgreSQL (required for the
# row-lock concurrency tests); the default is an in-memory SQLite DB.
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL") or "sqlite+pysqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ["ENVIRONMENT"] = "dev"
os.environ["PAYMENT_PROVIDER"] = "mock"
os.environ["DEV_PAYMENT_SECRET"] = "dev-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("STRIPE_SECRET_KEY", None)

import pytest
from fastapi.testclient import TestClient

# FORCE model registration
import app.models  # noqa

from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import SessionLocal, engine


@pytest.fixture(scope="function", autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(schema):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(schema):
    from app.main import app

    with TestClient(app) as c:
        yield c


def token_for(participant_id: str, role: str) -> str:
    return create_access_token(participant_id, role)


def auth(participant_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {token_for(participant_id, role)}"}


@pytest.fixture
def client_headers():
    return auth("client-1", "client")


@pytest.fixture
def other_client_headers():
    return auth("client-2", "client")


@pytest.fixture
def lawyer_a_headers():
    return auth("lawyer-a", "lawyer")


@pytest.fixture
def lawyer_b_headers():
    return auth("lawyer-b", "lawyer")
