import sys
import os
import time

# Add project root to Python path
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT_DIR)

# -----------------------------------------
# TEST ENVIRONMENT (before importing the app)
# -----------------------------------------
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["APP_ENV"] = "development"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["OTP_ECHO_IN_RESPONSE"] = "true"
os.environ["SMS_PROVIDER"] = "log"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app

from api.deps import (
    get_otp_service,
    get_token_blacklist,
    login_limiter,
    send_otp_limiter,
    verify_otp_limiter,
)
from core.security import hash_password
from db import get_db
from models.base import Base
from models.enums import UserRole
from models.user import User
from utils.otp import OtpService
from utils.sms import LogSmsBackend, SmsSender
from utils.store import MemoryStore
from utils.token_blacklist import TokenBlacklist
from tests.factories import USER_PASSWORD, next_phone, fake_email


# -----------------------------------------
# Create test engine + session
# -----------------------------------------
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in TEST_DATABASE_URL else {}
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# -----------------------------------------
# Override DB dependency in FastAPI
# -----------------------------------------
def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


async def no_rate_limit():
    return None


app.dependency_overrides[get_db] = override_get_db
for limiter in (send_otp_limiter, verify_otp_limiter, login_limiter):
    app.dependency_overrides[limiter] = no_rate_limit


# -----------------------------------------
# PYTEST GLOBAL SETUP
# -----------------------------------------
@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create tables before tests start."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


class FakeClock:
    def __init__(self):
        self.now = float(int(time.time()))

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def otp_service(store):
    return OtpService(
        store,
        SmsSender(LogSmsBackend(reveal=True)),
        ttl_seconds=300,
        max_requests=5,
        request_window=900,
        echo_code=True,
    )


# -----------------------------------------
# Fresh OTP ledger per test
# -----------------------------------------
@pytest.fixture(autouse=True)
def override_stores(otp_service, store):
    app.dependency_overrides[get_otp_service] = lambda: otp_service
    app.dependency_overrides[get_token_blacklist] = lambda: TokenBlacklist(store)
    yield
    app.dependency_overrides.pop(get_otp_service, None)
    app.dependency_overrides.pop(get_token_blacklist, None)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# -----------------------------------------
# Test Client
# -----------------------------------------
@pytest.fixture(scope="session")
def client():
    return TestClient(app)


# -----------------------------------------
# Seed users
# -----------------------------------------
@pytest.fixture
def make_user(db):
    def _make(role=UserRole.user, is_active=True, phone=None, email=None, password=USER_PASSWORD):
        user = User(
            email=email or fake_email(),
            hashed_password=hash_password(password),
            first_name="Test",
            last_name="Rider",
            phone=phone or next_phone(),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def rider(make_user):
    return make_user()


@pytest.fixture
def rider_token(client, rider):
    res = client.post("/auth/login", json={"email": rider.email, "password": USER_PASSWORD})
    assert res.status_code == 200, res.text
    return res.json()["data"]["token"]


@pytest.fixture
def auth_headers(rider_token):
    return {"Authorization": f"Bearer {rider_token}"}
