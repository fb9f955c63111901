from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from config import Settings
from database import Base, get_db
from main import create_app
from utils.accounts import AccountRepository
from utils.auth_service import AuthService
from utils.brevo_email import SKIPPED
from utils.otp_ledger import SqlOtpLedger
from utils.tokens import TokenSigner


class FakeDispatcher:
    """Records sends and answers with a fixed outcome."""

    def __init__(self, outcome=SKIPPED):
        self.outcome = outcome
        self.sent = []

    def send(self, to_email, code, *, valid_minutes):
        self.sent.append((to_email, code, valid_minutes))
        return self.outcome


class FrozenClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", jwt_secret="test-secret", mail_enabled=False)


@pytest.fixture
def db_engine():
    engine = create_engine(
        # In-memory DB shared across threads for the TestClient.
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def ledger(db_session, clock):
    return SqlOtpLedger(db_session, ttl_seconds=300, clock=clock)


@pytest.fixture
def accounts(db_session):
    return AccountRepository(db_session)


@pytest.fixture
def service(settings, accounts, ledger, dispatcher):
    return AuthService(
        settings=settings,
        accounts=accounts,
        otps=ledger,
        dispatcher=dispatcher,
        tokens=TokenSigner(settings),
    )


@pytest.fixture
def app(settings, dispatcher, db_session):
    app = create_app(settings, dispatcher=dispatcher)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)
