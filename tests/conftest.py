"""Test configuration and fixtures."""

import os
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Environment must be in place before the app (and its Settings) is imported
os.environ.update(
    {
        "DATABASE_URL": "sqlite:///:memory:",
        "ENVIRONMENT": "development",
        "DISABLE_TRACING": "true",
        "TOKEN_SCHEDULER_ENABLED": "false",
    }
)

from api.dependencies import (  # noqa: E402
    get_session_client,
    get_signer,
    get_token_manager,
)
from core.dependencies import get_settings  # noqa: E402
from core.settings import Settings  # noqa: E402
from db.models import Base, Order, OrderStatus  # noqa: E402
from db.session import get_db, reset_engines  # noqa: E402
from db.stores import SqlTokenStore  # noqa: E402
from main import app  # noqa: E402
from payments.integrity import IntegritySigner  # noqa: E402
from payments.token_manager import TokenManager  # noqa: E402
from payments.transport import ZohoTransport  # noqa: E402
from payments.zoho_oauth import ZohoOAuthClient  # noqa: E402
from payments.zoho_service import ZohoPaymentSessionClient  # noqa: E402

ACCOUNT_ID = "acct_60012345"

INVALID_JSON = object()


class MockResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code, json_data=None, text=""):
        self.status_code = status_code
        self._json_data = {} if json_data is None else json_data
        self.text = text

    def json(self):
        if self._json_data is INVALID_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json_data


class FakeZohoSession:
    """Stands in for requests.Session and routes calls to canned Zoho responses.

    Each response slot may be a MockResponse, an exception instance to raise,
    or a list consumed one item per call.
    """

    def __init__(self):
        self.calls = []
        self.token_response = MockResponse(200, {"access_token": "tok_1"})
        self.create_response = MockResponse(
            201,
            {
                "code": 0,
                "message": "success",
                "payments_session": {"payments_session_id": "sess_123"},
            },
        )
        self.status_response = session_status_response("succeeded", payment_id="pay_789")

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        if url.endswith("/oauth/v2/token"):
            slot = "token_response"
        elif method == "POST":
            slot = "create_response"
        else:
            slot = "status_response"

        response = getattr(self, slot)
        if isinstance(response, list):
            response = response.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def calls_to(self, fragment, method=None):
        return [
            c
            for c in self.calls
            if fragment in c["url"] and (method is None or c["method"] == method)
        ]

    @property
    def token_calls(self):
        return self.calls_to("/oauth/v2/token")

    @property
    def session_calls(self):
        return self.calls_to("/paymentsessions")


def session_status_response(status, payment_id=None, failure_reason=None):
    payments = []
    if payment_id or failure_reason:
        payment = {"payment_id": payment_id, "status": status}
        if failure_reason:
            payment["failure_reason"] = failure_reason
        payments.append(payment)
    return MockResponse(
        200,
        {
            "code": 0,
            "payments_session": {
                "payments_session_id": "sess_123",
                "status": status,
                "payments": payments,
            },
        },
    )


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 10, 19, 9, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeTimer:
    """Records the periodic registration instead of running it."""

    def __init__(self):
        self.interval = None
        self.callback = None
        self.cancelled = False

    def schedule_periodic(self, interval, callback):
        self.interval = interval
        self.callback = callback

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


@pytest.fixture
def mock_settings():
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        ZOHO_CLIENT_ID="1000.CLIENT",
        ZOHO_CLIENT_SECRET="client_secret",
        ZOHO_REFRESH_TOKEN="1000.refresh",
        ZOHO_ACCOUNT_ID=ACCOUNT_ID,
        ZOHO_API_KEY="api_key_test",
        ZOHO_BUSINESS_NAME="Test Store",
        INTEGRITY_SECRET="test-integrity-secret",
        HTTP_TIMEOUT_SECONDS=5.0,
        HTTP_RETRY_ATTEMPTS=2,
        HTTP_RETRY_WAIT_SECONDS=0,
        TOKEN_SCHEDULER_ENABLED=False,
        APP_NAME="Test Gateway",
        DEBUG=True,
        ENVIRONMENT="development",
    )


@pytest.fixture
def test_db_engine():
    """Create a test database engine and setup tables."""
    # StaticPool + check_same_thread=False so every session shares one in-memory DB
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    return sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=test_db_engine
    )


@pytest.fixture
def test_db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def order(test_db_session):
    """A pending 500.00 INR order."""
    order = Order(
        total=Decimal("500.00"),
        currency="INR",
        billing_first_name="Asha",
        billing_last_name="Rao",
        billing_email="asha@example.com",
        billing_phone="9876543210",
        status=OrderStatus.pending,
    )
    test_db_session.add(order)
    test_db_session.commit()
    test_db_session.refresh(order)
    return order


@pytest.fixture
def fake_zoho():
    return FakeZohoSession()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport(mock_settings, fake_zoho):
    return ZohoTransport(
        timeout=mock_settings.HTTP_TIMEOUT_SECONDS,
        attempts=mock_settings.HTTP_RETRY_ATTEMPTS,
        wait_seconds=0,
        session=fake_zoho,
    )


@pytest.fixture
def token_store(session_factory):
    return SqlTokenStore(session_factory)


@pytest.fixture
def token_manager(mock_settings, transport, token_store, clock):
    return TokenManager(
        credentials=mock_settings.credentials,
        oauth_client=ZohoOAuthClient(mock_settings.ZOHO_ACCOUNTS_BASE, transport),
        token_store=token_store,
        clock=clock,
    )


@pytest.fixture
def session_client(mock_settings, token_manager, transport):
    return ZohoPaymentSessionClient(
        credentials=mock_settings.credentials,
        token_manager=token_manager,
        transport=transport,
        payments_base=mock_settings.ZOHO_PAYMENTS_BASE,
    )


@pytest.fixture
def signer(mock_settings, clock):
    return IntegritySigner(mock_settings.INTEGRITY_SECRET, clock=clock)


@pytest.fixture
def client(mock_settings, session_factory, token_manager, session_client, signer):
    """Test client wired to the in-memory database and the fake Zoho session."""
    reset_engines()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_settings] = lambda: mock_settings
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_manager] = lambda: token_manager
    app.dependency_overrides[get_session_client] = lambda: session_client
    app.dependency_overrides[get_signer] = lambda: signer

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_engines()


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (SQLite)")
    config.addinivalue_line("markers", "slow: marks tests as slow running")
