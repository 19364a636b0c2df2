"""
Shared fixtures: an in-memory SQLite database per test, a TestClient wired to
it, and factories for the rows the services read.
"""
import hashlib
import hmac
import json
import time
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crewup.core import config
from crewup.db.base import Base
from crewup.db.models import Job, Profile, ProximityAlert, Subscription
from crewup.db.models.timestamps import utcnow
from crewup.db.session import get_db
from crewup.main import app


TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

CRON_SECRET = "test-cron-secret"
WEBHOOK_SECRET = "whsec_test_secret"
PRICE_MONTHLY = "price_monthly_test"
PRICE_ANNUAL = "price_annual_test"

CHICAGO = (41.8781, -87.6298)


@pytest.fixture(autouse=True)
def app_config(monkeypatch):
    """Deterministic configuration for every test."""
    monkeypatch.setattr(config, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(config, "SECRET_KEY", "test-jwt-secret")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(config, "STRIPE_PRICE_ID_PRO_MONTHLY", PRICE_MONTHLY)
    monkeypatch.setattr(config, "STRIPE_PRICE_ID_PRO_ANNUAL", PRICE_ANNUAL)
    monkeypatch.setattr(config, "PROXIMITY_ALERT_WINDOW_MINUTES", 10)
    monkeypatch.setattr(config, "PROXIMITY_ALERT_USE_CURSOR", True)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_profile(db):
    def _make(name="Test Worker", role="worker", coords=CHICAGO, **fields):
        lat, lng = coords if coords else (None, None)
        profile = Profile(
            name=name,
            email=fields.pop("email", f"{name.lower().replace(' ', '.')}@example.com"),
            role=role,
            latitude=lat,
            longitude=lng,
            **fields,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile
    return _make


@pytest.fixture
def make_job(db):
    def _make(title="Journeyman Electrician", trade="Electrician", coords=CHICAGO,
              status="active", age=timedelta(minutes=5), now=None, **fields):
        lat, lng = coords if coords else (None, None)
        job = Job(
            title=title,
            trade=trade,
            location=fields.pop("location", "Chicago, IL"),
            employer_name=fields.pop("employer_name", "Acme Builders"),
            latitude=lat,
            longitude=lng,
            status=status,
            created_at=(now or utcnow()) - age,
            **fields,
        )
        db.add(job)
        db.commit()
        db.refresh(job)
        return job
    return _make


@pytest.fixture
def make_alert(db):
    def _make(profile, radius_km=10, trades=("Electrician",), is_active=True):
        alert = ProximityAlert(
            user_id=profile.id,
            radius_km=radius_km,
            trades=list(trades),
            is_active=is_active,
        )
        db.add(alert)
        db.commit()
        db.refresh(alert)
        return alert
    return _make


@pytest.fixture
def make_subscription(db):
    def _make(profile, customer_id="cus_test_123", status="active", plan_type="monthly"):
        subscription = Subscription(
            user_id=profile.id,
            stripe_customer_id=customer_id,
            stripe_subscription_id="sub_test_123",
            stripe_price_id=PRICE_MONTHLY,
            status=status,
            plan_type=plan_type,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription
    return _make


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header for payload."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_id: str, event_type: str, obj: dict) -> dict:
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}


def to_json(event: dict) -> str:
    return json.dumps(event)
