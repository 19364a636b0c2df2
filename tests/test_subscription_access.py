"""
Tests for entitlement helpers, the reconciliation pass and billing routes.
"""
from types import SimpleNamespace

import pytest

from crewup.core.security import create_access_token
from crewup.db.models import Profile
from crewup.services import stripe_service
from crewup.services.billing_service import reconcile_profile_statuses
from crewup.services.subscription_access import get_subscription_badge, has_pro_access, is_lifetime_pro

from conftest import PRICE_MONTHLY


def _profile(status="free", lifetime=False):
    return SimpleNamespace(subscription_status=status, is_lifetime_pro=lifetime)


@pytest.mark.parametrize("profile, expected", [
    (None, False),
    (_profile(), False),
    (_profile("pro"), True),
    (_profile("free", lifetime=True), True),
])
def test_has_pro_access(profile, expected):
    assert has_pro_access(profile) is expected


def test_is_lifetime_pro():
    assert is_lifetime_pro(_profile(lifetime=True)) is True
    assert is_lifetime_pro(_profile()) is False
    assert is_lifetime_pro(None) is False


def test_subscription_badge():
    assert get_subscription_badge(None) is None
    assert get_subscription_badge(_profile(lifetime=True)) == {"label": "Founding Member", "variant": "lifetime"}
    assert get_subscription_badge(_profile("pro")) == {"label": "Pro", "variant": "pro"}
    assert get_subscription_badge(_profile()) == {"label": "Free", "variant": "free"}


def test_reconcile_profile_statuses(db, make_profile, make_subscription):
    stale_pro = make_profile(name="Stale Pro", subscription_status="pro", is_profile_boosted=True)
    missing_pro = make_profile(name="Missing Pro", subscription_status="free")
    past_due = make_profile(name="Past Due", subscription_status="pro")
    founder = make_profile(name="Founder", subscription_status="pro", is_lifetime_pro=True)
    unpaid = make_profile(name="Unpaid", subscription_status="pro")
    make_subscription(stale_pro, customer_id="cus_1", status="canceled")
    make_subscription(missing_pro, customer_id="cus_2", status="active")
    make_subscription(past_due, customer_id="cus_3", status="past_due")
    make_subscription(founder, customer_id="cus_4", status="canceled")
    make_subscription(unpaid, customer_id="cus_5", status="unpaid")

    assert reconcile_profile_statuses(db) == 2

    db.expire_all()
    assert db.get(Profile, stale_pro.id).subscription_status == "free"
    assert db.get(Profile, stale_pro.id).is_profile_boosted is False
    assert db.get(Profile, missing_pro.id).subscription_status == "pro"
    assert db.get(Profile, past_due.id).subscription_status == "pro"
    assert db.get(Profile, founder.id).subscription_status == "pro"
    # Only the deletion event downgrades, so an unpaid subscription is left as the webhooks left it
    assert db.get(Profile, unpaid.id).subscription_status == "pro"


def _auth(profile):
    return {"Authorization": f"Bearer {create_access_token({'sub': profile.id})}"}


def test_subscription_summary_route(client, make_profile, make_subscription):
    free = make_profile(name="Free Worker")
    paying = make_profile(name="Paying Worker", subscription_status="pro")
    make_subscription(paying)

    free_body = client.get("/billing/subscription", headers=_auth(free)).json()
    paying_body = client.get("/billing/subscription", headers=_auth(paying)).json()

    assert free_body == {"badge": {"label": "Free", "variant": "free"}, "has_pro_access": False, "subscription": None}
    assert paying_body["has_pro_access"] is True
    assert paying_body["subscription"]["plan_type"] == "monthly"


def test_checkout_route_reuses_stored_customer(client, make_profile, make_subscription, monkeypatch):
    worker = make_profile()
    make_subscription(worker, customer_id="cus_existing", status="canceled")
    calls = {}

    def fake_create_customer(email, user_id):
        raise AssertionError("customer should be reused")

    def fake_checkout(customer_id, price_id, user_id):
        calls.update(customer_id=customer_id, price_id=price_id, user_id=user_id)
        return {"url": "https://checkout.stripe.test/cs_1", "session_id": "cs_1"}

    monkeypatch.setattr(stripe_service, "create_customer", fake_create_customer)
    monkeypatch.setattr(stripe_service, "create_checkout_session", fake_checkout)

    response = client.post("/billing/checkout", json={"price_id": PRICE_MONTHLY}, headers=_auth(worker))

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/cs_1", "session_id": "cs_1"}
    assert calls == {"customer_id": "cus_existing", "price_id": PRICE_MONTHLY, "user_id": worker.id}


def test_checkout_route_rejects_bad_price(client, make_profile):
    worker = make_profile()

    malformed = client.post("/billing/checkout", json={"price_id": "monthly"}, headers=_auth(worker))
    unknown = client.post("/billing/checkout", json={"price_id": "price_other"}, headers=_auth(worker))

    assert malformed.status_code == 400
    assert malformed.json()["detail"] == "Invalid price ID format"
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "Unknown price ID"


def test_portal_route_requires_customer(client, make_profile):
    response = client.post("/billing/portal", headers=_auth(make_profile()))

    assert response.status_code == 404
