"""
Billing service for Stripe integration.

Reconciles Stripe subscription lifecycle events into local subscription and
profile state, and backs the checkout / portal / subscription endpoints.

Webhook rules:
- Every event ID is applied at most once (processed_stripe_events).
- Lifetime Pro profiles never have subscription_status or boost fields
  changed by webhook processing, in either direction.
- The subscription row is written first; a failed profile write afterwards is
  logged and the event still counts as processed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crewup.core import config
from crewup.core.errors import CrewUpError, NotFoundError, TransportError, ValidationError
from crewup.db.models.processed_event import ProcessedStripeEvent
from crewup.db.models.profile import Profile
from crewup.db.models.subscription import Subscription
from crewup.db.models.timestamps import utcnow
from crewup.services import stripe_service
from crewup.services.subscription_access import get_subscription_badge, has_pro_access

logger = logging.getLogger(__name__)

PROFILE_BOOST_DURATION = timedelta(days=7)

# Subscription statuses that keep a paying profile on Pro
PRO_STATUSES = ("active", "past_due")


@dataclass(frozen=True)
class PeriodDefaults:
    """Offsets from now used when Stripe omits a billing period bound."""
    start_fallback: timedelta = timedelta(0)
    end_fallback: timedelta = timedelta(days=30)


PERIOD_DEFAULTS = PeriodDefaults()


class WebhookOutcome(str, Enum):
    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


def _build_price_mapping() -> Dict[str, str]:
    """Build price ID -> plan type mapping from environment variables."""
    price_to_plan: Dict[str, str] = {}
    if config.STRIPE_PRICE_ID_PRO_MONTHLY:
        price_to_plan[config.STRIPE_PRICE_ID_PRO_MONTHLY] = "monthly"
    if config.STRIPE_PRICE_ID_PRO_ANNUAL:
        price_to_plan[config.STRIPE_PRICE_ID_PRO_ANNUAL] = "annual"
    return price_to_plan


def get_plan_from_price_id(price_id: Optional[str]) -> str:
    """
    Map a Stripe price ID to a local plan type.

    Raises:
        ValidationError: If the price ID is not one of the configured Pro prices
    """
    plan = _build_price_mapping().get(price_id) if price_id else None
    if plan is None:
        logger.error(f"Unknown price ID: {price_id}")
        raise ValidationError("Unknown price ID")
    return plan


def _id_of(value) -> Optional[str]:
    """Stripe fields may hold an ID string or an expanded object."""
    if value is None or isinstance(value, str):
        return value
    return value.get("id")


def _first_item(subscription_data) -> dict:
    items = (subscription_data.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _price_id_of(subscription_data) -> Optional[str]:
    return (_first_item(subscription_data).get("price") or {}).get("id")


def _from_epoch(seconds) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


def _period_bounds(
    subscription_data,
    now: datetime,
    defaults: PeriodDefaults = PERIOD_DEFAULTS,
) -> Tuple[datetime, datetime]:
    """
    Billing period as naive UTC datetimes.

    Newer Stripe API versions report the period on the subscription item
    rather than the subscription, so both places are checked.
    """
    item = _first_item(subscription_data)
    start = subscription_data.get("current_period_start") or item.get("current_period_start")
    end = subscription_data.get("current_period_end") or item.get("current_period_end")

    period_start = _from_epoch(start) if start else now + defaults.start_fallback
    period_end = _from_epoch(end) if end else now + defaults.end_fallback
    return period_start, period_end


def is_event_processed(db: Session, event_id: str) -> bool:
    return db.get(ProcessedStripeEvent, event_id) is not None


def _commit_with_event(db: Session, event: dict) -> bool:
    """
    Commit the pending subscription write together with the processed-event row.

    Returns:
        False if another delivery of the same event committed first
    """
    db.add(ProcessedStripeEvent(event_id=event["id"], event_type=event["type"]))
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_event_processed(db, event["id"]):
            logger.info(f"Event {event['id']} was processed concurrently, skipping")
            return False
        logger.error(f"Integrity error writing subscription for event {event['id']}: {e}")
        raise TransportError("Database operation failed") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error writing subscription for event {event['id']}: {e}")
        raise TransportError("Database operation failed") from e
    return True


def _find_subscription_by_customer(db: Session, customer_id: Optional[str]) -> Subscription:
    subscription = None
    if customer_id:
        try:
            subscription = db.query(Subscription).filter(Subscription.stripe_customer_id == customer_id).first()
        except SQLAlchemyError as e:
            raise TransportError("Database operation failed") from e

    if subscription is None:
        logger.error(f"No subscription found for customer: {customer_id}")
        raise NotFoundError("Subscription not found")
    return subscription


def _update_profile(
    db: Session,
    user_id: str,
    changes: Union[Dict, Callable[[Profile], Dict]],
    reason: str,
) -> None:
    """
    Apply subscription-driven profile changes unless the profile is lifetime Pro.

    Failures are logged and swallowed: the subscription row is already
    committed and the next event (or the reconciliation pass) repairs the profile.
    """
    try:
        profile = db.get(Profile, user_id)
        if profile is None:
            logger.warning(f"Profile {user_id} not found - skipping {reason}")
            return

        if profile.is_lifetime_pro:
            logger.info(f"User {user_id} has lifetime Pro - skipping {reason}")
            return

        resolved = changes(profile) if callable(changes) else changes
        if not resolved:
            return

        for field, value in resolved.items():
            setattr(profile, field, value)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error updating profile {user_id} ({reason}): {e}")


def _boost_changes(now: datetime) -> Dict:
    return {
        "is_profile_boosted": True,
        "boost_expires_at": now + PROFILE_BOOST_DURATION,
    }


def handle_checkout_session_completed(db: Session, event: dict, now: datetime) -> bool:
    """
    Handle checkout.session.completed webhook event.

    Upserts the user's subscription as active, then upgrades the profile to
    Pro and boosts workers for 7 days.

    Raises:
        ValidationError: Missing user_id metadata or unknown price ID
        TransportError: Stripe or database failure
    """
    session_data = event["data"]["object"]
    metadata = session_data.get("metadata") or {}
    user_id = metadata.get("user_id")

    if not user_id:
        logger.error("No user_id in session metadata")
        raise ValidationError("Missing user_id in session metadata")

    subscription_id = _id_of(session_data.get("subscription"))
    stripe_sub = stripe_service.retrieve_subscription(subscription_id)

    price_id = _price_id_of(stripe_sub)
    plan_type = get_plan_from_price_id(price_id)
    period_start, period_end = _period_bounds(stripe_sub, now)

    subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()
    if subscription is None:
        subscription = Subscription(user_id=user_id)
        db.add(subscription)

    subscription.stripe_customer_id = _id_of(session_data.get("customer"))
    subscription.stripe_subscription_id = subscription_id
    subscription.stripe_price_id = price_id
    subscription.status = "active"
    subscription.plan_type = plan_type
    subscription.current_period_start = period_start
    subscription.current_period_end = period_end
    subscription.cancel_at_period_end = bool(stripe_sub.get("cancel_at_period_end") or False)

    if not _commit_with_event(db, event):
        return False

    logger.info(f"Checkout completed: user_id={user_id}, plan={plan_type}, subscription_id={subscription_id}")

    def upgrade(profile: Profile) -> Dict:
        changes = {"subscription_status": "pro"}
        # Profile boost is a worker perk
        if profile.role == "worker":
            changes.update(_boost_changes(now))
        return changes

    _update_profile(db, user_id, upgrade, "subscription_status update")
    return True


def handle_subscription_updated(db: Session, event: dict, now: datetime) -> bool:
    """
    Handle customer.subscription.updated webhook event.

    Syncs status, plan and billing period. An active subscription renews a
    worker's profile boost.
    """
    subscription_data = event["data"]["object"]
    customer_id = _id_of(subscription_data.get("customer"))

    subscription = _find_subscription_by_customer(db, customer_id)

    price_id = _price_id_of(subscription_data)
    plan_type = get_plan_from_price_id(price_id)
    period_start, period_end = _period_bounds(subscription_data, now)
    status = subscription_data.get("status")

    subscription.stripe_subscription_id = subscription_data.get("id")
    subscription.stripe_price_id = price_id
    subscription.status = status
    subscription.plan_type = plan_type
    subscription.current_period_start = period_start
    subscription.current_period_end = period_end
    subscription.cancel_at_period_end = bool(subscription_data.get("cancel_at_period_end") or False)

    user_id = subscription.user_id
    if not _commit_with_event(db, event):
        return False

    logger.info(f"Subscription updated: user_id={user_id}, status={status}, plan={plan_type}")

    if status == "active":
        _update_profile(
            db,
            user_id,
            lambda profile: _boost_changes(now) if profile.role == "worker" else {},
            "subscription renewal updates",
        )
    return True


def handle_subscription_deleted(db: Session, event: dict, now: datetime) -> bool:
    """
    Handle customer.subscription.deleted webhook event.
    Downgrades the profile to free and removes the boost.
    """
    subscription_data = event["data"]["object"]
    customer_id = _id_of(subscription_data.get("customer"))

    subscription = _find_subscription_by_customer(db, customer_id)
    subscription.status = "canceled"
    subscription.cancel_at_period_end = False

    user_id = subscription.user_id
    if not _commit_with_event(db, event):
        return False

    logger.info(f"Subscription deleted: user_id={user_id}")

    _update_profile(
        db,
        user_id,
        {
            "subscription_status": "free",
            "is_profile_boosted": False,
            "boost_expires_at": None,
        },
        "downgrade after cancellation",
    )
    return True


def handle_invoice_payment_failed(db: Session, event: dict, now: datetime) -> bool:
    """
    Handle invoice.payment_failed webhook event.

    Updates subscription status to past_due; the profile keeps Pro until the
    subscription is deleted.
    """
    invoice_data = event["data"]["object"]
    customer_id = _id_of(invoice_data.get("customer"))

    subscription = _find_subscription_by_customer(db, customer_id)
    subscription.status = "past_due"

    user_id = subscription.user_id
    if not _commit_with_event(db, event):
        return False

    logger.warning(f"Invoice payment failed: user_id={user_id}, customer_id={customer_id}")
    return True


EVENT_HANDLERS = {
    "checkout.session.completed": handle_checkout_session_completed,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_failed": handle_invoice_payment_failed,
}


def reconcile_event(db: Session, event: dict, now: Optional[datetime] = None) -> WebhookOutcome:
    """
    Apply one verified Stripe event.

    Args:
        db: Database session
        event: Parsed Stripe event (id, type, data.object)
        now: Processing time (naive UTC); defaults to the current time

    Returns:
        PROCESSED, DUPLICATE (already applied, nothing written) or IGNORED
        (event type we do not handle)

    Raises:
        ValidationError, NotFoundError, TransportError: The event was not
        applied and Stripe should retry it.
    """
    event_id = event["id"]
    event_type = event["type"]

    if is_event_processed(db, event_id):
        logger.info(f"Event {event_id} already processed, skipping")
        return WebhookOutcome.DUPLICATE

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled event type: {event_type}")
        return WebhookOutcome.IGNORED

    try:
        applied = handler(db, event, now or utcnow())
    except (CrewUpError, SQLAlchemyError):
        db.rollback()
        raise

    return WebhookOutcome.PROCESSED if applied else WebhookOutcome.DUPLICATE


def _expected_profile_status(subscription_status: Optional[str]) -> Optional[str]:
    """
    Profile status the webhook events would have left behind.

    Checkout makes a profile Pro and only the deletion event (which stores
    "canceled") makes it free. Other statuses never change the profile, so
    there is nothing to repair.
    """
    if subscription_status in PRO_STATUSES:
        return "pro"
    if subscription_status == "canceled":
        return "free"
    return None


def reconcile_profile_statuses(db: Session) -> int:
    """
    Re-derive profile.subscription_status from the subscriptions table.

    Repairs profiles left behind when a webhook wrote the subscription but
    failed on the profile. Lifetime Pro profiles are never touched.

    Returns:
        Number of profiles changed
    """
    rows = (
        db.query(Profile, Subscription)
        .join(Subscription, Subscription.user_id == Profile.id)
        .filter(Profile.is_lifetime_pro.is_(False))
        .all()
    )

    changed = 0
    for profile, subscription in rows:
        expected = _expected_profile_status(subscription.status)
        if expected is None or profile.subscription_status == expected:
            continue

        logger.warning(
            f"Reconciling profile {profile.id}: subscription_status "
            f"{profile.subscription_status} -> {expected} (subscription status={subscription.status})"
        )
        profile.subscription_status = expected
        if expected == "free":
            profile.is_profile_boosted = False
            profile.boost_expires_at = None
        changed += 1

    if changed:
        db.commit()
    logger.info(f"Profile reconciliation complete: {changed} profiles updated")
    return changed


def get_subscription_summary(db: Session, profile: Profile) -> Dict:
    """Current tier and subscription row (None for free profiles that never paid)."""
    subscription = db.query(Subscription).filter(Subscription.user_id == profile.id).first()
    return {
        "badge": get_subscription_badge(profile),
        "has_pro_access": has_pro_access(profile),
        "subscription": subscription,
    }


def start_checkout(db: Session, profile: Profile, price_id: str) -> dict:
    """
    Start a Stripe Checkout for one of the Pro prices.

    Reuses the customer already stored on the subscription row; otherwise a
    new Stripe customer is created. The subscription row itself is written by
    the checkout.session.completed webhook.
    """
    if not price_id or not price_id.startswith("price_"):
        logger.error(f"Invalid priceId format: price_id={price_id}, user_id={profile.id}")
        raise ValidationError("Invalid price ID format")
    get_plan_from_price_id(price_id)

    subscription = db.query(Subscription).filter(Subscription.user_id == profile.id).first()
    customer_id = subscription.stripe_customer_id if subscription else None
    if not customer_id:
        customer_id = stripe_service.create_customer(profile.email, profile.id)

    return stripe_service.create_checkout_session(customer_id, price_id, profile.id)


def start_portal(db: Session, profile: Profile) -> dict:
    subscription = db.query(Subscription).filter(Subscription.user_id == profile.id).first()
    if not subscription or not subscription.stripe_customer_id:
        raise NotFoundError("No subscription found")
    return stripe_service.create_billing_portal_session(subscription.stripe_customer_id)
