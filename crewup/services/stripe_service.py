"""
Stripe service for checkout, billing portal, webhook verification and
subscription retrieval.

Every network call is wrapped so callers only see TransportError.
"""
import json
import logging
from typing import Optional

import stripe

from crewup.core import config
from crewup.core.errors import AuthorizationError, TransportError

logger = logging.getLogger(__name__)

# Initialize Stripe client
if config.STRIPE_SECRET_KEY:
    stripe.api_key = config.STRIPE_SECRET_KEY
else:
    logger.warning("STRIPE_SECRET_KEY not configured - Stripe features disabled")


def verify_webhook(request_body: bytes, signature: Optional[str]) -> dict:
    """
    Verify and parse a Stripe webhook event.

    Args:
        request_body: Raw request body bytes
        signature: Stripe-Signature header value

    Returns:
        Parsed event dictionary

    Raises:
        AuthorizationError: If the signature is missing or does not verify
    """
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
        raise AuthorizationError("Invalid signature")

    if not signature:
        raise AuthorizationError("No signature")

    payload = request_body.decode("utf-8")
    try:
        stripe.WebhookSignature.verify_header(payload, signature, config.STRIPE_WEBHOOK_SECRET)
        event = json.loads(payload)
    except stripe.SignatureVerificationError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise AuthorizationError("Invalid signature") from e
    except ValueError as e:
        logger.error(f"Invalid webhook payload: {e}")
        raise AuthorizationError("Invalid signature") from e

    logger.info(f"Verified webhook event: {event.get('type')}, id={event.get('id')}")
    return event


def retrieve_subscription(subscription_id: str) -> dict:
    """
    Fetch the full subscription object for a checkout session.

    Returned as a plain dict so it reads the same as webhook payloads.
    """
    try:
        subscription = stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        logger.error(f"Stripe error retrieving subscription {subscription_id}: {e}")
        raise TransportError(f"Failed to retrieve subscription: {e}") from e
    return subscription.to_dict()


def create_customer(email: Optional[str], user_id: str) -> str:
    try:
        customer = stripe.Customer.create(
            email=email,
            metadata={"supabase_user_id": user_id},
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating customer for user_id={user_id}: {e}")
        raise TransportError(f"Failed to create customer: {e}") from e

    logger.info(f"Created Stripe customer for user_id={user_id}, customer_id={customer.id}")
    return customer.id


def create_checkout_session(customer_id: str, price_id: str, user_id: str) -> dict:
    """
    Create a Stripe Checkout session for a Pro subscription.

    Args:
        customer_id: Stripe customer ID
        price_id: Stripe price ID (monthly or annual)
        user_id: Profile ID, echoed back in the webhook metadata

    Returns:
        Dictionary with 'url' and 'session_id' keys
    """
    try:
        session = stripe.checkout.Session.create(
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{
                "price": price_id,
                "quantity": 1,
            }],
            success_url=f"{config.APP_URL}/dashboard/subscription?success=true",
            cancel_url=f"{config.APP_URL}/dashboard/subscription?canceled=true",
            metadata={
                "user_id": user_id,
            },
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout session: {e}")
        raise TransportError(f"Failed to create checkout session: {e}") from e

    logger.info(f"Created checkout session for user_id={user_id}, session_id={session.id}")
    return {"url": session.url, "session_id": session.id}


def create_billing_portal_session(customer_id: str) -> dict:
    """
    Create a Stripe Billing Portal session for managing a subscription.

    Returns:
        Dictionary with 'url' key containing portal session URL
    """
    try:
        session = stripe.billing_portal.Session.create(
            customer=customer_id,
            return_url=f"{config.APP_URL}/dashboard/subscription",
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating portal session: {e}")
        raise TransportError(f"Failed to create portal session: {e}") from e

    logger.info(f"Created billing portal session for customer_id={customer_id}")
    return {"url": session.url}
