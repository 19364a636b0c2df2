import logging
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crewup.core.errors import AuthorizationError, CrewUpError
from crewup.db.session import get_db
from crewup.services.billing_service import reconcile_event
from crewup.services.stripe_service import verify_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Billing Webhook"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    db: Session = Depends(get_db),
):
    """
    Stripe webhook endpoint.

    400 before any business logic when the signature is missing or invalid.
    200 for processed, duplicate and unhandled events; 500 when the event could
    not be applied, so Stripe retries the delivery.
    """
    payload = await request.body()

    try:
        event = verify_webhook(payload, stripe_signature)
    except AuthorizationError as e:
        return JSONResponse(status_code=400, content={"error": e.message})

    try:
        outcome = reconcile_event(db, event)
    except CrewUpError as e:
        logger.error(f"Webhook event {event.get('id')} ({event.get('type')}) failed: {e.message}")
        return JSONResponse(status_code=500, content={"error": e.message})
    except SQLAlchemyError:
        logger.exception("Webhook handler error")
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})
    except Exception:
        db.rollback()
        logger.exception(f"Unexpected error handling webhook event {event.get('id')} ({event.get('type')})")
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})

    logger.info(f"Webhook event {event['id']} ({event['type']}): {outcome.value}")
    return {"received": True}
