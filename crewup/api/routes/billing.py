"""
Subscription endpoints for the signed-in profile.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from crewup.core.auth_dependency import get_current_profile
from crewup.core.errors import NotFoundError, TransportError, ValidationError
from crewup.db.models.profile import Profile
from crewup.db.session import get_db
from crewup.schemas.billing import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    CreatePortalSessionResponse,
    SubscriptionSummaryResponse,
)
from crewup.services.billing_service import get_subscription_summary, start_checkout, start_portal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.get("/subscription", response_model=SubscriptionSummaryResponse)
def get_my_subscription(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return get_subscription_summary(db, profile)


@router.post("/checkout", response_model=CreateCheckoutSessionResponse)
def create_checkout(
    body: CreateCheckoutSessionRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    try:
        return start_checkout(db, profile, body.price_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except TransportError as e:
        logger.error(f"Checkout session error: user_id={profile.id}, price_id={body.price_id}: {e.message}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@router.post("/portal", response_model=CreatePortalSessionResponse)
def create_portal(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    try:
        return start_portal(db, profile)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except TransportError as e:
        logger.error(f"Portal session error: user_id={profile.id}: {e.message}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
