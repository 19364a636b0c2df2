"""
Pydantic schemas for billing endpoints.
"""
from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, Field


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for creating checkout session."""
    price_id: str = Field(..., description="Stripe price ID of the monthly or annual Pro plan")

    class Config:
        json_schema_extra = {
            "example": {
                "price_id": "price_1PmonthlyXXXX"
            }
        }


class CreateCheckoutSessionResponse(BaseModel):
    """Response schema for checkout session creation."""
    url: str = Field(..., description="Stripe checkout session URL")
    session_id: str = Field(..., description="Stripe checkout session ID")


class CreatePortalSessionResponse(BaseModel):
    """Response schema for portal session creation."""
    url: str = Field(..., description="Stripe customer portal URL")


class SubscriptionResponse(BaseModel):
    status: str
    plan_type: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False

    class Config:
        from_attributes = True


class SubscriptionSummaryResponse(BaseModel):
    """Current tier plus the paid subscription, if any."""
    badge: Optional[Dict[str, str]] = None
    has_pro_access: bool
    subscription: Optional[SubscriptionResponse] = None
