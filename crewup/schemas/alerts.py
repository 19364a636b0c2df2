"""
Pydantic schemas for proximity alert settings and notifications.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ProximityAlertUpdate(BaseModel):
    """Request schema for saving proximity alert settings."""
    radius_km: float = Field(..., description="Alert radius in kilometres (5-50)")
    trades: List[str] = Field(..., description="Trades to be alerted about")
    is_active: bool = Field(True, description="Whether the alert is enabled")

    class Config:
        json_schema_extra = {
            "example": {
                "radius_km": 25,
                "trades": ["Electrician", "Plumber"],
                "is_active": True
            }
        }


class ProximityAlertResponse(BaseModel):
    radius_km: float
    trades: List[str]
    is_active: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
