import uuid
from sqlalchemy import Column, String, Float, Boolean, DateTime, ForeignKey, JSON
from crewup.db.base import Base
from crewup.db.models.timestamps import utcnow


class ProximityAlert(Base):
    """
    A worker's saved search: notify me about new jobs in these trades within radius_km.

    One row per user; saving new settings overwrites the old row.
    """
    __tablename__ = "proximity_alerts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), unique=True, nullable=False)
    radius_km = Column(Float, nullable=False)
    trades = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
