import uuid
from sqlalchemy import Column, String, Float, Boolean, DateTime
from crewup.db.base import Base
from crewup.db.models.timestamps import utcnow
from crewup.services.geo import Coordinate


class Profile(Base):
    """
    Worker or employer profile.

    subscription_status and the boost fields are written by Stripe webhook
    processing, except on lifetime Pro profiles.
    """
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True)
    role = Column(String, nullable=False, default="worker")  # worker | employer

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    subscription_status = Column(String, nullable=False, default="free")  # free | pro
    is_lifetime_pro = Column(Boolean, nullable=False, default=False)
    is_profile_boosted = Column(Boolean, nullable=False, default=False)
    boost_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def coords(self):
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    def __repr__(self):
        return f"<Profile(id={self.id}, role='{self.role}', subscription_status='{self.subscription_status}')>"
