from sqlalchemy import Column, String, DateTime
from crewup.db.base import Base
from crewup.db.models.timestamps import utcnow


class ProcessedStripeEvent(Base):
    """
    Stripe event IDs that have already been applied.

    The primary key makes a second insert of the same event fail, so the
    table doubles as the webhook idempotency set across restarts and instances.
    """
    __tablename__ = "processed_stripe_events"

    event_id = Column(String, primary_key=True)
    event_type = Column(String, nullable=False)
    processed_at = Column(DateTime, default=utcnow, nullable=False)
