"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from crewup.db.models.profile import Profile
from crewup.db.models.job import Job
from crewup.db.models.proximity_alert import ProximityAlert
from crewup.db.models.notification import Notification
from crewup.db.models.subscription import Subscription
from crewup.db.models.processed_event import ProcessedStripeEvent
from crewup.db.models.job_alert_cursor import JobAlertCursor

__all__ = [
    "Profile",
    "Job",
    "ProximityAlert",
    "Notification",
    "Subscription",
    "ProcessedStripeEvent",
    "JobAlertCursor",
]
