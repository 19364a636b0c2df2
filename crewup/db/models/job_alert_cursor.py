from sqlalchemy import Column, String, DateTime
from crewup.db.base import Base


class JobAlertCursor(Base):
    """High-water mark of the last completed proximity alert run."""
    __tablename__ = "job_alert_cursors"

    name = Column(String, primary_key=True)
    last_processed_at = Column(DateTime, nullable=False)
