"""
Job posting created by an employer.
"""
import uuid
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index
from crewup.db.base import Base
from crewup.db.models.timestamps import utcnow
from crewup.services.geo import Coordinate

JOB_STATUSES = ("draft", "active", "filled", "expired")


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employer_id = Column(String(36), ForeignKey("profiles.id"), nullable=True, index=True)
    employer_name = Column(String, nullable=True)

    title = Column(String, nullable=False)
    trade = Column(String, nullable=False, index=True)
    location = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    status = Column(String, nullable=False, default="draft")  # draft | active | filled | expired
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # The proximity matcher filters on both columns every run
    __table_args__ = (
        Index("idx_jobs_status_created", "status", "created_at"),
    )

    @property
    def coords(self):
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    def __repr__(self):
        return f"<Job(id={self.id}, title='{self.title}', trade='{self.trade}', status='{self.status}')>"
