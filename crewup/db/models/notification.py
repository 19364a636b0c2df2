import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Index
from crewup.db.base import Base
from crewup.db.models.timestamps import utcnow


class Notification(Base):
    """
    In-app notification. Rows are appended by producers such as the
    proximity matcher and only ever have read_at set afterwards.
    """
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    type = Column(String, nullable=False)  # new_job | ...
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )
