from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from shipflow.db.base import Base
from shipflow.domain.dates import utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient = Column(String(320), nullable=False)
    template_type = Column(String(64), nullable=False, index=True)
    subject = Column(String(300), nullable=False)
    body = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="pending", index=True)
    subject_kind = Column(String(16), nullable=False)
    subject_entity_id = Column(String(36), nullable=False, index=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
