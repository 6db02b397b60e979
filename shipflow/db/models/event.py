from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from shipflow.db.base import Base
from shipflow.domain.dates import utcnow


class Event(Base):
    """Audit log row. Inserted once, never updated or deleted."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(64), nullable=False, index=True)
    actor_id = Column(String(64), nullable=False)
    subject_kind = Column(String(16), nullable=False)
    subject_entity_id = Column(String(36), nullable=False, index=True)
    details = Column(Text, nullable=False, default="")
    forced = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
