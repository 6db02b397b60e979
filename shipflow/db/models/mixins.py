from sqlalchemy import Column, DateTime, Integer, String

from shipflow.domain.dates import utcnow


class WorkflowEntityMixin:
    """Columns shared by every entity the workflow engine mutates."""

    id = Column(String(36), primary_key=True, index=True)
    status = Column(String(32), nullable=False, index=True)
    # Bumped on every conditional update; writes carry the value last read.
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
