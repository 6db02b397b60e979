from sqlalchemy import Column, DateTime, String, Text

from shipflow.db.base import Base
from shipflow.db.models.mixins import WorkflowEntityMixin


class Shipment(WorkflowEntityMixin, Base):
    __tablename__ = "shipments"

    tracking_number = Column(String(16), nullable=True, unique=True, index=True)
    client_id = Column(String(36), nullable=True, index=True)
    client_email = Column(String(320), nullable=True)
    quote_ref = Column(String(36), nullable=True, unique=True)
    origin_port = Column(String(120), nullable=True)
    destination_port = Column(String(120), nullable=True)
    cargo_type = Column(String(80), nullable=True)
    cargo_description = Column(Text, nullable=True)
    # Business "status changed" time, distinct from updated_at.
    last_update = Column(DateTime(timezone=True), nullable=True)
    internal_notes = Column(Text, nullable=True)
    client_visible_notes = Column(Text, nullable=True)
