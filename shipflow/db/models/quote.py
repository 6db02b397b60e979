from sqlalchemy import Column, Numeric, String, Text

from shipflow.db.base import Base
from shipflow.db.models.mixins import WorkflowEntityMixin


class Quote(WorkflowEntityMixin, Base):
    __tablename__ = "quotes"

    client_id = Column(String(36), nullable=True, index=True)
    client_email = Column(String(320), nullable=True)
    origin_port = Column(String(120), nullable=True)
    destination_port = Column(String(120), nullable=True)
    cargo_type = Column(String(80), nullable=True)
    cargo_description = Column(Text, nullable=True)
    client_decision = Column(String(16), nullable=False, default="pending")
    payment_status = Column(String(16), nullable=False, default="pending")
    quote_amount = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=True)
    shipment_ref = Column(String(36), nullable=True, unique=True)
