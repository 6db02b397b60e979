from sqlalchemy import Boolean, Column, Date, String

from shipflow.db.base import Base
from shipflow.db.models.mixins import WorkflowEntityMixin


class Subscription(WorkflowEntityMixin, Base):
    __tablename__ = "subscriptions"

    client_id = Column(String(36), nullable=False, index=True)
    client_email = Column(String(320), nullable=True)
    plan_type = Column(String(32), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
