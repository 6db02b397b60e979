from sqlalchemy import Boolean, Column, String

from shipflow.db.base import Base
from shipflow.db.models.mixins import WorkflowEntityMixin


class Agent(WorkflowEntityMixin, Base):
    __tablename__ = "agents"

    company_name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=True)
    country = Column(String(80), nullable=True)
    port = Column(String(120), nullable=True)
    is_premium_listing = Column(Boolean, nullable=False, default=False)
