from shipflow.db.models.quote import Quote
from shipflow.db.models.shipment import Shipment
from shipflow.db.models.agent import Agent
from shipflow.db.models.subscription import Subscription
from shipflow.db.models.event import Event
from shipflow.db.models.notification import Notification

__all__ = ["Quote", "Shipment", "Agent", "Subscription", "Event", "Notification"]
