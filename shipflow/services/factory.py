from shipflow.core.config import settings
from shipflow.repositories.base import EntityStore
from shipflow.services.audit import AuditLogger
from shipflow.services.notifications import NotificationDispatcher
from shipflow.services.workflow import WorkflowEngine


def build_engine(store: EntityStore) -> WorkflowEngine:
    """Wire a WorkflowEngine with the configured notification settings."""
    return WorkflowEngine(
        store,
        audit=AuditLogger(store),
        dispatcher=NotificationDispatcher(
            store,
            language=settings.notification_language,
            brand=settings.company_name,
            sender=settings.notification_sender,
        ),
        max_extension_months=settings.max_extension_months,
    )
