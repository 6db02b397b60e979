"""Turns EmitNotification commands into queued Notification records.

Only the workflow engine calls this. Actual delivery belongs to an external
mailer reading the pending queue.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from shipflow.domain.records import EntitySnapshot, NotificationRecord
from shipflow.domain.transitions import EmitNotification
from shipflow.services.templates import SIGNATURE, TEMPLATES

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a notification cannot be rendered or queued."""

    pass


class TemplateValues(dict):
    """Mapping for `str.format_map` where missing placeholders render empty."""

    def __missing__(self, key: str) -> str:
        return ""


def _display(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, Mapping):
        return template_values(value)
    return value


def template_values(context: Mapping[str, Any]) -> TemplateValues:
    return TemplateValues({key: _display(value) for key, value in context.items()})


def humanize(value: str | None) -> str:
    """'premium_tracking' -> 'Premium Tracking'."""
    if not value:
        return ""
    return " ".join(word.capitalize() for word in str(value).split("_"))


def render(template_type: str, context: Mapping[str, Any], language: str = "fr") -> tuple[str, str]:
    """Render (subject, body) for `template_type`.

    Raises:
        NotificationError: if no such template exists or it cannot be filled.
    """
    try:
        by_language = TEMPLATES[template_type]
    except KeyError:
        raise NotificationError(f"Unknown notification template '{template_type}'") from None

    subject, body = by_language.get(language) or by_language["fr"]
    signature = SIGNATURE.get(language, SIGNATURE["fr"])
    values = template_values(context)
    try:
        return (
            subject.format_map(values),
            body.format_map(values).rstrip() + "\n\n" + signature.format_map(values),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise NotificationError(f"Could not render '{template_type}': {e}") from e


class NotificationDispatcher:
    def __init__(self, store, *, language: str = "fr", brand: str = "", sender: str | None = None) -> None:
        self.store = store
        self.language = language
        self.brand = brand
        self.sender = sender

    def dispatch(self, command: EmitNotification, snapshot: EntitySnapshot, context: Mapping[str, Any]) -> NotificationRecord:
        """Render and enqueue one notification with status=pending.

        `context` is the post-transition view of the entity plus payload.

        Raises:
            NotificationError: if the entity has no recipient or the template fails.
            Any store error from `enqueue_notification` propagates unchanged.
        """
        recipient = context.get(command.recipient_field)
        if not recipient:
            raise NotificationError(
                f"{snapshot.kind.value.capitalize()} {snapshot.id} has no '{command.recipient_field}' "
                f"to send '{command.template_type}' to"
            )

        subject, body = render(
            command.template_type,
            {
                **context,
                "brand": self.brand,
                "plan_label": humanize(context.get("plan_type")),
                "status_label": humanize(context.get("status")),
            },
            self.language,
        )

        metadata = {"entity_kind": snapshot.kind.value, "language": self.language}
        if self.sender:
            metadata["sender"] = self.sender

        notification = self.store.enqueue_notification(
            NotificationRecord(
                recipient=recipient,
                template_type=command.template_type,
                subject=subject,
                body=body,
                subject_kind=snapshot.kind,
                subject_entity_id=snapshot.id,
                metadata=metadata,
            )
        )
        logger.info(f"Queued '{command.template_type}' notification for {snapshot.kind.value} {snapshot.id}")
        return notification
