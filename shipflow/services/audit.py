import logging
from typing import Any, Mapping

from shipflow.domain.actors import Actor
from shipflow.domain.records import EntitySnapshot, EventRecord
from shipflow.domain.transitions import EmitEvent
from shipflow.services.notifications import template_values

logger = logging.getLogger(__name__)


class AuditLogger:
    """Appends one Event per committed transition.

    This is the only write path for compliance history; events are never
    edited or deleted.
    """

    def __init__(self, store) -> None:
        self.store = store

    def record(
        self,
        command: EmitEvent,
        snapshot: EntitySnapshot,
        actor: Actor,
        context: Mapping[str, Any],
        *,
        forced: bool = False,
    ) -> EventRecord:
        try:
            details = command.details_template.format_map(template_values(context))
        except (KeyError, IndexError, TypeError, ValueError):
            # Keep the event even if the template is off.
            logger.warning(f"Could not render details for '{command.event_type}' on {snapshot.id}")
            details = command.details_template
        if forced:
            details = f"{details} [forced by {actor.id}]"

        return self.store.append_event(
            EventRecord(
                event_type=command.event_type,
                actor_id=actor.id,
                subject_kind=snapshot.kind,
                subject_entity_id=snapshot.id,
                details=details,
                forced=forced,
            )
        )
