"""Workflow engine: the only code path that mutates workflow entities.

A transition is one conditional read, one conditional write and a few
appends. Legality comes from the transition catalog; serialization of
concurrent callers comes from the store's compare-and-set. Side effects run
after the write has committed and can only ever downgrade the outcome to
"committed with warnings"; they never roll the transition back.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from shipflow.domain.actors import SYSTEM_ACTOR, Actor, ActorRole
from shipflow.domain.dates import as_date, utcnow
from shipflow.domain.entitlements import SubscriptionActivityPolicy
from shipflow.domain.records import EntitySnapshot, EventRecord, NotificationRecord
from shipflow.domain.statuses import EntityKind
from shipflow.domain.transitions import (
    CreateDerivedEntity,
    EmitEvent,
    EmitNotification,
    Transition,
    lookup,
)
from shipflow.errors import (
    AlreadyExistsError,
    ConflictError,
    DomainValidationError,
    ForbiddenError,
    InvalidTransitionError,
)
from shipflow.repositories.base import EntityStore
from shipflow.schemas.payloads import PAYLOAD_SCHEMAS
from shipflow.services.audit import AuditLogger
from shipflow.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

COMMITTED = "committed"
COMMITTED_WITH_WARNINGS = "committed_with_warnings"

# Audit first, then notifications, then derived entities.
_EFFECT_ORDER = {EmitEvent: 0, EmitNotification: 1, CreateDerivedEntity: 2}


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    entity: EntitySnapshot
    transition: str
    from_status: str
    to_status: str
    forced: bool = False
    # True when an idempotent transition was repeated and nothing was written.
    noop: bool = False
    event: EventRecord | None = None
    notifications: tuple[NotificationRecord, ...] = ()
    derived_entity_id: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def committed_with_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def outcome(self) -> str:
        return COMMITTED_WITH_WARNINGS if self.warnings else COMMITTED


class WorkflowEngine:
    def __init__(
        self,
        store: EntityStore,
        *,
        audit: AuditLogger | None = None,
        dispatcher: NotificationDispatcher | None = None,
        clock: Callable[[], datetime] = utcnow,
        max_extension_months: int = 36,
    ) -> None:
        self.store = store
        self.audit = audit or AuditLogger(store)
        self.dispatcher = dispatcher or NotificationDispatcher(store)
        self.clock = clock
        self.max_extension_months = max_extension_months

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def apply(
        self,
        kind: EntityKind | str,
        entity_id: str,
        transition_name: str,
        actor: Actor,
        payload: Mapping[str, Any] | None = None,
    ) -> WorkflowResult:
        """Validate and apply one transition, then run its side effects.

        Raises:
            NotFoundError: the entity does not exist.
            InvalidTransitionError: not legal from the current status (nothing written).
            ForbiddenError: the actor may not fire this transition (nothing written).
            DomainValidationError: the payload is malformed or not accepted (nothing written).
            ConflictError: the entity changed since it was read; re-read before retrying.
            AlreadyExistsError: the derived entity was already created.
        """
        kind = EntityKind(kind)
        now = self.clock()

        snapshot = self.store.get(kind, entity_id)
        transition = lookup(kind, snapshot.status, transition_name)
        self._authorize(transition, snapshot, actor)
        if transition.guard is not None and not transition.guard(snapshot, now):
            raise InvalidTransitionError(
                f"Transition '{transition_name}' is not allowed for {kind.value} {entity_id}: "
                f"{transition.guard_reason}",
                current_status=snapshot.status,
                transition=transition_name,
            )
        # A repeat ignores its payload; the first call already wrote it
        if transition.idempotent and snapshot.status == transition.to_status.value:
            logger.info(f"{kind.value} {entity_id}: '{transition_name}' repeated, nothing to write")
            return self._run_side_effects(transition, snapshot, snapshot, actor, {}, noop=True)

        params = self._validate_payload(kind, transition, payload)
        changes = self._build_changes(transition, snapshot, params, now)
        guards = None
        derived_id = None
        derived_fields = None
        derivation = transition.derivation
        if derivation is not None:
            existing = snapshot.get(derivation.link_field)
            if existing is not None:
                raise AlreadyExistsError(
                    f"{kind.value.capitalize()} {entity_id} already has {derivation.kind.value} {existing}",
                    existing_id=existing,
                )
            derived_id = str(uuid.uuid4())
            derived_fields = self._derived_fields(derivation, snapshot, derived_id, now)
            changes[derivation.link_field] = derived_id
            guards = {derivation.link_field: None}

        try:
            new_version = self.store.conditional_update(
                kind, entity_id, snapshot.version, changes, guards=guards
            )
        except ConflictError:
            if derivation is not None:
                current = self.store.get(kind, entity_id)
                linked = current.get(derivation.link_field)
                if linked is not None:
                    raise AlreadyExistsError(
                        f"{kind.value.capitalize()} {entity_id} already has {derivation.kind.value} {linked}",
                        existing_id=linked,
                    ) from None
            raise

        # The store stamps updated_at, so report the row as stored
        updated = self.store.get(kind, entity_id)
        if updated.version != new_version:
            # Already overtaken by a later write; describe this write only
            fields = {**snapshot.fields, **changes}
            fields.pop("updated_at", None)
            updated = EntitySnapshot(kind=kind, id=entity_id, version=new_version, fields=fields)
        logger.info(
            f"{kind.value} {entity_id}: {snapshot.status} --{transition_name}--> "
            f"{updated.status} by {actor.id}{' (forced)' if transition.forced else ''}"
        )
        return self._run_side_effects(
            transition,
            snapshot,
            updated,
            actor,
            params,
            derived_id=derived_id,
            derived_fields=derived_fields,
        )

    def extend(self, subscription_id: str, months: int, actor: Actor) -> WorkflowResult:
        """Push a subscription's end date forward by `months`.

        Counts from the later of today and the current end date.
        """
        return self.apply(
            EntityKind.SUBSCRIPTION, subscription_id, "extend", actor, {"months": months}
        )

    def expire_if_stale(self, subscription_id: str) -> WorkflowResult | None:
        """Write back `expired` for an active subscription whose end date has passed.

        Returns None when there is nothing to expire.
        """
        snapshot = self.store.get(EntityKind.SUBSCRIPTION, subscription_id)
        policy = SubscriptionActivityPolicy(as_of=as_date(self.clock()))
        if not policy.is_stale(status=snapshot.status, end_date=snapshot.get("end_date")):
            return None
        return self.apply(EntityKind.SUBSCRIPTION, subscription_id, "expire", SYSTEM_ACTOR)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _authorize(self, transition: Transition, snapshot: EntitySnapshot, actor: Actor) -> None:
        if actor.role not in transition.roles:
            raise ForbiddenError(
                f"Role '{actor.role.value}' may not perform '{transition.name}' on a {snapshot.kind.value}"
            )
        if actor.role == ActorRole.CLIENT and snapshot.get("client_id") != actor.id:
            raise ForbiddenError(f"{snapshot.kind.value.capitalize()} {snapshot.id} does not belong to this client")

    def _validate_payload(
        self, kind: EntityKind, transition: Transition, payload: Mapping[str, Any] | None
    ) -> dict[str, Any]:
        if not payload:
            return {}
        try:
            parsed = PAYLOAD_SCHEMAS[kind].model_validate(dict(payload))
        except ValidationError as e:
            raise DomainValidationError(f"Invalid {kind.value} payload: {e}") from e

        params = parsed.model_dump(exclude_unset=True)
        not_accepted = set(params) - transition.accepted_payload
        if not_accepted:
            raise DomainValidationError(
                f"Transition '{transition.name}' does not accept: {', '.join(sorted(not_accepted))}"
            )

        months = params.get("months")
        if months is not None and months > self.max_extension_months:
            raise DomainValidationError(
                f"Cannot extend by more than {self.max_extension_months} months at once"
            )
        return params

    def _build_changes(
        self, transition: Transition, snapshot: EntitySnapshot, params: Mapping[str, Any], now: datetime
    ) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if transition.to_status.value != snapshot.status:
            changes["status"] = transition.to_status.value
        changes.update(dict(transition.set_fields))
        changes.update({k: v for k, v in params.items() if k in transition.editable_fields})
        if transition.compute is not None:
            changes.update(transition.compute(snapshot, params, now))
        return changes

    def _derived_fields(
        self, derivation: CreateDerivedEntity, source: EntitySnapshot, derived_id: str, now: datetime
    ) -> dict[str, Any]:
        fields = {target: source.get(src) for target, src in derivation.field_mapping}
        fields.update(dict(derivation.initial_fields))
        if derivation.generate is not None:
            fields.update(derivation.generate(source, now))
        if derivation.backref_field is not None:
            fields[derivation.backref_field] = source.id
        fields["id"] = derived_id
        return fields

    def _run_side_effects(
        self,
        transition: Transition,
        before: EntitySnapshot,
        after: EntitySnapshot,
        actor: Actor,
        params: Mapping[str, Any],
        *,
        noop: bool = False,
        derived_id: str | None = None,
        derived_fields: Mapping[str, Any] | None = None,
    ) -> WorkflowResult:
        context = {
            **after.fields,
            **params,
            "entity_id": after.id,
            "from_status": before.status,
            "to_status": after.status,
            "actor_id": actor.id,
            "forced": transition.forced,
            "derived_id": derived_id,
            "derived": dict(derived_fields or {}),
        }

        warnings: list[str] = []
        event = None
        notifications: list[NotificationRecord] = []
        derived_entity_id = None

        for effect in sorted(transition.effects, key=lambda e: _EFFECT_ORDER[type(e)]):
            if isinstance(effect, EmitEvent):
                try:
                    event = self.audit.record(effect, after, actor, context, forced=transition.forced)
                except Exception as e:
                    logger.exception(f"Audit event '{effect.event_type}' failed for {after.kind.value} {after.id}")
                    warnings.append(f"Audit event '{effect.event_type}' was not recorded: {e}")

            elif isinstance(effect, EmitNotification):
                if noop:
                    continue
                try:
                    notifications.append(self.dispatcher.dispatch(effect, after, context))
                except Exception as e:
                    logger.warning(
                        f"Notification '{effect.template_type}' failed for {after.kind.value} {after.id}: {e}"
                    )
                    warnings.append(f"Notification '{effect.template_type}' was not queued: {e}")

            elif isinstance(effect, CreateDerivedEntity):
                try:
                    derived_entity_id = self.store.insert(effect.kind, derived_fields)
                except Exception as e:
                    logger.exception(
                        f"Could not create {effect.kind.value} {derived_id} from {after.kind.value} {after.id}"
                    )
                    warnings.append(f"{effect.kind.value.capitalize()} {derived_id} was not created: {e}")

        return WorkflowResult(
            entity=after,
            transition=transition.name,
            from_status=before.status,
            to_status=after.status,
            forced=transition.forced,
            noop=noop,
            event=event,
            notifications=tuple(notifications),
            derived_entity_id=derived_entity_id,
            warnings=tuple(warnings),
        )
