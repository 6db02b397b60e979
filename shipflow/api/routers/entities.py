from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from shipflow.api.deps import get_current_actor, get_engine, get_store, require_roles
from shipflow.domain.actors import Actor, ActorRole
from shipflow.domain.records import EntitySnapshot
from shipflow.repositories.base import EntityStore
from shipflow.schemas.pagination import PaginatedResponse
from shipflow.schemas.workflow import (
    Entity,
    EntityCollection,
    Event,
    TransitionRequest,
    WorkflowResult,
)
from shipflow.services.workflow import WorkflowEngine

router = APIRouter(tags=["workflow"])


def ensure_can_read(actor: Actor, snapshot: EntitySnapshot) -> None:
    """Clients see their own records; agents see their own agent record."""
    if actor.is_staff:
        return
    if actor.role == ActorRole.CLIENT and snapshot.get("client_id") == actor.id:
        return
    if actor.role == ActorRole.AGENT and snapshot.id == actor.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not enough permissions",
    )


@router.get("/{collection}/{entity_id}", response_model=Entity)
def get_entity(
    collection: EntityCollection,
    entity_id: str,
    store: EntityStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
):
    """
    Get the current snapshot of an entity, with the transitions legal from its status.
    - Admin and System: any entity
    - Client: only entities carrying their client_id (internal notes hidden)
    - Agent: only their own agent record
    """
    snapshot = store.get(collection.kind, entity_id)
    ensure_can_read(actor, snapshot)
    return Entity.from_snapshot(snapshot, include_admin_fields=actor.is_staff)


@router.post("/{collection}/{entity_id}/transitions/{transition_name}", response_model=WorkflowResult)
def apply_transition(
    collection: EntityCollection,
    entity_id: str,
    transition_name: str,
    request: TransitionRequest | None = Body(None),
    engine: WorkflowEngine = Depends(get_engine),
    actor: Actor = Depends(get_current_actor),
):
    """
    Fire a named transition on an entity.

    The response's `outcome` is `committed_with_warnings` when the status change
    landed but an audit, notification or derived-entity step did not; the
    `warnings` list says which.
    """
    payload = request.payload if request is not None else {}
    result = engine.apply(collection.kind, entity_id, transition_name, actor, payload)
    return WorkflowResult.from_result(result, include_admin_fields=actor.is_staff)


@router.get("/{collection}/{entity_id}/events", response_model=PaginatedResponse[Event])
def get_entity_events(
    collection: EntityCollection,
    entity_id: str,
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(100, ge=1, le=1000, description="Number of items per page"),
    store: EntityStore = Depends(get_store),
    actor: Actor = Depends(require_roles(ActorRole.ADMIN)),
):
    """
    Get the audit history of an entity, oldest first. Only admin users can read it.
    """
    store.get(collection.kind, entity_id)
    events, total = store.list_events(
        entity_id, offset=(page - 1) * page_size, limit=page_size
    )
    return PaginatedResponse(
        items=[Event.model_validate(event) for event in events],
        total=total,
        page=page,
        page_size=page_size,
    )
