import logging

from fastapi import APIRouter, Depends, HTTPException, status

from shipflow.api.deps import get_current_actor, get_engine, get_store, require_roles
from shipflow.domain.actors import Actor, ActorRole
from shipflow.domain.dates import as_date, utcnow
from shipflow.domain.entitlements import EntitlementFlags, SubscriptionActivityPolicy
from shipflow.domain.records import EntitySnapshot
from shipflow.repositories.base import EntityStore
from shipflow.schemas.workflow import (
    Entitlements,
    ExpireStaleResponse,
    ExtendRequest,
    WorkflowResult,
)
from shipflow.services.subscription import (
    expire_stale_subscriptions,
    resolve_for_client,
    resolve_for_subscription,
)
from shipflow.services.workflow import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])
clients_router = APIRouter(prefix="/clients", tags=["subscriptions"])


def _entitlements(subscription: EntitySnapshot | None, flags: EntitlementFlags, now) -> Entitlements:
    effective_status = None
    if subscription is not None:
        policy = SubscriptionActivityPolicy(as_of=as_date(now))
        effective_status = policy.effective_status(
            status=subscription.status, end_date=subscription.get("end_date")
        )
    return Entitlements(
        subscription_id=subscription.id if subscription else None,
        plan_type=subscription.get("plan_type") if subscription else None,
        effective_status=effective_status,
        has_active_subscription=flags.has_active_subscription,
        has_premium_tracking=flags.has_premium_tracking,
        has_enterprise_logistics=flags.has_enterprise_logistics,
        has_agent_listing=flags.has_agent_listing,
        has_digital_portal_access=flags.has_digital_portal_access,
        has_full_tracking_access=flags.has_full_tracking_access,
    )


def _ensure_own_client(actor: Actor, client_id: str | None) -> None:
    if actor.role == ActorRole.CLIENT and client_id != actor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )


@router.post("/expire-stale", response_model=ExpireStaleResponse)
def expire_stale(
    engine: WorkflowEngine = Depends(get_engine),
    store: EntityStore = Depends(get_store),
    actor: Actor = Depends(require_roles(ActorRole.ADMIN, ActorRole.SYSTEM)),
):
    """
    Write back `expired` for every active subscription whose end date has passed.

    Entitlements never depend on this having run.
    """
    logger.info(f"Stale subscription sweep requested by {actor.id}")
    expired = expire_stale_subscriptions(engine, store, engine.clock())
    return ExpireStaleResponse(expired=expired)


@router.post("/{subscription_id}/extend", response_model=WorkflowResult)
def extend_subscription(
    subscription_id: str,
    request: ExtendRequest,
    engine: WorkflowEngine = Depends(get_engine),
    actor: Actor = Depends(require_roles(ActorRole.ADMIN)),
):
    """
    Extend a subscription by a number of months. Only admin users can extend.

    The new end date counts from the later of today and the current end date;
    the status is left as it is.
    """
    result = engine.extend(subscription_id, request.months, actor)
    return WorkflowResult.from_result(result, include_admin_fields=actor.is_staff)


@router.get("/{subscription_id}/entitlements", response_model=Entitlements)
def get_subscription_entitlements(
    subscription_id: str,
    store: EntityStore = Depends(get_store),
    actor: Actor = Depends(require_roles(ActorRole.ADMIN, ActorRole.CLIENT, ActorRole.SYSTEM)),
):
    """
    Get the feature flags a subscription grants right now.
    - Client: only their own subscriptions
    """
    now = utcnow()
    subscription, flags = resolve_for_subscription(store, subscription_id, now)
    _ensure_own_client(actor, subscription.get("client_id"))
    return _entitlements(subscription, flags, now)


@clients_router.get("/{client_id}/entitlements", response_model=Entitlements)
def get_client_entitlements(
    client_id: str,
    store: EntityStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
):
    """
    Get a client's feature flags from their newest active subscription.

    A client with no active subscription gets every flag False.
    - Client: only their own id
    - Agent: not allowed
    """
    if actor.role == ActorRole.AGENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )
    _ensure_own_client(actor, client_id)
    now = utcnow()
    subscription, flags = resolve_for_client(store, client_id, now)
    return _entitlements(subscription, flags, now)
