from fastapi import APIRouter, Depends, Query

from shipflow.api.deps import get_store, require_roles
from shipflow.domain.actors import Actor, ActorRole
from shipflow.domain.statuses import NotificationStatus
from shipflow.repositories.base import EntityStore
from shipflow.schemas.pagination import PaginatedResponse
from shipflow.schemas.workflow import Notification

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=PaginatedResponse[Notification])
def get_notifications(
    notification_status: NotificationStatus | None = Query(
        None, alias="status", description="Filter by delivery status (e.g. pending)"
    ),
    entity: str | None = Query(None, description="Filter by subject entity ID"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(100, ge=1, le=1000, description="Number of items per page"),
    store: EntityStore = Depends(get_store),
    actor: Actor = Depends(require_roles(ActorRole.ADMIN, ActorRole.SYSTEM)),
):
    """
    Get the outbound notification queue, oldest first.
    Only admin and system actors can read it; the mail worker polls `status=pending`.
    """
    notifications, total = store.list_notifications(
        notification_status.value if notification_status else None,
        subject_entity_id=entity,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse(
        items=[Notification.model_validate(n) for n in notifications],
        total=total,
        page=page,
        page_size=page_size,
    )
