from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from shipflow.core.security import decode_token
from shipflow.db import SessionLocal
from shipflow.domain.actors import Actor, ActorRole
from shipflow.errors import UnauthorizedError
from shipflow.repositories.base import EntityStore
from shipflow.repositories.sql import SqlAlchemyEntityStore
from shipflow.services.factory import build_engine
from shipflow.services.workflow import WorkflowEngine

bearer_scheme = HTTPBearer(auto_error=False)

CREDENTIALS_ERROR = "Could not validate credentials"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return SqlAlchemyEntityStore(db)


def get_engine(store: EntityStore = Depends(get_store)) -> WorkflowEngine:
    return build_engine(store)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    """Get the acting principal from the bearer JWT (`sub` = actor id, `role`)."""
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedError(CREDENTIALS_ERROR)

    # Only access tokens identify an actor
    if payload.get("type") != "access":
        raise UnauthorizedError(CREDENTIALS_ERROR)

    actor_id = payload.get("sub")
    if not actor_id:
        raise UnauthorizedError(CREDENTIALS_ERROR)

    try:
        role = ActorRole(payload.get("role"))
    except ValueError:
        raise UnauthorizedError("Unknown role") from None

    return Actor(id=str(actor_id), role=role)


def require_roles(*roles: ActorRole):
    """
    Create a dependency that requires the current actor to have one of the given roles.

    Example:
        Depends(require_roles(ActorRole.ADMIN))
        Depends(require_roles(ActorRole.ADMIN, ActorRole.SYSTEM))
    """
    def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return actor

    return role_checker
