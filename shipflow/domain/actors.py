from dataclasses import dataclass
from enum import Enum


class ActorRole(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"
    AGENT = "agent"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class Actor:
    """Who is asking for a transition. Recorded on every audit event."""

    id: str
    role: ActorRole = ActorRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """Admins and the system see every record, internal fields included."""
        return self.role in (ActorRole.ADMIN, ActorRole.SYSTEM)


SYSTEM_ACTOR = Actor(id="system", role=ActorRole.SYSTEM)
