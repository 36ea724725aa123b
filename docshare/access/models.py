from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """User roles. Values are stored as text and must match exactly."""

    ADMIN = "ADMIN"
    USER = "USER"


class Capability(str, Enum):
    """Document capabilities a grant can confer."""

    READ = "READ"
    WRITE = "WRITE"
    DELETE = "DELETE"


# Used only under the hierarchical grant policy.
CAPABILITY_LEVELS: dict[Capability, int] = {
    Capability.READ: 1,
    Capability.WRITE: 2,
    Capability.DELETE: 3,
}


@dataclass(frozen=True)
class Identity:
    """Read-only projection of a user for authorization checks."""

    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class PermissionGrant:
    """A single (user, document, capability) permission record."""

    id: str
    document_id: str
    user_id: str
    capability: Capability
    granted_by: str
    granted_at: datetime | None = None
