from abc import ABC, abstractmethod

from docshare.access.models import Capability, Identity, PermissionGrant


class BaseUserLookup(ABC):
    """Contract for loading the acting user."""

    @abstractmethod
    def find_by_id(self, user_id: str) -> Identity | None:
        """Return the user's identity, or None when the user does not exist."""


class BaseGrantStore(ABC):
    """Contract for reading and writing explicit document grants."""

    @abstractmethod
    def find_by_document(self, document_id: str) -> list[PermissionGrant]:
        """Return every grant recorded for a document."""

    @abstractmethod
    def find_by_id(self, grant_id: str) -> PermissionGrant | None:
        """Return a grant by ID, or None."""

    @abstractmethod
    def find_one(
        self, document_id: str, user_id: str, capability: Capability
    ) -> PermissionGrant | None:
        """Return the grant for (document, user, capability), or None."""

    @abstractmethod
    def save(self, grant: PermissionGrant) -> PermissionGrant:
        """Persist a new grant.

        Raises:
            ConstraintViolationError: if the (document, user, capability)
                triple is already granted.
        """

    @abstractmethod
    def delete(self, grant_id: str) -> bool:
        """Delete a grant. Returns False when nothing was deleted."""
