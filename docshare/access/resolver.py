from collections.abc import Iterable, Sequence
from enum import Enum

from docshare.access.models import CAPABILITY_LEVELS, Capability, Identity, PermissionGrant
from docshare.core.exceptions import InsufficientPermissionError
from docshare.documents.models import Document


class GrantPolicy(str, Enum):
    """How an explicit grant relates to the capability being checked.

    INDEPENDENT: a grant satisfies only its own capability.
    HIERARCHICAL: DELETE satisfies WRITE and READ, WRITE satisfies READ.
    """

    INDEPENDENT = "independent"
    HIERARCHICAL = "hierarchical"


class PermissionResolver:
    """Decides READ/WRITE/DELETE eligibility on a document.

    Rules, first match wins:
        1. ADMIN role is allowed everything.
        2. The document owner is allowed everything.
        3. Otherwise the user needs a grant that satisfies the capability
           under the configured policy.

    Pure: no I/O, no clock, no logging. Grants are a caller-supplied snapshot.
    """

    def __init__(self, policy: GrantPolicy = GrantPolicy.INDEPENDENT) -> None:
        self._policy = policy

    @property
    def policy(self) -> GrantPolicy:
        return self._policy

    def is_allowed(
        self,
        user: Identity,
        document: Document,
        grants: Iterable[PermissionGrant],
        capability: Capability,
    ) -> bool:
        if user.is_admin:
            return True
        if user.id == document.owner_id:
            return True
        return any(
            grant.user_id == user.id
            and grant.document_id == document.id
            and self._satisfies(grant.capability, capability)
            for grant in grants
        )

    def can_read(
        self, user: Identity, document: Document, grants: Iterable[PermissionGrant]
    ) -> bool:
        return self.is_allowed(user, document, grants, Capability.READ)

    def can_write(
        self, user: Identity, document: Document, grants: Iterable[PermissionGrant]
    ) -> bool:
        return self.is_allowed(user, document, grants, Capability.WRITE)

    def can_delete(
        self, user: Identity, document: Document, grants: Iterable[PermissionGrant]
    ) -> bool:
        return self.is_allowed(user, document, grants, Capability.DELETE)

    def require(
        self,
        user: Identity,
        document: Document,
        grants: Iterable[PermissionGrant],
        capability: Capability,
    ) -> None:
        """Raise InsufficientPermissionError unless the capability is allowed."""
        if not self.is_allowed(user, document, grants, capability):
            raise InsufficientPermissionError(
                user_id=user.id,
                document_id=document.id,
                required_capability=capability.value,
            )

    def require_read(
        self, user: Identity, document: Document, grants: Iterable[PermissionGrant]
    ) -> None:
        self.require(user, document, grants, Capability.READ)

    def require_write(
        self, user: Identity, document: Document, grants: Iterable[PermissionGrant]
    ) -> None:
        self.require(user, document, grants, Capability.WRITE)

    def require_delete(
        self, user: Identity, document: Document, grants: Iterable[PermissionGrant]
    ) -> None:
        self.require(user, document, grants, Capability.DELETE)

    def can_manage_grants(self, user: Identity, document: Document) -> bool:
        """Only administrators and the owner may grant or revoke permissions."""
        return user.is_admin or user.id == document.owner_id

    def highest_capability(
        self, user: Identity, document: Document, grants: Iterable[PermissionGrant]
    ) -> Capability | None:
        """Return the strongest capability the user holds (DELETE > WRITE > READ)."""
        grants = list(grants)
        for capability in (Capability.DELETE, Capability.WRITE, Capability.READ):
            if self.is_allowed(user, document, grants, capability):
                return capability
        return None

    def filter_accessible(
        self,
        user: Identity,
        documents_with_grants: Sequence[tuple[Document, Sequence[PermissionGrant]]],
        capability: Capability,
    ) -> list[Document]:
        return [
            document
            for document, grants in documents_with_grants
            if self.is_allowed(user, document, grants, capability)
        ]

    def satisfying_capabilities(self, required: Capability) -> list[Capability]:
        """Grant capabilities that satisfy `required` under the configured policy."""
        return [granted for granted in Capability if self._satisfies(granted, required)]

    def _satisfies(self, granted: Capability, required: Capability) -> bool:
        if self._policy is GrantPolicy.HIERARCHICAL:
            return CAPABILITY_LEVELS[granted] >= CAPABILITY_LEVELS[required]
        return granted is required
