from dataclasses import dataclass

from docshare.access.base import BaseGrantStore, BaseUserLookup
from docshare.access.models import Capability, Identity, PermissionGrant
from docshare.access.resolver import PermissionResolver
from docshare.core.exceptions import InsufficientPermissionError, NotFoundError
from docshare.documents.aggregate import DocumentAggregate
from docshare.documents.base import BaseDocumentStore
from docshare.logging.logger import Log


@dataclass(frozen=True)
class AccessContext:
    """Freshly loaded state a workflow needs after authorization."""

    user: Identity
    aggregate: DocumentAggregate
    grants: tuple[PermissionGrant, ...]


class DocumentAccess:
    """Loads the acting user, the document and its grants, then asks the resolver.

    Every aggregate is built from state loaded for this call only.
    """

    def __init__(
        self,
        users: BaseUserLookup,
        grants: BaseGrantStore,
        documents: BaseDocumentStore,
        resolver: PermissionResolver,
    ) -> None:
        self._users = users
        self._grants = grants
        self._documents = documents
        self._resolver = resolver

    @property
    def resolver(self) -> PermissionResolver:
        return self._resolver

    def load_user(self, user_id: str) -> Identity:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def load_aggregate(self, document_id: str) -> DocumentAggregate:
        document = self._documents.find_by_id(document_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        return DocumentAggregate.from_state(document, self._documents.find_versions(document_id))

    def load_grants(self, document_id: str) -> tuple[PermissionGrant, ...]:
        return tuple(self._grants.find_by_document(document_id))

    def authorize(self, user_id: str, document_id: str, capability: Capability) -> AccessContext:
        """Load everything and require the capability.

        Raises:
            NotFoundError: unknown user or document.
            InsufficientPermissionError: the resolver denied the capability.
        """
        user = self.load_user(user_id)
        aggregate = self.load_aggregate(document_id)
        grants = self.load_grants(document_id)
        try:
            self._resolver.require(user, aggregate.document, grants, capability)
        except InsufficientPermissionError:
            Log.warning(
                f"Denied {capability.value} on document {document_id} for user {user_id}"
            )
            raise
        return AccessContext(user=user, aggregate=aggregate, grants=grants)
