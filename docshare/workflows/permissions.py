import uuid

from docshare.access.base import BaseGrantStore
from docshare.access.models import Capability, Identity, PermissionGrant
from docshare.core.exceptions import ForbiddenError, NotFoundError
from docshare.documents.base import BaseDocumentStore
from docshare.documents.models import AuditAction, Document
from docshare.logging.logger import Log
from docshare.workflows.access import DocumentAccess


class PermissionWorkflow:
    """Granting, revoking and listing explicit document grants.

    Only administrators and the document owner manage grants.
    """

    def __init__(
        self,
        access: DocumentAccess,
        grants: BaseGrantStore,
        documents: BaseDocumentStore,
    ) -> None:
        self._access = access
        self._grants = grants
        self._documents = documents

    def grant(
        self,
        document_id: str,
        target_user_id: str,
        capability: Capability,
        granted_by: str,
    ) -> PermissionGrant:
        """Grant a capability. Granting an existing triple returns the existing grant."""
        actor = self._access.load_user(granted_by)
        document = self._access.load_aggregate(document_id).document
        self._require_manager(actor, document)
        target = self._access.load_user(target_user_id)

        existing = self._grants.find_one(document_id, target.id, capability)
        if existing is not None:
            Log.debug(f"User {target.id} already holds {capability.value} on {document_id}")
            return existing

        grant = self._grants.save(
            PermissionGrant(
                id=str(uuid.uuid4()),
                document_id=document_id,
                user_id=target.id,
                capability=capability,
                granted_by=actor.id,
            )
        )
        self._documents.add_audit(
            document_id,
            AuditAction.PERMISSION_GRANTED,
            actor.id,
            f"{capability.value} to {target.id}",
        )
        Log.info(f"Granted {capability.value} on document {document_id} to user {target.id}")
        return grant

    def revoke(self, grant_id: str, revoked_by: str) -> None:
        grant = self._grants.find_by_id(grant_id)
        if grant is None:
            raise NotFoundError("PermissionGrant", grant_id)
        actor = self._access.load_user(revoked_by)
        document = self._access.load_aggregate(grant.document_id).document
        self._require_manager(actor, document)

        self._grants.delete(grant_id)
        self._documents.add_audit(
            grant.document_id,
            AuditAction.PERMISSION_REVOKED,
            actor.id,
            f"{grant.capability.value} from {grant.user_id}",
        )
        Log.info(
            f"Revoked {grant.capability.value} on document {grant.document_id} "
            f"from user {grant.user_id}"
        )

    def list_for_document(self, document_id: str, user_id: str) -> list[PermissionGrant]:
        return list(self._access.authorize(user_id, document_id, Capability.READ).grants)

    def _require_manager(self, actor: Identity, document: Document) -> None:
        if not self._access.resolver.can_manage_grants(actor, document):
            Log.warning(
                f"User {actor.id} may not manage permissions of document {document.id}"
            )
            raise ForbiddenError(
                "Only the document owner or an admin can manage permissions"
            )
