from docshare.access.models import Capability
from docshare.core.exceptions import NotFoundError
from docshare.documents.base import BaseDocumentStore
from docshare.documents.models import AuditAction, DocumentVersion
from docshare.logging.logger import Log
from docshare.tokens.lifecycle import DownloadTokenLifecycle
from docshare.tokens.models import TokenValidation
from docshare.workflows.access import AccessContext, DocumentAccess
from docshare.workflows.models import DownloadLink, DownloadTarget


def download_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/download/{token}"


class DownloadWorkflow:
    """Generates single-use download links and redeems them."""

    def __init__(
        self,
        access: DocumentAccess,
        lifecycle: DownloadTokenLifecycle,
        documents: BaseDocumentStore,
    ) -> None:
        self._access = access
        self._lifecycle = lifecycle
        self._documents = documents

    def generate_link(
        self,
        document_id: str,
        user_id: str,
        version_id: str | None = None,
        ttl_seconds: int | None = None,
        base_url: str = "",
    ) -> DownloadLink:
        """Issue a link bound to one version (the latest when none is given).

        Raises:
            NotFoundError: unknown document, version, or no versions yet.
            InsufficientPermissionError: the user cannot READ the document.
            ValidationError: ttl out of bounds.
        """
        context = self._access.authorize(user_id, document_id, Capability.READ)
        version = self._resolve_version(context, version_id)

        token = self._lifecycle.issue(
            document_id=document_id,
            created_by=context.user.id,
            version_id=version.id,
            ttl_seconds=ttl_seconds,
        )
        self._documents.add_audit(
            document_id,
            AuditAction.DOWNLOAD_LINK_GENERATED,
            context.user.id,
            f"version {version.version_number}, expires {token.expires_at.isoformat()}",
        )
        Log.info(
            f"Generated download link for document {document_id}",
            version_id=version.id,
            expires_at=token.expires_at.isoformat(),
        )
        return DownloadLink(
            token=token.token,
            document_id=document_id,
            version_id=version.id,
            expires_at=token.expires_at,
            url=download_url(base_url, token.token),
        )

    def validate(self, token: str) -> TokenValidation:
        return self._lifecycle.validate(token)

    def download(self, token: str) -> DownloadTarget:
        """Consume the token and return what it points at."""
        consumed = self._lifecycle.consume(token)
        self._documents.add_audit(
            consumed.document_id,
            AuditAction.DOWNLOADED,
            consumed.token.created_by,
            f"version {consumed.version.version_number}",
        )
        Log.info(
            f"Download token redeemed for document {consumed.document_id}",
            version_id=consumed.version_id,
        )
        return DownloadTarget(document_id=consumed.document_id, version=consumed.version)

    def cleanup_expired(self, user_id: str) -> int:
        """Admin-only sweep of expired tokens. Returns the number deleted."""
        actor = self._access.load_user(user_id)
        if not actor.is_admin:
            Log.warning(f"User {user_id} attempted to clean up expired tokens")
        deleted = self._lifecycle.delete_expired(actor)
        Log.info(f"Removed {deleted} expired download tokens", user_id=user_id)
        return deleted

    def _resolve_version(
        self, context: AccessContext, version_id: str | None
    ) -> DocumentVersion:
        aggregate = context.aggregate
        if version_id is None:
            latest = aggregate.get_latest_version()
            if latest is None:
                raise NotFoundError(
                    "DocumentVersion",
                    None,
                    f"No versions found for document {aggregate.document.id}",
                )
            return latest
        version = aggregate.find_version(version_id)
        if version is None:
            raise NotFoundError("DocumentVersion", version_id)
        return version
