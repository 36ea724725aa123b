from dataclasses import replace

from docshare.access.models import Capability
from docshare.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from docshare.documents.aggregate import DocumentAggregate
from docshare.documents.base import BaseDocumentStore
from docshare.documents.models import (
    AuditAction,
    Document,
    DocumentPage,
    DocumentVersion,
    PageRequest,
)
from docshare.logging.logger import Log
from docshare.storage.base import BaseStorage
from docshare.workflows.access import DocumentAccess

MAX_PAGE_SIZE = 100


def _require_version(aggregate: DocumentAggregate, version_id: str) -> DocumentVersion:
    version = aggregate.find_version(version_id)
    if version is None:
        raise NotFoundError("DocumentVersion", version_id)
    return version


def _page_request(page: int, limit: int) -> PageRequest:
    if page < 1:
        raise ValidationError(f"Page must be at least 1, got {page}")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}")
    return PageRequest(page=page, limit=limit)


class DocumentWorkflow:
    """Reads, listings and deletions of documents and their versions."""

    def __init__(
        self,
        access: DocumentAccess,
        documents: BaseDocumentStore,
        storage: BaseStorage,
    ) -> None:
        self._access = access
        self._documents = documents
        self._storage = storage

    def get_document(self, document_id: str, user_id: str) -> Document:
        return self._access.authorize(user_id, document_id, Capability.READ).aggregate.document

    def list_versions(self, document_id: str, user_id: str) -> list[DocumentVersion]:
        context = self._access.authorize(user_id, document_id, Capability.READ)
        return context.aggregate.get_all_versions()

    def get_version(self, document_id: str, version_id: str, user_id: str) -> DocumentVersion:
        context = self._access.authorize(user_id, document_id, Capability.READ)
        return _require_version(context.aggregate, version_id)

    def get_latest_version(self, document_id: str, user_id: str) -> DocumentVersion:
        context = self._access.authorize(user_id, document_id, Capability.READ)
        latest = context.aggregate.get_latest_version()
        if latest is None:
            raise NotFoundError(
                "DocumentVersion", None, f"No versions found for document {document_id}"
            )
        return latest

    def list_documents(self, user_id: str, page: int = 1, limit: int = 10) -> DocumentPage:
        """Documents the user owns or may read through a grant, newest first."""
        request = _page_request(page, limit)
        self._access.load_user(user_id)
        capabilities = self._access.resolver.satisfying_capabilities(Capability.READ)
        return self._documents.list_accessible(user_id, capabilities, request)

    def list_all_documents(self, user_id: str, page: int = 1, limit: int = 10) -> DocumentPage:
        """Every document, newest first.

        Raises:
            ForbiddenError: the user is not an administrator.
        """
        request = _page_request(page, limit)
        user = self._access.load_user(user_id)
        if not user.is_admin:
            Log.warning(f"Denied listing all documents for user {user_id}")
            raise ForbiddenError("Only admins can list all documents")
        return self._documents.list_all(request)

    def search_documents(
        self, query: str, user_id: str, page: int = 1, limit: int = 10
    ) -> DocumentPage:
        """Filename search over headers and versions.

        The page is fetched first and then narrowed to what the user may
        read, so `total` counts the readable hits on this page only.
        """
        request = _page_request(page, limit)
        if not query.strip():
            raise ValidationError("Search query must not be blank")
        user = self._access.load_user(user_id)
        results = self._documents.search(query.strip(), request)
        readable = self._access.resolver.filter_accessible(
            user,
            [(document, self._access.load_grants(document.id)) for document in results.items],
            Capability.READ,
        )
        Log.debug(
            f"Search '{query}' matched {len(results.items)}, {len(readable)} readable",
            user_id=user_id,
        )
        return DocumentPage(
            items=readable, total=len(readable), page=request.page, limit=request.limit
        )

    def delete_document(self, document_id: str, user_id: str) -> None:
        """Remove every stored file, audit, then delete the document row.

        Versions, grants, tokens and metadata go with it; the audit log stays.
        """
        context = self._access.authorize(user_id, document_id, Capability.DELETE)
        document = context.aggregate.document
        for version in context.aggregate.get_all_versions():
            if version.path:
                self._storage.delete_file(version.path)
        self._documents.add_audit(document_id, AuditAction.DELETED, user_id, document.filename)
        self._documents.delete(document_id)
        Log.info(
            f"Deleted document {document_id} with {len(context.aggregate)} versions",
            user_id=user_id,
        )

    def delete_version(self, document_id: str, version_id: str, user_id: str) -> Document:
        """Delete one version and return the refreshed document header.

        Raises:
            ValidationError: the version is the only one left.
        """
        context = self._access.authorize(user_id, document_id, Capability.DELETE)
        aggregate = context.aggregate
        version = _require_version(aggregate, version_id)
        if len(aggregate) == 1:
            raise ValidationError(
                f"Version {version_id} is the only version of document {document_id}; "
                "delete the document instead"
            )

        self._documents.delete_version(version_id)
        if version.path:
            self._storage.delete_file(version.path)
        aggregate = aggregate.remove_version_by_id(version_id)

        latest = aggregate.get_latest_version()
        document = aggregate.document
        if latest is not None and (
            document.filename,
            document.mime_type,
            document.size,
        ) != (latest.filename, latest.mime_type, latest.size):
            document = self._documents.save(
                replace(
                    document,
                    filename=latest.filename,
                    mime_type=latest.mime_type,
                    size=latest.size,
                )
            )

        self._documents.add_audit(
            document_id,
            AuditAction.VERSION_DELETED,
            user_id,
            f"version {version.version_number}",
        )
        Log.info(f"Deleted version {version.version_number} of document {document_id}")
        return document
