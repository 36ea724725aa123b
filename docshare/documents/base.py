from abc import ABC, abstractmethod
from collections.abc import Sequence

from docshare.access.models import Capability
from docshare.documents.models import (
    AuditAction,
    AuditEntry,
    Document,
    DocumentMetadata,
    DocumentPage,
    DocumentVersion,
    PageRequest,
)


class BaseDocumentStore(ABC):
    """Contract for document, version and audit persistence."""

    @abstractmethod
    def find_by_id(self, document_id: str) -> Document | None:
        """Return the document header, or None."""

    @abstractmethod
    def find_versions(self, document_id: str) -> list[DocumentVersion]:
        """Return every persisted version of a document, in any order."""

    @abstractmethod
    def save(self, document: Document) -> Document:
        """Insert or update the document header."""

    @abstractmethod
    def create_version(self, version: DocumentVersion) -> DocumentVersion:
        """Persist a new version row.

        Raises:
            ConstraintViolationError: if another version already holds
                (document_id, version_number).
        """

    @abstractmethod
    def delete_version(self, version_id: str) -> bool:
        """Delete a version row. Returns False when nothing was deleted."""

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        """Delete a document. Versions, grants, tokens and metadata cascade."""

    @abstractmethod
    def add_audit(
        self,
        document_id: str,
        action: AuditAction,
        actor_id: str,
        details: str | None = None,
    ) -> None:
        """Append an entry to the document audit log."""

    @abstractmethod
    def find_audit(self, document_id: str) -> list[AuditEntry]:
        """Return the audit entries of a document, oldest first.

        Entries outlive the document they describe.
        """

    @abstractmethod
    def list_accessible(
        self, user_id: str, capabilities: Sequence[Capability], page: PageRequest
    ) -> DocumentPage:
        """Page through documents the user owns or holds one of the given grants on.

        Newest first.
        """

    @abstractmethod
    def list_all(self, page: PageRequest) -> DocumentPage:
        """Page through every document, newest first."""

    @abstractmethod
    def search(self, query: str, page: PageRequest) -> DocumentPage:
        """Page through documents whose own or any version's filename contains
        the query, case-insensitively. No permission filtering happens here."""


class BaseMetadataStore(ABC):
    """Contract for document key/value metadata."""

    @abstractmethod
    def find_by_document(self, document_id: str) -> list[DocumentMetadata]:
        """Return every metadata entry of a document ordered by key."""

    @abstractmethod
    def find_by_key(self, document_id: str, key: str) -> DocumentMetadata | None:
        """Return the entry for a key, or None."""

    @abstractmethod
    def save(self, entry: DocumentMetadata) -> DocumentMetadata:
        """Insert a new entry.

        Raises:
            ConstraintViolationError: if the key already exists for the document.
        """

    @abstractmethod
    def update_value(self, document_id: str, key: str, value: str) -> DocumentMetadata | None:
        """Change the value of an existing key. Returns None if the key is absent."""

    @abstractmethod
    def delete(self, document_id: str, key: str) -> bool:
        """Delete an entry. Returns False when nothing was deleted."""
