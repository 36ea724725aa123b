import re
import uuid

from docshare.access.models import Capability
from docshare.core.exceptions import AlreadyExistsError, NotFoundError, ValidationError
from docshare.documents.base import BaseDocumentStore, BaseMetadataStore
from docshare.documents.models import AuditAction, DocumentMetadata
from docshare.logging.logger import Log
from docshare.workflows.access import DocumentAccess

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,100}$")
MAX_VALUE_LENGTH = 1000


def validate_entry(key: str, value: str | None = None) -> None:
    """Raise ValidationError for malformed keys or oversized values."""
    if not KEY_PATTERN.match(key):
        raise ValidationError(
            f"Invalid metadata key {key!r}: use 1-100 letters, digits, '_', '.' or '-'"
        )
    if value is not None and len(value) > MAX_VALUE_LENGTH:
        raise ValidationError(
            f"Metadata value for '{key}' exceeds {MAX_VALUE_LENGTH} characters"
        )


class MetadataWorkflow:
    """Key/value tags on documents. Reads need READ, changes need WRITE."""

    def __init__(
        self,
        access: DocumentAccess,
        metadata: BaseMetadataStore,
        documents: BaseDocumentStore,
    ) -> None:
        self._access = access
        self._metadata = metadata
        self._documents = documents

    def add(self, document_id: str, key: str, value: str, user_id: str) -> DocumentMetadata:
        validate_entry(key, value)
        self._access.authorize(user_id, document_id, Capability.WRITE)
        if self._metadata.find_by_key(document_id, key) is not None:
            raise AlreadyExistsError(f"Metadata key '{key}' already exists on document {document_id}")

        entry = self._metadata.save(
            DocumentMetadata(id=str(uuid.uuid4()), document_id=document_id, key=key, value=value)
        )
        self._documents.add_audit(document_id, AuditAction.METADATA_ADDED, user_id, key)
        Log.info(f"Added metadata '{key}' to document {document_id}")
        return entry

    def update(self, document_id: str, key: str, value: str, user_id: str) -> DocumentMetadata:
        validate_entry(key, value)
        self._access.authorize(user_id, document_id, Capability.WRITE)
        entry = self._metadata.update_value(document_id, key, value)
        if entry is None:
            raise NotFoundError("DocumentMetadata", key)
        self._documents.add_audit(document_id, AuditAction.METADATA_UPDATED, user_id, key)
        Log.info(f"Updated metadata '{key}' on document {document_id}")
        return entry

    def delete(self, document_id: str, key: str, user_id: str) -> None:
        self._access.authorize(user_id, document_id, Capability.WRITE)
        if not self._metadata.delete(document_id, key):
            raise NotFoundError("DocumentMetadata", key)
        self._documents.add_audit(document_id, AuditAction.METADATA_DELETED, user_id, key)
        Log.info(f"Deleted metadata '{key}' from document {document_id}")

    def list(self, document_id: str, user_id: str) -> list[DocumentMetadata]:
        self._access.authorize(user_id, document_id, Capability.READ)
        return self._metadata.find_by_document(document_id)
