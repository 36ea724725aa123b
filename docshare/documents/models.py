import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AuditAction(str, Enum):
    """Actions recorded in the document audit log."""

    CREATED = "created"
    NEW_VERSION = "new_version"
    VERSION_DELETED = "version_deleted"
    DELETED = "deleted"
    DOWNLOAD_LINK_GENERATED = "download_link_generated"
    DOWNLOADED = "downloaded"
    METADATA_ADDED = "metadata_added"
    METADATA_UPDATED = "metadata_updated"
    METADATA_DELETED = "metadata_deleted"
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_REVOKED = "permission_revoked"


@dataclass(frozen=True)
class Document:
    """Document header. File fields mirror the newest version."""

    id: str
    owner_id: str
    filename: str
    mime_type: str
    size: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class DocumentVersion:
    """Immutable record of one uploaded revision of a document."""

    id: str
    document_id: str
    version_number: int
    filename: str
    mime_type: str
    size: int
    uploaded_by: str
    path: str | None = None
    content_ref: str | None = None
    checksum: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class NewVersionPayload:
    """Caller-supplied fields for a version that has not been numbered yet."""

    filename: str
    mime_type: str
    size: int
    uploaded_by: str
    id: str | None = None
    path: str | None = None
    content_ref: str | None = None
    checksum: str | None = None


@dataclass(frozen=True)
class VersionCreationPayload:
    """A numbered version ready to be stored and persisted."""

    document_id: str
    version_number: int
    filename: str
    mime_type: str
    size: int
    uploaded_by: str
    id: str | None = None
    path: str | None = None
    content_ref: str | None = None
    checksum: str | None = None

    def to_version(self, version_id: str, created_at: datetime | None = None) -> DocumentVersion:
        return DocumentVersion(
            id=self.id or version_id,
            document_id=self.document_id,
            version_number=self.version_number,
            filename=self.filename,
            mime_type=self.mime_type,
            size=self.size,
            uploaded_by=self.uploaded_by,
            path=self.path,
            content_ref=self.content_ref,
            checksum=self.checksum,
            created_at=created_at,
        )


@dataclass(frozen=True)
class DocumentMetadata:
    """A key/value tag attached to a document."""

    id: str
    document_id: str
    key: str
    value: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class AuditEntry:
    """Append-only audit log row."""

    id: str
    document_id: str
    action: AuditAction
    actor_id: str
    details: str = ""
    performed_at: datetime | None = None


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""

    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class DocumentPage:
    """One page of documents plus the total across all pages."""

    items: list[Document]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1
