from collections.abc import Iterable

from docshare.documents.models import (
    Document,
    DocumentVersion,
    NewVersionPayload,
    VersionCreationPayload,
)


class DocumentAggregate:
    """A document header plus its known versions.

    Instances are immutable: mutating operations return a new aggregate.
    Nothing here touches persistence; the version number computed by
    prepare_add_version is advisory until the store accepts it under the
    (document_id, version_number) uniqueness constraint.
    """

    __slots__ = ("_document", "_versions")

    def __init__(self, document: Document, versions: tuple[DocumentVersion, ...]) -> None:
        self._document = document
        self._versions = versions

    @classmethod
    def from_state(
        cls, document: Document, versions: Iterable[DocumentVersion] = ()
    ) -> "DocumentAggregate":
        return cls(document, tuple(versions))

    @property
    def document(self) -> Document:
        return self._document

    def __len__(self) -> int:
        return len(self._versions)

    def prepare_add_version(self, payload: NewVersionPayload) -> VersionCreationPayload:
        """Number a new version as max(existing) + 1, or 1 for the first."""
        next_number = max((v.version_number for v in self._versions), default=0) + 1
        return VersionCreationPayload(
            id=payload.id,
            document_id=self._document.id,
            version_number=next_number,
            filename=payload.filename,
            mime_type=payload.mime_type,
            size=payload.size,
            uploaded_by=payload.uploaded_by,
            path=payload.path,
            content_ref=payload.content_ref,
            checksum=payload.checksum,
        )

    def attach_version(self, version: DocumentVersion) -> "DocumentAggregate":
        """Append a persisted version. Attaching an already present ID is a no-op."""
        if version.document_id != self._document.id:
            raise ValueError(
                f"Version {version.id} belongs to document {version.document_id}, "
                f"not {self._document.id}"
            )
        if self.find_version(version.id) is not None:
            return self
        return DocumentAggregate(self._document, self._versions + (version,))

    def remove_version_by_id(self, version_id: str) -> "DocumentAggregate":
        """Drop a version from the in-memory view. Missing IDs are a no-op."""
        if self.find_version(version_id) is None:
            return self
        remaining = tuple(v for v in self._versions if v.id != version_id)
        return DocumentAggregate(self._document, remaining)

    def with_document(self, document: Document) -> "DocumentAggregate":
        """Replace the header, keeping the versions."""
        if document.id != self._document.id:
            raise ValueError("Cannot swap the header for a different document")
        return DocumentAggregate(document, self._versions)

    def get_latest_version(self) -> DocumentVersion | None:
        if not self._versions:
            return None
        return max(self._versions, key=lambda v: v.version_number)

    def get_all_versions(self) -> list[DocumentVersion]:
        """Versions ordered by version number, ascending."""
        return sorted(self._versions, key=lambda v: v.version_number)

    def find_version(self, version_id: str) -> DocumentVersion | None:
        for version in self._versions:
            if version.id == version_id:
                return version
        return None
