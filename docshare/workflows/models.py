from dataclasses import dataclass
from datetime import datetime

from docshare.documents.models import Document, DocumentVersion


@dataclass(frozen=True)
class UploadResult:
    document: Document
    version: DocumentVersion
    created: bool  # True when the upload created the document


@dataclass(frozen=True)
class DownloadLink:
    """A freshly issued single-use link."""

    token: str
    document_id: str
    version_id: str
    expires_at: datetime
    url: str


@dataclass(frozen=True)
class DownloadTarget:
    """What a consumed token unlocked. Streaming the bytes happens elsewhere."""

    document_id: str
    version: DocumentVersion

    @property
    def path(self) -> str | None:
        return self.version.path
