from dataclasses import dataclass


@dataclass(frozen=True)
class UploadedFile:
    """An incoming file as handed over by the transport layer."""

    filename: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class StoredFile:
    """Where and how a file landed in storage."""

    path: str
    filename: str
    size: int
    checksum: str  # sha256 hex
