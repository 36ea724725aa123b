from abc import ABC, abstractmethod
from pathlib import Path

from docshare.storage.exceptions import UnsafeFilenameError
from docshare.storage.models import StoredFile, UploadedFile


def safe_filename(filename: str) -> str:
    """Return the filename if it is a plain basename, otherwise refuse it.

    Raises:
        UnsafeFilenameError: for empty names, dot names, or names with separators.
    """
    name = Path(filename.replace("\\", "/")).name
    if not name or name in (".", "..") or name != filename:
        raise UnsafeFilenameError(f"Refusing unsafe filename: {filename!r}")
    return name


class BaseStorage(ABC):
    """Contract for all file storage adapters. Byte I/O lives only here."""

    @abstractmethod
    def store_uploaded_file(
        self, file: UploadedFile, document_id: str, version_id: str
    ) -> StoredFile:
        """Persist the bytes of one document version.

        Raises:
            StorageError: if the file cannot be written.
        """

    @abstractmethod
    def delete_file(self, path: str) -> bool:
        """Remove a stored file. Returns False if it was already gone."""
