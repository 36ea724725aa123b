from docshare.core.exceptions import ValidationError


class StorageError(Exception):
    """Base exception for storage adapter failures."""


class UnsafeFilenameError(StorageError, ValidationError):
    """Raised when a filename would escape the storage root. Maps to a client error."""
