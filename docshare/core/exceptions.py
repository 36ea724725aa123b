from datetime import datetime
from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced by the core."""

    NOT_FOUND = "not_found"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    FORBIDDEN = "forbidden"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_ALREADY_USED = "token_already_used"
    CONSTRAINT_VIOLATION = "constraint_violation"
    ALREADY_EXISTS = "already_exists"
    VALIDATION_ERROR = "validation_error"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INSUFFICIENT_PERMISSION: 403,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.TOKEN_EXPIRED: 409,
    ErrorKind.TOKEN_ALREADY_USED: 409,
    ErrorKind.CONSTRAINT_VIOLATION: 422,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.VALIDATION_ERROR: 400,
}


class DocShareError(Exception):
    """Base exception for all core errors."""

    kind: ErrorKind


class NotFoundError(DocShareError):
    """Raised when a document, version, user, grant or token does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: str | None, message: str | None = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} {entity_id} not found")


class InsufficientPermissionError(DocShareError):
    """Raised when permission resolution denies a capability on a document."""

    kind = ErrorKind.INSUFFICIENT_PERMISSION

    def __init__(self, user_id: str, document_id: str, required_capability: str) -> None:
        self.user_id = user_id
        self.document_id = document_id
        self.required_capability = required_capability
        super().__init__(
            f"User {user_id} does not have {required_capability} "
            f"permission on document {document_id}"
        )


class ForbiddenError(DocShareError):
    """Raised when an action is reserved for administrators or document owners."""

    kind = ErrorKind.FORBIDDEN


class TokenExpiredError(DocShareError):
    """Raised when a download token's expiry has passed."""

    kind = ErrorKind.TOKEN_EXPIRED

    def __init__(self, expires_at: datetime) -> None:
        self.expires_at = expires_at
        super().__init__(f"Download token expired at {expires_at.isoformat()}")


class TokenAlreadyUsedError(DocShareError):
    """Raised when a download token has already been consumed."""

    kind = ErrorKind.TOKEN_ALREADY_USED

    def __init__(self, used_at: datetime | None = None) -> None:
        self.used_at = used_at
        suffix = f" at {used_at.isoformat()}" if used_at is not None else ""
        super().__init__(f"Download token has already been used{suffix}")


class ConstraintViolationError(DocShareError):
    """Raised when a uniqueness constraint rejects a write at commit time.

    Callers recover by recomputing state and retrying.
    """

    kind = ErrorKind.CONSTRAINT_VIOLATION


class AlreadyExistsError(DocShareError):
    """Raised when a uniquely keyed record already exists."""

    kind = ErrorKind.ALREADY_EXISTS


class ValidationError(DocShareError):
    """Raised when input is rejected before any state changes."""

    kind = ErrorKind.VALIDATION_ERROR


def http_status(error: DocShareError) -> int:
    """Map an error to the status code a transport layer should answer with."""
    return HTTP_STATUS_BY_KIND[error.kind]
