from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from docshare.core.exceptions import TokenAlreadyUsedError
from docshare.documents.models import DocumentVersion


class TokenState(str, Enum):
    """Lifecycle state of a download token. EXPIRED is derived from the clock."""

    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


@dataclass(frozen=True)
class DownloadToken:
    """Single-use, time-boxed link to a document version."""

    id: str
    document_id: str
    token: str
    expires_at: datetime
    created_by: str
    version_id: str | None = None  # None: resolve to the latest version on download
    used_at: datetime | None = None
    created_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        # now == expires_at already counts as expired
        return now >= self.expires_at

    def is_used(self) -> bool:
        return self.used_at is not None

    def is_active(self, now: datetime) -> bool:
        return not self.is_used() and not self.is_expired(now)


def state_of(token: DownloadToken, now: datetime) -> TokenState:
    """Expiry wins over use, matching the order in which consume checks them."""
    if token.is_expired(now):
        return TokenState.EXPIRED
    if token.is_used():
        return TokenState.USED
    return TokenState.ACTIVE


def mark_used(token: DownloadToken, now: datetime) -> DownloadToken:
    """Return a copy of the token with used_at set.

    Raises:
        TokenAlreadyUsedError: if the token was consumed before.
    """
    if token.used_at is not None:
        raise TokenAlreadyUsedError(token.used_at)
    return replace(token, used_at=now)


@dataclass(frozen=True)
class TokenValidation:
    """Read-only answer for link preview endpoints."""

    valid: bool
    document_id: str | None = None
    version_id: str | None = None
    expires_at: datetime | None = None


INVALID_TOKEN = TokenValidation(valid=False)


@dataclass(frozen=True)
class ConsumedToken:
    """Result of a successful consume: the spent token and what it unlocked."""

    token: DownloadToken
    document_id: str
    version: DocumentVersion

    @property
    def version_id(self) -> str:
        return self.version.id
