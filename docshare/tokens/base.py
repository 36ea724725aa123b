from abc import ABC, abstractmethod
from datetime import datetime

from docshare.tokens.models import DownloadToken


class BaseTokenStore(ABC):
    """Contract for download token persistence."""

    @abstractmethod
    def save(self, token: DownloadToken) -> DownloadToken:
        """Insert a new token.

        Raises:
            ConstraintViolationError: if the token value is already taken.
        """

    @abstractmethod
    def find_by_token(self, token: str) -> DownloadToken | None:
        """Look a token up by its opaque value."""

    @abstractmethod
    def mark_used(self, token_id: str, used_at: datetime) -> bool:
        """Set used_at only if it is currently unset.

        Must be a single atomic compare-and-set. Returns True for the one
        caller that won, False for everybody else.
        """

    @abstractmethod
    def delete_expired(self, now: datetime) -> int:
        """Delete tokens with expires_at < now, used or not. Returns the count."""
