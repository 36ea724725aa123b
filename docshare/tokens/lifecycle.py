import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from docshare.access.models import Identity
from docshare.config.settings import Settings
from docshare.core.exceptions import (
    ConstraintViolationError,
    ForbiddenError,
    NotFoundError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    ValidationError,
)
from docshare.documents.aggregate import DocumentAggregate
from docshare.documents.base import BaseDocumentStore
from docshare.documents.models import DocumentVersion
from docshare.tokens.base import BaseTokenStore
from docshare.tokens.generator import generate_token
from docshare.tokens.models import (
    INVALID_TOKEN,
    ConsumedToken,
    DownloadToken,
    TokenValidation,
    mark_used,
)

MAX_ISSUE_ATTEMPTS = 3


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DownloadTokenLifecycle:
    """Issues, validates and consumes single-use download tokens.

    State machine: ACTIVE -> USED (stored) or ACTIVE -> EXPIRED (derived
    from the clock). Both are terminal.
    """

    def __init__(
        self,
        token_store: BaseTokenStore,
        document_store: BaseDocumentStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._token_store = token_store
        self._document_store = document_store
        self._settings = settings
        self._clock = clock

    def issue(
        self,
        document_id: str,
        created_by: str,
        version_id: str | None = None,
        ttl_seconds: int | None = None,
    ) -> DownloadToken:
        """Create and persist a new token expiring ttl seconds from now.

        Raises:
            ValidationError: if ttl is negative or above the configured maximum.
        """
        ttl = self._resolve_ttl(ttl_seconds)
        now = self._clock()
        attempt = 0
        while True:
            attempt += 1
            candidate = DownloadToken(
                id=str(uuid.uuid4()),
                document_id=document_id,
                version_id=version_id,
                token=generate_token(self._settings.download_token_bytes),
                expires_at=now + timedelta(seconds=ttl),
                created_by=created_by,
                created_at=now,
            )
            try:
                return self._token_store.save(candidate)
            except ConstraintViolationError:
                # token value collision; a fresh value is drawn on retry
                if attempt >= MAX_ISSUE_ATTEMPTS:
                    raise

    def validate(self, token: str) -> TokenValidation:
        """Report whether a token could be consumed right now. Never mutates."""
        found = self._token_store.find_by_token(token)
        if found is None or not found.is_active(self._clock()):
            return INVALID_TOKEN
        return TokenValidation(
            valid=True,
            document_id=found.document_id,
            version_id=found.version_id,
            expires_at=found.expires_at,
        )

    def consume(self, token: str) -> ConsumedToken:
        """Spend a token. Checks run in a fixed order: exists, expiry, use, target.

        Raises:
            NotFoundError: unknown token, or its document/version is gone.
            TokenExpiredError: expires_at has passed (even if also used).
            TokenAlreadyUsedError: used before, or lost a concurrent race.
        """
        found = self._token_store.find_by_token(token)
        if found is None:
            raise NotFoundError("DownloadToken", None, "Download token not found or invalid")

        now = self._clock()
        if found.is_expired(now):
            raise TokenExpiredError(found.expires_at)
        if found.is_used():
            raise TokenAlreadyUsedError(found.used_at)

        version = self._resolve_target(found)

        spent = mark_used(found, now)
        if not self._token_store.mark_used(found.id, now):
            raise TokenAlreadyUsedError()
        return ConsumedToken(token=spent, document_id=found.document_id, version=version)

    def delete_expired(self, actor: Identity) -> int:
        """Administrative sweep of every token past its expiry.

        Raises:
            ForbiddenError: if the actor is not an administrator.
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can clean up expired download tokens")
        return self._token_store.delete_expired(self._clock())

    def _resolve_ttl(self, ttl_seconds: int | None) -> int:
        if ttl_seconds is None:
            return self._settings.download_token_ttl_seconds
        if ttl_seconds < 0:
            raise ValidationError(f"ttl must not be negative, got {ttl_seconds}")
        if ttl_seconds > self._settings.download_token_max_ttl_seconds:
            raise ValidationError(
                f"ttl {ttl_seconds}s exceeds the maximum of "
                f"{self._settings.download_token_max_ttl_seconds}s"
            )
        return ttl_seconds

    def _resolve_target(self, token: DownloadToken) -> DocumentVersion:
        document = self._document_store.find_by_id(token.document_id)
        if document is None:
            raise NotFoundError("Document", token.document_id)
        aggregate = DocumentAggregate.from_state(
            document, self._document_store.find_versions(token.document_id)
        )
        if token.version_id is None:
            latest = aggregate.get_latest_version()
            if latest is None:
                raise NotFoundError(
                    "DocumentVersion", None, f"No versions found for document {document.id}"
                )
            return latest
        version = aggregate.find_version(token.version_id)
        if version is None:
            raise NotFoundError("DocumentVersion", token.version_id)
        return version
