import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from docshare.core.exceptions import ConstraintViolationError
from docshare.database.repositories.token_repository import TokenRepository
from docshare.documents.models import Document
from docshare.tokens.models import DownloadToken


def _token(document: Document, expires_in: int = 300, value: str | None = None) -> DownloadToken:
    return DownloadToken(
        id=str(uuid.uuid4()),
        document_id=document.id,
        token=value or uuid.uuid4().hex,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        created_by=document.owner_id,
    )


@pytest.mark.integration
class TestTokenRepositoryMarkUsed:
    def test_first_mark_wins_second_loses(self, seed_document: Document) -> None:
        repo = TokenRepository()
        token = repo.save(_token(seed_document))
        now = datetime.now(timezone.utc)

        assert repo.mark_used(token.id, now) is True
        assert repo.mark_used(token.id, now) is False

        stored = repo.find_by_token(token.token)
        assert stored is not None
        assert stored.used_at is not None

    def test_concurrent_marks_have_one_winner(self, seed_document: Document) -> None:
        repo = TokenRepository()
        token = repo.save(_token(seed_document))
        barrier = threading.Barrier(2)
        results: list[bool] = []
        lock = threading.Lock()

        def attempt() -> None:
            barrier.wait()
            won = repo.mark_used(token.id, datetime.now(timezone.utc))
            with lock:
                results.append(won)

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == [False, True]


@pytest.mark.integration
class TestTokenRepositorySaveAndSweep:
    def test_duplicate_value_is_constraint_violation(self, seed_document: Document) -> None:
        repo = TokenRepository()
        value = uuid.uuid4().hex
        repo.save(_token(seed_document, value=value))

        with pytest.raises(ConstraintViolationError):
            repo.save(_token(seed_document, value=value))

    def test_delete_expired_keeps_active(self, seed_document: Document) -> None:
        repo = TokenRepository()
        expired = repo.save(_token(seed_document, expires_in=-60))
        active = repo.save(_token(seed_document, expires_in=600))

        assert repo.delete_expired(datetime.now(timezone.utc)) >= 1
        assert repo.find_by_token(expired.token) is None
        assert repo.find_by_token(active.token) is not None
