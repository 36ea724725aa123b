from datetime import timedelta

import pytest

from docshare.core.exceptions import TokenAlreadyUsedError
from docshare.tokens.generator import generate_token
from docshare.tokens.models import DownloadToken, TokenState, mark_used, state_of
from tests.fakes import T0


def _token(expires_in: int = 60, used: bool = False) -> DownloadToken:
    return DownloadToken(
        id="t1",
        document_id="D1",
        token="abc",
        expires_at=T0 + timedelta(seconds=expires_in),
        created_by="U1",
        used_at=T0 if used else None,
    )


class TestTokenState:
    def test_active(self) -> None:
        assert state_of(_token(), T0) is TokenState.ACTIVE
        assert _token().is_active(T0) is True

    def test_used(self) -> None:
        assert state_of(_token(used=True), T0) is TokenState.USED

    def test_expiry_boundary_counts_as_expired(self) -> None:
        token = _token(expires_in=0)
        assert token.is_expired(T0) is True
        assert state_of(token, T0) is TokenState.EXPIRED

    def test_expired_wins_over_used(self) -> None:
        assert state_of(_token(expires_in=-1, used=True), T0) is TokenState.EXPIRED


class TestMarkUsed:
    def test_returns_new_copy(self) -> None:
        token = _token()
        spent = mark_used(token, T0)
        assert spent.used_at == T0
        assert token.used_at is None

    def test_refuses_used_token(self) -> None:
        with pytest.raises(TokenAlreadyUsedError):
            mark_used(_token(used=True), T0)


class TestGenerateToken:
    def test_tokens_are_unique_and_url_safe(self) -> None:
        values = {generate_token() for _ in range(50)}
        assert len(values) == 50
        for value in values:
            assert len(value) >= 43
            assert "/" not in value and "+" not in value

    def test_rejects_low_entropy(self) -> None:
        with pytest.raises(ValueError):
            generate_token(8)
