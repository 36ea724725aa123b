from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row

from docshare.core.exceptions import ConstraintViolationError
from docshare.database.connection import get_connection
from docshare.tokens.base import BaseTokenStore
from docshare.tokens.models import DownloadToken

_COLUMNS = "id, document_id, version_id, token, expires_at, used_at, created_by, created_at"


def _token_from_row(row: dict[str, Any]) -> DownloadToken:
    return DownloadToken(
        id=row["id"],
        document_id=row["document_id"],
        version_id=row["version_id"],
        token=row["token"],
        expires_at=row["expires_at"],
        used_at=row["used_at"],
        created_by=row["created_by"],
        created_at=row["created_at"],
    )


class TokenRepository(BaseTokenStore):
    """Database operations for the download_tokens table."""

    def save(self, token: DownloadToken) -> DownloadToken:
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO download_tokens
                        (id, document_id, version_id, token, expires_at, created_by)
                        VALUES (%s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            token.id,
                            token.document_id,
                            token.version_id,
                            token.token,
                            token.expires_at,
                            token.created_by,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise ConstraintViolationError("Download token value already exists") from exc
        assert row is not None
        return _token_from_row(row)

    def find_by_token(self, token: str) -> DownloadToken | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM download_tokens WHERE token = %s",
                    (token,),
                )
                row = cur.fetchone()
        return _token_from_row(row) if row is not None else None

    def mark_used(self, token_id: str, used_at: datetime) -> bool:
        """Compare-and-set on used_at. Only one concurrent caller sees rowcount 1."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE download_tokens
                    SET used_at = %s
                    WHERE id = %s AND used_at IS NULL
                    """,
                    (used_at, token_id),
                )
                won = cur.rowcount == 1
            conn.commit()
        return won

    def delete_expired(self, now: datetime) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM download_tokens WHERE expires_at < %s", (now,))
                deleted = cur.rowcount
            conn.commit()
        return deleted
