from typing import Any

import psycopg
from psycopg.rows import dict_row

from docshare.core.exceptions import ConstraintViolationError
from docshare.database.connection import get_connection
from docshare.documents.base import BaseMetadataStore
from docshare.documents.models import DocumentMetadata

_COLUMNS = "id, document_id, key, value, created_at"


def _metadata_from_row(row: dict[str, Any]) -> DocumentMetadata:
    return DocumentMetadata(
        id=row["id"],
        document_id=row["document_id"],
        key=row["key"],
        value=row["value"],
        created_at=row["created_at"],
    )


class MetadataRepository(BaseMetadataStore):
    """Database operations for the document_metadata table."""

    def find_by_document(self, document_id: str) -> list[DocumentMetadata]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM document_metadata
                    WHERE document_id = %s
                    ORDER BY key
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_metadata_from_row(row) for row in rows]

    def find_by_key(self, document_id: str, key: str) -> DocumentMetadata | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM document_metadata
                    WHERE document_id = %s AND key = %s
                    """,
                    (document_id, key),
                )
                row = cur.fetchone()
        return _metadata_from_row(row) if row is not None else None

    def save(self, entry: DocumentMetadata) -> DocumentMetadata:
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO document_metadata (id, document_id, key, value)
                        VALUES (%s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (entry.id, entry.document_id, entry.key, entry.value),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise ConstraintViolationError(
                f"Metadata key '{entry.key}' already exists on document {entry.document_id}"
            ) from exc
        assert row is not None
        return _metadata_from_row(row)

    def update_value(self, document_id: str, key: str, value: str) -> DocumentMetadata | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE document_metadata
                    SET value = %s
                    WHERE document_id = %s AND key = %s
                    RETURNING {_COLUMNS}
                    """,
                    (value, document_id, key),
                )
                row = cur.fetchone()
            conn.commit()
        return _metadata_from_row(row) if row is not None else None

    def delete(self, document_id: str, key: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM document_metadata WHERE document_id = %s AND key = %s",
                    (document_id, key),
                )
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted
