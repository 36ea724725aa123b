import uuid
from collections.abc import Sequence
from typing import Any

import psycopg
from psycopg.rows import dict_row

from docshare.access.models import Capability
from docshare.core.exceptions import ConstraintViolationError
from docshare.database.connection import get_connection
from docshare.documents.base import BaseDocumentStore
from docshare.documents.models import (
    AuditAction,
    AuditEntry,
    Document,
    DocumentPage,
    DocumentVersion,
    PageRequest,
)

_VERSION_COLUMNS = """
    id, document_id, version_number, filename, mime_type, size,
    path, content_ref, checksum, uploaded_by, created_at
"""

_DOCUMENT_COLUMNS = "d.id, d.owner_id, d.filename, d.mime_type, d.size, d.created_at, d.updated_at"


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _document_from_row(row: dict[str, Any]) -> Document:
    return Document(
        id=row["id"],
        owner_id=row["owner_id"],
        filename=row["filename"],
        mime_type=row["mime_type"],
        size=row["size"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _version_from_row(row: dict[str, Any]) -> DocumentVersion:
    return DocumentVersion(
        id=row["id"],
        document_id=row["document_id"],
        version_number=row["version_number"],
        filename=row["filename"],
        mime_type=row["mime_type"],
        size=row["size"],
        uploaded_by=row["uploaded_by"],
        path=row["path"],
        content_ref=row["content_ref"],
        checksum=row["checksum"],
        created_at=row["created_at"],
    )


class DocumentRepository(BaseDocumentStore):
    """Database operations for documents, document_versions and document_audit."""

    def find_by_id(self, document_id: str) -> Document | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, owner_id, filename, mime_type, size, created_at, updated_at
                    FROM documents
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()
        return _document_from_row(row) if row is not None else None

    def find_versions(self, document_id: str) -> list[DocumentVersion]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_VERSION_COLUMNS}
                    FROM document_versions
                    WHERE document_id = %s
                    ORDER BY version_number
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_version_from_row(row) for row in rows]

    def save(self, document: Document) -> Document:
        """Upsert the header; updated_at is refreshed on every write."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO documents (id, owner_id, filename, mime_type, size)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO UPDATE
                    SET filename = EXCLUDED.filename,
                        mime_type = EXCLUDED.mime_type,
                        size = EXCLUDED.size,
                        updated_at = NOW()
                    RETURNING id, owner_id, filename, mime_type, size, created_at, updated_at
                    """,
                    (
                        document.id,
                        document.owner_id,
                        document.filename,
                        document.mime_type,
                        document.size,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        assert row is not None
        return _document_from_row(row)

    def create_version(self, version: DocumentVersion) -> DocumentVersion:
        """Insert a version row.

        Raises:
            ConstraintViolationError: if (document_id, version_number) is taken.
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO document_versions
                        (id, document_id, version_number, filename, mime_type, size,
                         path, content_ref, checksum, uploaded_by)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_VERSION_COLUMNS}
                        """,
                        (
                            version.id,
                            version.document_id,
                            version.version_number,
                            version.filename,
                            version.mime_type,
                            version.size,
                            version.path,
                            version.content_ref,
                            version.checksum,
                            version.uploaded_by,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise ConstraintViolationError(
                f"Version {version.version_number} of document "
                f"{version.document_id} already exists"
            ) from exc
        assert row is not None
        return _version_from_row(row)

    def delete_version(self, version_id: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM document_versions WHERE id = %s", (version_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted

    def delete(self, document_id: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM documents WHERE id = %s", (document_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted

    def add_audit(
        self,
        document_id: str,
        action: AuditAction,
        actor_id: str,
        details: str | None = None,
    ) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO document_audit (id, document_id, action, performed_by, details)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (str(uuid.uuid4()), document_id, action.value, actor_id, details or ""),
            )
            conn.commit()

    def find_audit(self, document_id: str) -> list[AuditEntry]:
        """Audit entries of a document, oldest first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, document_id, action, performed_by, details, performed_at
                    FROM document_audit
                    WHERE document_id = %s
                    ORDER BY performed_at, id
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [
            AuditEntry(
                id=row["id"],
                document_id=row["document_id"],
                action=AuditAction(row["action"]),
                actor_id=row["performed_by"],
                details=row["details"],
                performed_at=row["performed_at"],
            )
            for row in rows
        ]

    def list_accessible(
        self, user_id: str, capabilities: Sequence[Capability], page: PageRequest
    ) -> DocumentPage:
        where = """
            d.owner_id = %s
            OR EXISTS (
                SELECT 1 FROM document_permissions p
                WHERE p.document_id = d.id AND p.user_id = %s AND p.permission = ANY(%s)
            )
        """
        return self._fetch_page(
            where, (user_id, user_id, [c.value for c in capabilities]), page
        )

    def list_all(self, page: PageRequest) -> DocumentPage:
        return self._fetch_page("TRUE", (), page)

    def search(self, query: str, page: PageRequest) -> DocumentPage:
        pattern = _like_pattern(query)
        where = """
            d.filename ILIKE %s
            OR EXISTS (
                SELECT 1 FROM document_versions v
                WHERE v.document_id = d.id AND v.filename ILIKE %s
            )
        """
        return self._fetch_page(where, (pattern, pattern), page)

    def _fetch_page(
        self, where: str, params: tuple[Any, ...], page: PageRequest
    ) -> DocumentPage:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"SELECT COUNT(*) AS total FROM documents d WHERE {where}", params)
                count_row = cur.fetchone()
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents d
                    WHERE {where}
                    ORDER BY d.created_at DESC, d.id
                    LIMIT %s OFFSET %s
                    """,
                    (*params, page.limit, page.offset),
                )
                rows = cur.fetchall()
        return DocumentPage(
            items=[_document_from_row(row) for row in rows],
            total=count_row["total"] if count_row is not None else 0,
            page=page.page,
            limit=page.limit,
        )
