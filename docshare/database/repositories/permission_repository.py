from typing import Any

import psycopg
from psycopg.rows import dict_row

from docshare.access.base import BaseGrantStore
from docshare.access.models import Capability, PermissionGrant
from docshare.core.exceptions import ConstraintViolationError
from docshare.database.connection import get_connection

_COLUMNS = "id, document_id, user_id, permission, granted_by, granted_at"


def _grant_from_row(row: dict[str, Any]) -> PermissionGrant:
    return PermissionGrant(
        id=row["id"],
        document_id=row["document_id"],
        user_id=row["user_id"],
        capability=Capability(row["permission"]),
        granted_by=row["granted_by"],
        granted_at=row["granted_at"],
    )


class PermissionRepository(BaseGrantStore):
    """Database operations for the document_permissions table."""

    def find_by_document(self, document_id: str) -> list[PermissionGrant]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM document_permissions
                    WHERE document_id = %s
                    ORDER BY granted_at, id
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_grant_from_row(row) for row in rows]

    def find_by_id(self, grant_id: str) -> PermissionGrant | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM document_permissions WHERE id = %s",
                    (grant_id,),
                )
                row = cur.fetchone()
        return _grant_from_row(row) if row is not None else None

    def find_one(
        self, document_id: str, user_id: str, capability: Capability
    ) -> PermissionGrant | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM document_permissions
                    WHERE document_id = %s AND user_id = %s AND permission = %s
                    """,
                    (document_id, user_id, capability.value),
                )
                row = cur.fetchone()
        return _grant_from_row(row) if row is not None else None

    def save(self, grant: PermissionGrant) -> PermissionGrant:
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO document_permissions
                        (id, document_id, user_id, permission, granted_by)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            grant.id,
                            grant.document_id,
                            grant.user_id,
                            grant.capability.value,
                            grant.granted_by,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise ConstraintViolationError(
                f"User {grant.user_id} already holds {grant.capability.value} "
                f"on document {grant.document_id}"
            ) from exc
        assert row is not None
        return _grant_from_row(row)

    def delete(self, grant_id: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM document_permissions WHERE id = %s", (grant_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted
