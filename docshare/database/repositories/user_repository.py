from psycopg.rows import dict_row

from docshare.access.base import BaseUserLookup
from docshare.access.models import Identity, Role
from docshare.database.connection import get_connection


class UserRepository(BaseUserLookup):
    """Read access to the users table."""

    def find_by_id(self, user_id: str) -> Identity | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT id, role FROM users WHERE id = %s", (user_id,))
                row = cur.fetchone()
        if row is None:
            return None
        return Identity(id=row["id"], role=Role(row["role"]))
