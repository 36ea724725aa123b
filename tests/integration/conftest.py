import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from docshare.config.settings import Settings
from docshare.database.connection import apply_schema, close_pool, get_connection, init_pool
from docshare.database.repositories.document_repository import DocumentRepository
from docshare.documents.models import Document


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docshare_test")
    return Settings(db_pool_min_size=2, db_pool_max_size=4)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            apply_schema(conn)
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def seed_user(db_conn: psycopg.Connection[Any]) -> Generator[str, None, None]:
    user_id = str(uuid.uuid4())
    db_conn.execute(
        "INSERT INTO users (id, email, role) VALUES (%s, %s, 'USER')",
        (user_id, f"{user_id}@example.test"),
    )
    db_conn.commit()
    try:
        yield user_id
    finally:
        db_conn.execute("DELETE FROM documents WHERE owner_id = %s", (user_id,))
        db_conn.execute("DELETE FROM document_audit WHERE performed_by = %s", (user_id,))
        db_conn.execute("DELETE FROM users WHERE id = %s", (user_id,))
        db_conn.commit()


@pytest.fixture
def seed_document(seed_user: str) -> Document:
    return DocumentRepository().save(
        Document(
            id=str(uuid.uuid4()),
            owner_id=seed_user,
            filename="report.pdf",
            mime_type="application/pdf",
            size=10,
        )
    )
