import pytest

from docshare.access.models import Role
from docshare.access.resolver import PermissionResolver
from docshare.config.settings import Settings
from docshare.documents.models import Document
from docshare.workflows.access import DocumentAccess
from tests.fakes import (
    FakeClock,
    InMemoryDocuments,
    InMemoryGrants,
    InMemoryMetadata,
    InMemoryTokens,
    InMemoryUsers,
    make_document,
    make_version,
)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        download_token_ttl_seconds=300,
        download_token_max_ttl_seconds=3600,
        max_version_attempts=3,
        sweep_interval_seconds=1,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def users() -> InMemoryUsers:
    store = InMemoryUsers()
    store.add("U1")
    store.add("U2")
    store.add("U3")
    store.add("ADMIN", Role.ADMIN)
    return store


@pytest.fixture()
def grants() -> InMemoryGrants:
    return InMemoryGrants()


@pytest.fixture()
def documents(grants: InMemoryGrants) -> InMemoryDocuments:
    return InMemoryDocuments(grants)


@pytest.fixture()
def tokens() -> InMemoryTokens:
    return InMemoryTokens()


@pytest.fixture()
def metadata_store() -> InMemoryMetadata:
    return InMemoryMetadata()


@pytest.fixture()
def access(
    users: InMemoryUsers, grants: InMemoryGrants, documents: InMemoryDocuments
) -> DocumentAccess:
    return DocumentAccess(users, grants, documents, PermissionResolver())


@pytest.fixture()
def published_document(documents: InMemoryDocuments) -> Document:
    """D1 owned by U1 with two versions."""
    document = documents.save(make_document())
    documents.create_version(make_version(version_number=1))
    documents.create_version(make_version(version_number=2))
    return document
