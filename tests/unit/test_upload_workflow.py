from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docshare.access.models import Capability
from docshare.access.resolver import PermissionResolver
from docshare.config.settings import Settings
from docshare.core.exceptions import (
    ConstraintViolationError,
    InsufficientPermissionError,
    NotFoundError,
    http_status,
)
from docshare.documents.models import AuditAction, Document, DocumentVersion
from docshare.storage.exceptions import StorageError, UnsafeFilenameError
from docshare.storage.local_storage import LocalFileStorage
from docshare.storage.models import UploadedFile
from docshare.workflows.access import DocumentAccess
from docshare.workflows.upload import UploadWorkflow
from tests.fakes import InMemoryDocuments, InMemoryGrants, InMemoryUsers, make_grant


class RacingDocuments(InMemoryDocuments):
    """A concurrent writer claims the computed version number first, `races` times."""

    def __init__(self, races: int = 1) -> None:
        super().__init__()
        self.races = races

    def create_version(self, version: DocumentVersion) -> DocumentVersion:
        if self.races > 0:
            self.races -= 1
            super().create_version(
                replace(version, id=f"concurrent-{version.version_number}", path=None)
            )
        return super().create_version(version)


def _file(name: str = "report.pdf", content: bytes = b"v1") -> UploadedFile:
    return UploadedFile(filename=name, mime_type="application/pdf", content=content)


def _workflow(
    documents: InMemoryDocuments,
    users: InMemoryUsers,
    grants: InMemoryGrants,
    storage: object,
    settings: Settings,
) -> UploadWorkflow:
    access = DocumentAccess(users, grants, documents, PermissionResolver())
    return UploadWorkflow(access, documents, storage, settings)  # type: ignore[arg-type]


@pytest.fixture()
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(files_root=tmp_path)


@pytest.fixture()
def uploads(
    documents: InMemoryDocuments,
    users: InMemoryUsers,
    grants: InMemoryGrants,
    storage: LocalFileStorage,
    settings: Settings,
) -> UploadWorkflow:
    return _workflow(documents, users, grants, storage, settings)


class TestNewDocument:
    def test_creates_document_with_first_version(
        self, uploads: UploadWorkflow, documents: InMemoryDocuments
    ) -> None:
        result = uploads.upload(_file(), "U1")

        assert result.created is True
        assert result.version.version_number == 1
        assert result.document.owner_id == "U1"
        assert result.document.filename == "report.pdf"
        assert result.version.checksum is not None
        assert result.version.path is not None and Path(result.version.path).exists()
        assert documents.actions(result.document.id) == [AuditAction.CREATED]

    def test_unknown_user(self, uploads: UploadWorkflow, documents: InMemoryDocuments) -> None:
        with pytest.raises(NotFoundError):
            uploads.upload(_file(), "ghost")
        assert documents.documents == {}

    def test_storage_failure_removes_new_document(
        self,
        documents: InMemoryDocuments,
        users: InMemoryUsers,
        grants: InMemoryGrants,
        settings: Settings,
    ) -> None:
        failing_storage = MagicMock()
        failing_storage.store_uploaded_file.side_effect = StorageError("disk full")
        uploads = _workflow(documents, users, grants, failing_storage, settings)

        with pytest.raises(StorageError):
            uploads.upload(_file(), "U1")
        assert documents.documents == {}


class TestNewVersion:
    def test_owner_adds_next_version(
        self, uploads: UploadWorkflow, documents: InMemoryDocuments
    ) -> None:
        first = uploads.upload(_file(), "U1")
        second = uploads.upload(_file("report-final.pdf", b"v2!"), "U1", first.document.id)

        assert second.created is False
        assert second.version.version_number == 2
        assert second.document.filename == "report-final.pdf"
        assert second.document.size == 3
        assert documents.actions(first.document.id) == [
            AuditAction.CREATED,
            AuditAction.NEW_VERSION,
        ]

    def test_requires_write(
        self, uploads: UploadWorkflow, documents: InMemoryDocuments, grants: InMemoryGrants
    ) -> None:
        first = uploads.upload(_file(), "U1")
        grants.save(make_grant(Capability.READ, document_id=first.document.id))

        with pytest.raises(InsufficientPermissionError):
            uploads.upload(_file(), "U2", first.document.id)
        assert len(documents.find_versions(first.document.id)) == 1

    def test_write_grant_allows_upload(
        self, uploads: UploadWorkflow, grants: InMemoryGrants
    ) -> None:
        first = uploads.upload(_file(), "U1")
        grants.save(make_grant(Capability.WRITE, document_id=first.document.id))

        result = uploads.upload(_file(), "U2", first.document.id)
        assert result.version.version_number == 2
        assert result.version.uploaded_by == "U2"
        assert result.document.owner_id == "U1"

    def test_unknown_document(self, uploads: UploadWorkflow) -> None:
        with pytest.raises(NotFoundError):
            uploads.upload(_file(), "U1", "missing")


class TestVersionRace:
    def test_conflict_is_retried_with_fresh_number(
        self,
        users: InMemoryUsers,
        grants: InMemoryGrants,
        storage: LocalFileStorage,
        settings: Settings,
        tmp_path: Path,
    ) -> None:
        documents = RacingDocuments(races=0)
        uploads = _workflow(documents, users, grants, storage, settings)
        first = uploads.upload(_file(), "U1")

        documents.races = 1
        result = uploads.upload(_file(), "U1", first.document.id)

        numbers = sorted(v.version_number for v in documents.find_versions(first.document.id))
        assert numbers == [1, 2, 3]
        assert result.version.version_number == 3
        stored = sorted(p for p in tmp_path.rglob("*") if p.is_file())
        assert len(stored) == 2

    def test_gives_up_after_max_attempts(
        self,
        users: InMemoryUsers,
        grants: InMemoryGrants,
        storage: LocalFileStorage,
        tmp_path: Path,
    ) -> None:
        documents = RacingDocuments(races=0)
        settings = Settings(max_version_attempts=2)
        uploads = _workflow(documents, users, grants, storage, settings)
        first = uploads.upload(_file(), "U1")

        documents.races = 5
        with pytest.raises(ConstraintViolationError):
            uploads.upload(_file(), "U1", first.document.id)

        assert not any(
            v.uploaded_by == "U1" and v.version_number > 1 and v.path
            for v in documents.find_versions(first.document.id)
        )
        stored = [p for p in tmp_path.rglob("*") if p.is_file()]
        assert len(stored) == 1


class TestHeaderMirrorsNewestVersion:
    def test_header_fields(self, uploads: UploadWorkflow, documents: InMemoryDocuments) -> None:
        first = uploads.upload(_file("a.txt", b"12345"), "U1")
        uploads.upload(UploadedFile("b.csv", "text/csv", b"1"), "U1", first.document.id)

        header = documents.find_by_id(first.document.id)
        assert isinstance(header, Document)
        assert (header.filename, header.mime_type, header.size) == ("b.csv", "text/csv", 1)


class FailingDocuments(InMemoryDocuments):
    """Version inserts fail with a non-constraint error while `failing` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False

    def create_version(self, version: DocumentVersion) -> DocumentVersion:
        if self.failing:
            raise RuntimeError("connection lost")
        return super().create_version(version)


class TestPersistFailure:
    def test_new_document_leaves_no_stored_file(
        self,
        users: InMemoryUsers,
        grants: InMemoryGrants,
        storage: LocalFileStorage,
        settings: Settings,
        tmp_path: Path,
    ) -> None:
        documents = FailingDocuments()
        documents.failing = True
        uploads = _workflow(documents, users, grants, storage, settings)

        with pytest.raises(RuntimeError, match="connection lost"):
            uploads.upload(_file(), "U1")

        assert documents.documents == {}
        assert [p for p in tmp_path.rglob("*") if p.is_file()] == []

    def test_existing_document_keeps_only_its_first_file(
        self,
        users: InMemoryUsers,
        grants: InMemoryGrants,
        storage: LocalFileStorage,
        settings: Settings,
        tmp_path: Path,
    ) -> None:
        documents = FailingDocuments()
        uploads = _workflow(documents, users, grants, storage, settings)
        first = uploads.upload(_file(), "U1")

        documents.failing = True
        with pytest.raises(RuntimeError):
            uploads.upload(_file("report-v2.pdf", b"v2"), "U1", first.document.id)

        stored = [str(p) for p in tmp_path.rglob("*") if p.is_file()]
        assert stored == [first.version.path]
        assert len(documents.find_versions(first.document.id)) == 1


class TestUnsafeFilename:
    def test_rejected_before_anything_is_written(
        self, uploads: UploadWorkflow, documents: InMemoryDocuments, tmp_path: Path
    ) -> None:
        documents.save = MagicMock(wraps=documents.save)  # type: ignore[method-assign]

        with pytest.raises(UnsafeFilenameError) as exc_info:
            uploads.upload(_file("../escape.pdf"), "U1")

        assert http_status(exc_info.value) == 400
        documents.save.assert_not_called()
        assert list(tmp_path.rglob("*")) == []
