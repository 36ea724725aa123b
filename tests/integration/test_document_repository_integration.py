import uuid
from dataclasses import replace

import pytest

from docshare.access.models import Capability
from docshare.core.exceptions import ConstraintViolationError
from docshare.database.repositories.document_repository import DocumentRepository
from docshare.documents.models import AuditAction, Document, DocumentVersion, PageRequest


def _version(document: Document, number: int) -> DocumentVersion:
    return DocumentVersion(
        id=str(uuid.uuid4()),
        document_id=document.id,
        version_number=number,
        filename=f"report-v{number}.pdf",
        mime_type="application/pdf",
        size=10,
        uploaded_by=document.owner_id,
        checksum="a" * 64,
    )


@pytest.mark.integration
class TestVersionUniqueness:
    def test_same_number_twice_is_constraint_violation(self, seed_document: Document) -> None:
        repo = DocumentRepository()
        repo.create_version(_version(seed_document, 1))

        with pytest.raises(ConstraintViolationError):
            repo.create_version(_version(seed_document, 1))

        assert [v.version_number for v in repo.find_versions(seed_document.id)] == [1]

    def test_versions_ordered_ascending(self, seed_document: Document) -> None:
        repo = DocumentRepository()
        repo.create_version(_version(seed_document, 2))
        repo.create_version(_version(seed_document, 1))

        assert [v.version_number for v in repo.find_versions(seed_document.id)] == [1, 2]


@pytest.mark.integration
class TestDocumentLifecycle:
    def test_save_updates_header(self, seed_document: Document) -> None:
        repo = DocumentRepository()
        saved = repo.save(replace(seed_document, filename="renamed.pdf", size=99))

        assert saved.filename == "renamed.pdf"
        assert saved.size == 99
        assert saved.created_at is not None

    def test_delete_cascades_versions_but_keeps_audit(self, seed_document: Document) -> None:
        repo = DocumentRepository()
        repo.create_version(_version(seed_document, 1))
        repo.add_audit(seed_document.id, AuditAction.DELETED, seed_document.owner_id)

        assert repo.delete(seed_document.id) is True
        assert repo.find_by_id(seed_document.id) is None
        assert repo.find_versions(seed_document.id) == []
        assert [e.action for e in repo.find_audit(seed_document.id)] == [AuditAction.DELETED]
        assert repo.delete(seed_document.id) is False


@pytest.mark.integration
class TestListingAndSearch:
    def test_owner_sees_own_document(self, seed_document: Document) -> None:
        page = DocumentRepository().list_accessible(
            seed_document.owner_id, [Capability.READ], PageRequest(limit=100)
        )
        assert seed_document.id in [d.id for d in page.items]
        assert page.total >= 1

    def test_search_matches_version_filename(self, seed_document: Document) -> None:
        repo = DocumentRepository()
        marker = uuid.uuid4().hex
        repo.create_version(replace(_version(seed_document, 1), filename=f"{marker}.pdf"))

        page = repo.search(marker.upper(), PageRequest())

        assert [d.id for d in page.items] == [seed_document.id]
        assert page.total == 1
