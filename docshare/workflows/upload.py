import uuid
from dataclasses import replace

from docshare.access.models import Capability
from docshare.config.settings import Settings
from docshare.core.exceptions import ConstraintViolationError
from docshare.documents.aggregate import DocumentAggregate
from docshare.documents.base import BaseDocumentStore
from docshare.documents.models import AuditAction, Document, DocumentVersion, NewVersionPayload
from docshare.logging.logger import Log
from docshare.storage.base import BaseStorage, safe_filename
from docshare.storage.models import UploadedFile
from docshare.workflows.access import DocumentAccess
from docshare.workflows.models import UploadResult


class UploadWorkflow:
    """Uploads a file as a new document or as the next version of an existing one.

    Protocol: resolve document -> number version -> store bytes -> persist
    version -> attach -> refresh header -> audit. The version number is
    advisory until the store accepts it; on a uniqueness conflict the stored
    file is removed, the aggregate is reloaded and numbering starts over.
    """

    def __init__(
        self,
        access: DocumentAccess,
        documents: BaseDocumentStore,
        storage: BaseStorage,
        settings: Settings,
    ) -> None:
        self._access = access
        self._documents = documents
        self._storage = storage
        self._max_attempts = settings.max_version_attempts

    def upload(
        self, file: UploadedFile, user_id: str, document_id: str | None = None
    ) -> UploadResult:
        """Store a file and record it as a version.

        Raises:
            UnsafeFilenameError: the filename is not a plain basename.
            NotFoundError: unknown user or document.
            InsufficientPermissionError: no WRITE on an existing document.
            ConstraintViolationError: numbering kept colliding after every attempt.
            StorageError: the bytes could not be written.
        """
        Log.info(f"Upload of '{file.filename}' by user {user_id}", document_id=document_id)
        safe_filename(file.filename)

        if document_id is None:
            aggregate = self._create_document(file, user_id)
            try:
                version, aggregate = self._add_version(aggregate, file, user_id)
            except Exception:
                self._documents.delete(aggregate.document.id)
                raise
        else:
            context = self._access.authorize(user_id, document_id, Capability.WRITE)
            version, aggregate = self._add_version(context.aggregate, file, user_id)

        created = version.version_number == 1
        self._documents.add_audit(
            aggregate.document.id,
            AuditAction.CREATED if created else AuditAction.NEW_VERSION,
            user_id,
            f"version {version.version_number}: {version.filename}",
        )
        Log.info(
            f"Stored version {version.version_number} of document {aggregate.document.id}",
            version_id=version.id,
        )
        return UploadResult(document=aggregate.document, version=version, created=created)

    def _create_document(self, file: UploadedFile, user_id: str) -> DocumentAggregate:
        user = self._access.load_user(user_id)
        document = self._documents.save(
            Document(
                id=str(uuid.uuid4()),
                owner_id=user.id,
                filename=file.filename,
                mime_type=file.mime_type,
                size=file.size,
            )
        )
        return DocumentAggregate.from_state(document)

    def _add_version(
        self, aggregate: DocumentAggregate, file: UploadedFile, user_id: str
    ) -> tuple[DocumentVersion, DocumentAggregate]:
        attempt = 0
        while True:
            attempt += 1
            version_id = str(uuid.uuid4())
            payload = aggregate.prepare_add_version(
                NewVersionPayload(
                    id=version_id,
                    filename=file.filename,
                    mime_type=file.mime_type,
                    size=file.size,
                    uploaded_by=user_id,
                )
            )
            stored = self._storage.store_uploaded_file(file, aggregate.document.id, version_id)
            payload = replace(
                payload,
                filename=stored.filename,
                size=stored.size,
                path=stored.path,
                checksum=stored.checksum,
            )
            try:
                persisted = self._documents.create_version(payload.to_version(version_id))
            except ConstraintViolationError:
                self._storage.delete_file(stored.path)
                if attempt >= self._max_attempts:
                    Log.error(
                        f"Giving up on version {payload.version_number} of document "
                        f"{aggregate.document.id} after {attempt} attempts"
                    )
                    raise
                Log.warning(
                    f"Version {payload.version_number} of document {aggregate.document.id} "
                    f"was taken concurrently, retrying",
                    attempt=attempt,
                )
                aggregate = self._access.load_aggregate(aggregate.document.id)
                continue
            except Exception:
                # no row references the file
                self._storage.delete_file(stored.path)
                raise
            break

        aggregate = aggregate.attach_version(persisted)
        # header mirrors the newest known version
        latest = aggregate.get_latest_version() or persisted
        header = replace(
            aggregate.document,
            filename=latest.filename,
            mime_type=latest.mime_type,
            size=latest.size,
        )
        aggregate = aggregate.with_document(self._documents.save(header))
        return persisted, aggregate
