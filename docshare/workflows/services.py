from dataclasses import dataclass

from docshare.access.resolver import GrantPolicy, PermissionResolver
from docshare.config.settings import Settings
from docshare.database.repositories.document_repository import DocumentRepository
from docshare.database.repositories.metadata_repository import MetadataRepository
from docshare.database.repositories.permission_repository import PermissionRepository
from docshare.database.repositories.token_repository import TokenRepository
from docshare.database.repositories.user_repository import UserRepository
from docshare.storage.factory import StorageFactory
from docshare.tokens.lifecycle import DownloadTokenLifecycle
from docshare.workflows.access import DocumentAccess
from docshare.workflows.documents import DocumentWorkflow
from docshare.workflows.download import DownloadWorkflow
from docshare.workflows.metadata import MetadataWorkflow
from docshare.workflows.permissions import PermissionWorkflow
from docshare.workflows.upload import UploadWorkflow


@dataclass(frozen=True)
class Services:
    uploads: UploadWorkflow
    documents: DocumentWorkflow
    permissions: PermissionWorkflow
    metadata: MetadataWorkflow
    downloads: DownloadWorkflow


def build_resolver(settings: Settings) -> PermissionResolver:
    policy = GrantPolicy.HIERARCHICAL if settings.permission_hierarchy else GrantPolicy.INDEPENDENT
    return PermissionResolver(policy)


def build_services(settings: Settings) -> Services:
    """Wire repositories, storage and the core into workflows.

    Expects init_pool() to have been called before any workflow runs.
    """
    documents = DocumentRepository()
    grants = PermissionRepository()
    access = DocumentAccess(UserRepository(), grants, documents, build_resolver(settings))
    storage = StorageFactory.create(settings)
    lifecycle = DownloadTokenLifecycle(TokenRepository(), documents, settings)

    return Services(
        uploads=UploadWorkflow(access, documents, storage, settings),
        documents=DocumentWorkflow(access, documents, storage),
        permissions=PermissionWorkflow(access, grants, documents),
        metadata=MetadataWorkflow(access, MetadataRepository(), documents),
        downloads=DownloadWorkflow(access, lifecycle, documents),
    )
