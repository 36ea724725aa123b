from docshare.workflows.documents import DocumentWorkflow
from docshare.workflows.download import DownloadWorkflow
from docshare.workflows.metadata import MetadataWorkflow
from docshare.workflows.permissions import PermissionWorkflow
from docshare.workflows.services import Services, build_services
from docshare.workflows.upload import UploadWorkflow

__all__ = [
    "DocumentWorkflow",
    "DownloadWorkflow",
    "MetadataWorkflow",
    "PermissionWorkflow",
    "Services",
    "UploadWorkflow",
    "build_services",
]
