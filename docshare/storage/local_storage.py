import hashlib
from pathlib import Path

from docshare.storage.base import BaseStorage, safe_filename
from docshare.storage.exceptions import StorageError, UnsafeFilenameError
from docshare.storage.models import StoredFile, UploadedFile


def version_file_path(files_root: Path, document_id: str, version_id: str, filename: str) -> Path:
    """Build path to a version file: {files_root}/{document_id}/{version_id}/{filename}"""
    return files_root / document_id / version_id / filename


class LocalFileStorage(BaseStorage):
    """Stores version files on the local filesystem."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def store_uploaded_file(
        self, file: UploadedFile, document_id: str, version_id: str
    ) -> StoredFile:
        name = safe_filename(file.filename)
        path = self._resolve_path(document_id, version_id, name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(file.content)
        except OSError as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc
        return StoredFile(
            path=str(path),
            filename=name,
            size=len(file.content),
            checksum=hashlib.sha256(file.content).hexdigest(),
        )

    def delete_file(self, path: str) -> bool:
        target = Path(path)
        self._ensure_inside_root(target)
        if not target.exists():
            return False
        try:
            target.unlink()
        except OSError as exc:
            raise StorageError(f"Could not delete {target}: {exc}") from exc
        return True

    def _resolve_path(self, document_id: str, version_id: str, filename: str) -> Path:
        path = version_file_path(self._files_root, document_id, version_id, filename)
        self._ensure_inside_root(path)
        return path

    def _ensure_inside_root(self, path: Path) -> None:
        root = self._files_root.resolve()
        if not path.resolve().is_relative_to(root):
            raise UnsafeFilenameError(f"Path {path} is outside of {root}")
