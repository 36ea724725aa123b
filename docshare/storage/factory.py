from pathlib import Path

from docshare.config.settings import Settings
from docshare.storage.base import BaseStorage
from docshare.storage.local_storage import LocalFileStorage


class StorageFactory:
    """Creates the storage adapter selected in settings."""

    ADAPTERS: dict[str, type[LocalFileStorage]] = {
        "local": LocalFileStorage,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseStorage:
        backend = settings.storage_backend.lower()
        adapter_cls = cls.ADAPTERS.get(backend)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown storage backend '{backend}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls(files_root=Path(settings.files_root))
