# panelfs/di.py
from dataclasses import dataclass

from panelfs.config import Settings
from panelfs.services.files import FileAccessService
from panelfs.services.paths import PathResolver
from panelfs.services.snapshots import SnapshotStore
from panelfs.services.storage import (
    BlobStore,
    EncryptedStorage,
    FileBlobStore,
    RedisBlobStore,
)


@dataclass
class Container:
    settings: Settings
    resolver: PathResolver
    file_service: FileAccessService
    storage: EncryptedStorage
    snapshot_store: SnapshotStore


def build_blob_store(s: Settings) -> BlobStore:
    if s.STORAGE_BACKEND == "redis":
        if not s.REDIS_URL:
            raise ValueError("REDIS_URL is required when STORAGE_BACKEND=redis")
        return RedisBlobStore.from_url(s.REDIS_URL, prefix=s.REDIS_KEY_PREFIX)
    return FileBlobStore(s.DATA_PATH)


def build_container(settings: Settings | None = None) -> Container:
    s = settings or Settings()
    resolver = PathResolver(s.FILE_MANAGER_BASE_DIR)
    files = FileAccessService()

    storage = EncryptedStorage.from_installation_code(build_blob_store(s), s.INSTALLATION_CODE)
    snapshots = SnapshotStore(resolver, storage)

    return Container(s, resolver, files, storage, snapshots)
