# panelfs/services/storage.py
from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

import redis
from cryptography.fernet import Fernet, InvalidToken

from panelfs.errors import StorageUnavailable

logger = logging.getLogger(__name__)


def derive_fernet_key(installation_code: str) -> bytes:
    """32-byte SHA-256 of the installation code, in Fernet's urlsafe-base64 form."""
    digest = hashlib.sha256(str(installation_code).encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class BlobStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...
    def put(self, key: str, data: bytes) -> None: ...
    def prepare(self, key: str) -> None: ...


class FileBlobStore:
    """
    Blobs as files under DATA_PATH:
      <data_path>/<key>

    Keys are relative POSIX paths; directory structure inside a key is kept.
    """

    def __init__(self, data_path: Path):
        self.base = Path(data_path).resolve()

    def _path_for(self, key: str) -> Path:
        rel = posixpath.normpath(key.lstrip("/"))
        if rel in (".", "") or rel.startswith("../") or rel == "..":
            raise StorageUnavailable(f"Invalid storage key: {key!r}")
        return self.base / rel

    def get(self, key: str) -> Optional[bytes]:
        p = self._path_for(key)
        try:
            return p.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("cannot read %s: %s", p, exc)
            raise StorageUnavailable("Could not read snapshot storage.") from exc

    def put(self, key: str, data: bytes) -> None:
        p = self._path_for(key)
        tmp = None
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            # Write beside the target, then swap in one rename
            fd, tmp = tempfile.mkstemp(dir=p.parent, prefix=f".{p.name}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, p)
        except OSError as exc:
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)
            logger.error("cannot write %s: %s", p, exc)
            raise StorageUnavailable("Could not write snapshot storage.") from exc

    def prepare(self, key: str) -> None:
        directory = self._path_for(key).parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("cannot create storage directory %s: %s", directory, exc)
            raise StorageUnavailable("Could not create the snapshot storage directory.") from exc
        if not os.access(directory, os.W_OK):
            logger.error("storage directory not writable: %s", directory)
            raise StorageUnavailable("Permission denied to write snapshots.")


class RedisBlobStore:
    """
    Redis-backed blobs, one string value per key. Synchronous client for simplicity.
    """

    def __init__(self, client: "redis.Redis", prefix: str = "panelfs:"):
        self._client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "panelfs:") -> "RedisBlobStore":
        return cls(redis.from_url(url), prefix=prefix)

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self._client.get(self.prefix + key)
        except redis.RedisError as exc:
            raise StorageUnavailable("Snapshot storage (redis) is unavailable.") from exc

    def put(self, key: str, data: bytes) -> None:
        try:
            self._client.set(self.prefix + key, data)
        except redis.RedisError as exc:
            raise StorageUnavailable("Snapshot storage (redis) is unavailable.") from exc

    def prepare(self, key: str) -> None:
        try:
            self._client.ping()
        except redis.RedisError as exc:
            logger.error("redis unavailable for %s: %s", key, exc)
            raise StorageUnavailable("Snapshot storage (redis) is unavailable.") from exc


class EncryptedStorage:
    """
    Encrypted JSON documents over a blob store.

    load() answers None for anything it cannot use: a missing key, a blob
    that fails authentication (wrong key, tampering) or ciphertext that does
    not hold JSON. Backend failures propagate as StorageUnavailable.
    """

    def __init__(self, blobs: BlobStore, key: bytes):
        self.blobs = blobs
        self._fernet = Fernet(key)

    @classmethod
    def from_installation_code(cls, blobs: BlobStore, installation_code: str) -> "EncryptedStorage":
        return cls(blobs, derive_fernet_key(installation_code))

    def load(self, key: str) -> Any:
        token = self.blobs.get(key)
        if token is None:
            logger.debug("no stored data for %s", key)
            return None
        try:
            plain = self._fernet.decrypt(token)
        except InvalidToken:
            logger.error("cannot decrypt stored data for %s", key)
            return None
        try:
            return json.loads(plain.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("stored data for %s is not JSON: %s", key, exc)
            return None

    def save(self, key: str, value: Any) -> None:
        token = self._fernet.encrypt(json.dumps(value, ensure_ascii=False).encode("utf-8"))
        self.blobs.put(key, token)
        logger.debug("saved encrypted data for %s", key)

    def prepare(self, key: str) -> None:
        self.blobs.prepare(key)
