# panelfs/services/snapshots.py
from __future__ import annotations

import logging
import posixpath
import re
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional
from uuid import uuid4

from pydantic import ValidationError

from panelfs.errors import AllSlotsLocked, NotFound, SnapshotNotFound
from panelfs.models import Snapshot, SnapshotFile
from panelfs.services.paths import PathResolver
from panelfs.services.storage import EncryptedStorage

logger = logging.getLogger(__name__)

MAX_SNAPSHOTS = 10

UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def newest_first(snapshots: List[Snapshot]) -> List[Snapshot]:
    return sorted(snapshots, key=lambda s: s.timestamp, reverse=True)


def prune(snapshots: List[Snapshot], max_snapshots: int = MAX_SNAPSHOTS) -> List[Snapshot]:
    """
    Drop the oldest unlocked snapshots until the collection fits.

    Locked snapshots are never dropped but do use up slots, so a collection
    holding max_snapshots locked entries keeps no unlocked ones at all.
    Returns the survivors newest first.
    """
    locked = [s for s in snapshots if s.isLocked]
    unlocked = sorted((s for s in snapshots if not s.isLocked), key=lambda s: s.timestamp)

    keep_unlocked = max(0, max_snapshots - len(locked))
    if len(unlocked) > keep_unlocked:
        unlocked = unlocked[len(unlocked) - keep_unlocked:]

    return newest_first(locked + unlocked)


class SnapshotStore:
    """
    Version history for files under the root, persisted as one encrypted
    document per original file:
      <relative dir>/<sanitized name>-snapshots.json

    Every operation re-reads the whole collection and writes it back in one
    save. Writers for the same key are serialized within this process only.
    """

    def __init__(
        self,
        resolver: PathResolver,
        storage: EncryptedStorage,
        *,
        max_snapshots: int = MAX_SNAPSHOTS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.resolver = resolver
        self.storage = storage
        self.max_snapshots = max_snapshots
        self._clock = clock
        # Entries disappear once no caller holds the key's lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ---------- Public API ----------

    def list(self, file_path: str) -> List[Snapshot]:
        original = self.resolver.resolve(file_path)
        if not original.is_file():
            logger.info("original %s missing or not a file; no snapshots", file_path)
            return []
        return newest_first(self._load(self.storage_key(original)))

    def get(self, file_path: str, snapshot_id: str) -> Snapshot:
        for snap in self.list(file_path):
            if snap.id == snapshot_id:
                return snap
        raise SnapshotNotFound(f"Snapshot ID {snapshot_id} not found.")

    def create(self, file_path: str, content: str, language: str) -> List[Snapshot]:
        original = self._original(file_path)
        key = self.storage_key(original)
        self.storage.prepare(key)

        with self._locked(key):
            previous = self._load(key)
            snap = Snapshot(
                id=str(uuid4()),
                timestamp=self._next_timestamp(previous),
                content=content,
                language=language,
                isLocked=False,
            )
            kept = prune([snap] + previous, self.max_snapshots)

            if not any(s.id == snap.id for s in kept):
                logger.warning(
                    "cannot snapshot %s: all %d slots are locked", file_path, self.max_snapshots
                )
                raise AllSlotsLocked(self.max_snapshots, newest_first(previous))

            removed = len(previous) + 1 - len(kept)
            if removed:
                logger.info("pruned %d old unlocked snapshot(s) for %s", removed, file_path)

            self._save(key, kept)

        logger.info("snapshot %s created for %s (total %d)", snap.id, file_path, len(kept))
        return kept

    def toggle_lock(self, file_path: str, snapshot_id: str) -> Snapshot:
        return self._update_lock(file_path, snapshot_id, None)

    def set_lock(self, file_path: str, snapshot_id: str, lock: bool) -> Snapshot:
        return self._update_lock(file_path, snapshot_id, lock)

    def delete(self, file_path: str, snapshot_id: str) -> List[Snapshot]:
        original = self._original(file_path)
        key = self.storage_key(original)

        with self._locked(key):
            current = self._load(key)
            remaining = [s for s in current if s.id != snapshot_id]
            if len(remaining) == len(current):
                raise SnapshotNotFound(f"Snapshot ID {snapshot_id} not found.")
            remaining = newest_first(remaining)
            self._save(key, remaining)

        logger.info("snapshot %s deleted for %s", snapshot_id, file_path)
        return remaining

    def storage_key(self, original: Path) -> str:
        directory, name = posixpath.split(self.resolver.relative(original))
        filename = f"{UNSAFE_FILENAME_CHARS.sub('_', name)}-snapshots.json"
        return posixpath.join(directory, filename) if directory else filename

    # ---------- Internals ----------

    def _original(self, file_path: str) -> Path:
        original = self.resolver.resolve(file_path)
        if not original.exists():
            raise NotFound("Original file not found.")
        if original.is_dir():
            raise NotFound("Original path is a directory, not a file.")
        return original

    def _update_lock(self, file_path: str, snapshot_id: str, lock: Optional[bool]) -> Snapshot:
        original = self._original(file_path)
        key = self.storage_key(original)

        with self._locked(key):
            current = self._load(key)
            for i, snap in enumerate(current):
                if snap.id == snapshot_id:
                    new_state = (not snap.isLocked) if lock is None else lock
                    updated = snap.model_copy(update={"isLocked": new_state})
                    current[i] = updated
                    break
            else:
                raise SnapshotNotFound(f"Snapshot ID {snapshot_id} not found.")
            self._save(key, newest_first(current))

        logger.info(
            "snapshot %s %s for %s", snapshot_id, "locked" if updated.isLocked else "unlocked", file_path
        )
        return updated

    def _load(self, key: str) -> List[Snapshot]:
        raw = self.storage.load(key)
        if raw is None:
            return []
        try:
            return list(SnapshotFile.model_validate(raw).snapshots)
        except ValidationError as exc:
            logger.warning("ignoring malformed snapshot data for %s: %s", key, exc.error_count())
            return []

    def _save(self, key: str, snapshots: List[Snapshot]) -> None:
        self.storage.save(key, SnapshotFile(snapshots=snapshots).model_dump(mode="json"))

    def _next_timestamp(self, existing: List[Snapshot]) -> datetime:
        now = self._clock()
        latest = max((s.timestamp for s in existing), default=None)
        # The new snapshot must sort strictly newest even if the clock hasn't moved
        if latest is not None and now <= latest:
            now = latest + timedelta(microseconds=1)
        return now

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield
