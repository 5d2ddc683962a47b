# panelfs/errors.py
"""
Error taxonomy shared by the path resolver, file access and snapshot services.

Messages are safe to hand to untrusted clients: they never carry server-side
absolute paths. Transports map ``status_code`` straight onto the response.
"""
from __future__ import annotations

from typing import Any, Dict, List


class PanelFsError(Exception):
    status_code = 500
    default_message = "Internal error."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])

    def payload(self) -> Dict[str, Any]:
        """Extra fields merged into the error response body."""
        return {}


class AccessDenied(PanelFsError, PermissionError):
    status_code = 403
    default_message = "Access denied: Path is outside the allowed directory."


class NotFound(PanelFsError, FileNotFoundError):
    status_code = 404
    default_message = "File not found."


class SnapshotNotFound(NotFound):
    default_message = "Snapshot not found."


class IsDirectory(PanelFsError, IsADirectoryError):
    status_code = 400
    default_message = "Path is a directory, not a file."


class NotWritable(PanelFsError, PermissionError):
    status_code = 403
    default_message = "Permission denied: file is not writable."


class AlreadyExists(PanelFsError, FileExistsError):
    status_code = 409
    default_message = "Item already exists."


class InvalidName(PanelFsError, ValueError):
    status_code = 400
    default_message = "Invalid name for file or folder."


class StorageUnavailable(PanelFsError):
    status_code = 500
    default_message = "Snapshot storage is unavailable."


class AllSlotsLocked(PanelFsError):
    status_code = 400

    def __init__(self, max_snapshots: int, snapshots: List[Any]):
        super().__init__(
            f"Cannot create new snapshot. All {max_snapshots} snapshot slots are "
            "filled with locked snapshots. Unlock some or delete manually."
        )
        self.snapshots = snapshots

    def payload(self) -> Dict[str, Any]:
        return {"snapshots": [s.model_dump(mode="json") for s in self.snapshots]}


class Unexpected(PanelFsError):
    status_code = 500
