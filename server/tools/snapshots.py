# server/tools/snapshots.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from fastmcp import FastMCP

from panelfs.logging import log_call
from panelfs.models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotListIn(BaseModel):
    filePath: str = Field(..., min_length=1, description="Original file, relative to the root")


class SnapshotCreateIn(BaseModel):
    filePath: str = Field(..., min_length=1, description="Original file, relative to the root")
    content: str = Field(..., description="Editor buffer to capture")
    language: str = Field(..., description="Editor language tag, e.g. 'python'")


class SnapshotLockIn(BaseModel):
    filePath: str = Field(..., min_length=1, description="Original file, relative to the root")
    snapshotId: str = Field(..., min_length=1)
    lock: Optional[bool] = Field(None, description="True to lock, False to unlock, omit to toggle")


class SnapshotDeleteIn(BaseModel):
    filePath: str = Field(..., min_length=1, description="Original file, relative to the root")
    snapshotId: str = Field(..., min_length=1)


def dump_snapshots(snapshots: List[Snapshot]) -> List[Dict[str, Any]]:
    return [s.model_dump(mode="json") for s in snapshots]


def register_snapshot_tools(mcp: FastMCP, snapshot_store):
    @mcp.tool(name="snapshot_list", description="List a file's snapshots, newest first.")
    def snapshot_list(input: SnapshotListIn) -> Dict[str, Any]:
        log_call(logger, "snapshot_list", input.model_dump())
        return {"snapshots": dump_snapshots(snapshot_store.list(input.filePath))}

    @mcp.tool(
        name="snapshot_create",
        description="Capture a snapshot of a file's content; the oldest unlocked " \
        "snapshots are pruned beyond 10.",
    )
    def snapshot_create(input: SnapshotCreateIn) -> Dict[str, Any]:
        log_call(logger, "snapshot_create", input.model_dump())
        snapshots = snapshot_store.create(input.filePath, input.content, input.language)
        return {"success": True, "message": "Snapshot created.", "snapshots": dump_snapshots(snapshots)}

    @mcp.tool(name="snapshot_lock", description="Lock, unlock or toggle a snapshot.")
    def snapshot_lock(input: SnapshotLockIn) -> Dict[str, Any]:
        log_call(logger, "snapshot_lock", input.model_dump())
        if input.lock is None:
            snap = snapshot_store.toggle_lock(input.filePath, input.snapshotId)
        else:
            snap = snapshot_store.set_lock(input.filePath, input.snapshotId, input.lock)
        return {"success": True, "snapshot": snap.model_dump(mode="json")}

    @mcp.tool(name="snapshot_delete", description="Delete a snapshot, locked or not.")
    def snapshot_delete(input: SnapshotDeleteIn) -> Dict[str, Any]:
        log_call(logger, "snapshot_delete", input.model_dump())
        remaining = snapshot_store.delete(input.filePath, input.snapshotId)
        return {"success": True, "message": "Snapshot deleted.", "snapshots": dump_snapshots(remaining)}
