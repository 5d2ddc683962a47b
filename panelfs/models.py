# panelfs/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class Snapshot(BaseModel):
    id: str = Field(..., description="Opaque unique identifier")
    timestamp: datetime = Field(..., description="Creation instant (UTC)")
    content: str
    language: str
    isLocked: bool = Field(False, description="Exempt from automatic pruning")

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Older collections may hold naive timestamps; they were written in UTC
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


class SnapshotFile(BaseModel):
    """Persisted shape of one file's snapshot collection."""
    snapshots: List[Snapshot] = Field(default_factory=list)


@dataclass(frozen=True)
class FileRecord:
    resolved_path: Path
    is_directory: bool
    size_bytes: int
    mime_type: str
    is_writable: bool


@dataclass(frozen=True)
class TextContent:
    content: str
    writable: bool
    path: Path


@dataclass(frozen=True)
class DownloadContent:
    path: Path
    filename: str
    mime_type: str
    size_bytes: int


@dataclass(frozen=True)
class DirEntry:
    name: str
    type: Literal["folder", "file", "unknown"]
    size: Optional[int]
    modified: Optional[str]
    permissions: str
