# panelfs/services/files.py
from __future__ import annotations

import logging
import os
import stat as stat_mod
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from panelfs.errors import (
    AlreadyExists,
    InvalidName,
    IsDirectory,
    NotFound,
    NotWritable,
    Unexpected,
)
from panelfs.models import DirEntry, DownloadContent, FileRecord, TextContent

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"

MIME_TYPES = {
    ".txt": "text/plain",
    ".log": "text/plain",
    ".ini": "text/plain",
    ".conf": "text/plain",
    ".cfg": "text/plain",
    ".env": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".py": "text/x-python",
    ".sh": "text/x-shellscript",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".ts": "application/typescript",
    ".tsx": "application/typescript",
    ".json": "application/json",
    ".yaml": "application/x-yaml",
    ".yml": "application/x-yaml",
    ".xml": "application/xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
}

TEXT_VIEWABLE_PREFIXES = (
    "text/",
    "application/javascript",
    "application/json",
    "application/x-yaml",
    "application/xml",
    "application/typescript",
)


def mime_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME)


def is_text_viewable(mime_type: str) -> bool:
    return mime_type.startswith(TEXT_VIEWABLE_PREFIXES)


def mode_to_string(mode: int, is_directory: bool) -> str:
    bits = (
        (stat_mod.S_IRUSR, "r"), (stat_mod.S_IWUSR, "w"), (stat_mod.S_IXUSR, "x"),
        (stat_mod.S_IRGRP, "r"), (stat_mod.S_IWGRP, "w"), (stat_mod.S_IXGRP, "x"),
        (stat_mod.S_IROTH, "r"), (stat_mod.S_IWOTH, "w"), (stat_mod.S_IXOTH, "x"),
    )
    return ("d" if is_directory else "-") + "".join(c if mode & bit else "-" for bit, c in bits)


def is_valid_name(name: str) -> bool:
    if not name or not name.strip():
        return False
    if "/" in name or "\\" in name:
        return False
    return name not in (".", "..")


class FileAccessService:
    """
    Stat, read and write regular files that PathResolver has already placed
    beneath the root. Paths handed in here are trusted; error messages still
    never include them.
    """

    def stat(self, path: Path) -> FileRecord:
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            raise NotFound()
        is_dir = stat_mod.S_ISDIR(st.st_mode)
        return FileRecord(
            resolved_path=path,
            is_directory=is_dir,
            size_bytes=st.st_size,
            mime_type=DEFAULT_MIME if is_dir else mime_type_for(path),
            is_writable=self.is_writable(path),
        )

    def is_writable(self, path: Path) -> bool:
        # A missing permission is a normal answer, not an error
        return os.access(path, os.W_OK)

    def read(self, path: Path, for_viewing: bool = False) -> Union[TextContent, DownloadContent]:
        record = self.stat(path)
        if record.is_directory:
            raise IsDirectory()

        if for_viewing and is_text_viewable(record.mime_type):
            try:
                data = path.read_bytes()
            except OSError as exc:
                logger.error("read failed for %s: %s", path, exc)
                raise Unexpected("Failed to read file.") from exc
            return TextContent(
                content=data.decode("utf-8", errors="replace"),
                writable=record.is_writable,
                path=path,
            )

        return DownloadContent(
            path=path,
            filename=path.name,
            mime_type=record.mime_type,
            size_bytes=record.size_bytes,
        )

    def write(self, path: Path, content: str) -> None:
        if path.exists():
            if path.is_dir():
                raise IsDirectory()
            if not self.is_writable(path):
                logger.warning("write refused, not writable: %s", path)
                raise NotWritable()
        # A missing target is created; the directory's own permissions decide
        try:
            path.write_bytes(content.encode("utf-8"))
        except OSError as exc:
            logger.error("write failed for %s: %s", path, exc)
            raise Unexpected("Failed to save file.") from exc
        logger.info("saved %s (%d chars)", path, len(content))

    def list_dir(self, path: Path) -> List[DirEntry]:
        if not path.exists():
            raise NotFound("Path not found.")
        if not path.is_dir():
            raise NotFound("Path is not a directory.")

        with os.scandir(path) as it:
            children = sorted(it, key=lambda e: e.name)

        entries: List[DirEntry] = []
        for entry in children:
            try:
                st = os.stat(entry.path)
            except OSError as exc:
                logger.warning("failed to stat %s: %s", entry.path, exc)
                kind = "folder" if entry.is_dir() else ("file" if entry.is_file() else "unknown")
                entries.append(DirEntry(entry.name, kind, None, None, "---------"))
                continue

            is_dir = stat_mod.S_ISDIR(st.st_mode)
            kind = "folder" if is_dir else ("file" if stat_mod.S_ISREG(st.st_mode) else "unknown")
            entries.append(
                DirEntry(
                    name=entry.name,
                    type=kind,
                    size=st.st_size,
                    modified=datetime.fromtimestamp(st.st_mtime, timezone.utc).isoformat(),
                    permissions=mode_to_string(st.st_mode, is_dir),
                )
            )
        return entries

    def create_item(self, directory: Path, name: str, kind: str) -> Path:
        if not is_valid_name(name):
            raise InvalidName("Invalid name for file or folder. Names cannot be empty or contain slashes.")
        if kind not in ("file", "folder"):
            raise InvalidName('Invalid item type. Must be "file" or "folder".')
        if not directory.is_dir():
            raise NotFound("Parent directory not found.")
        if not self.is_writable(directory):
            raise NotWritable("Permission denied. Cannot create item in this directory.")

        target = directory / name
        label = "File" if kind == "file" else "Folder"
        if target.exists():
            raise AlreadyExists(f'{label} "{name}" already exists.')
        try:
            if kind == "file":
                target.write_bytes(b"")
            else:
                target.mkdir()
        except FileExistsError:
            raise AlreadyExists(f'{label} "{name}" already exists.')
        except OSError as exc:
            logger.error("create failed for %s: %s", target, exc)
            raise Unexpected("Failed to create item.") from exc
        logger.info("created %s %s", kind, target)
        return target
