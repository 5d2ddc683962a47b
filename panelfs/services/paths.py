# panelfs/services/paths.py
import logging
import os
import posixpath
import re
from pathlib import Path

from panelfs.errors import AccessDenied

logger = logging.getLogger(__name__)

PARENT_PREFIX = re.compile(r"^\.\.(/|$)")


def _normalize(p: str) -> str:
    # posixpath.normpath keeps a leading "//"; collapse it like any other run
    return re.sub(r"^/+", "/", posixpath.normpath(p))


def client_path(user_path: str) -> str:
    """Client-facing form of a logical path: rooted, duplicate separators collapsed."""
    return re.sub(r"/+", "/", "/" + (user_path or ""))


class PathResolver:
    """
    Resolve untrusted client paths against the configured root.

    Resolution is lexical. A final check on the real paths also rejects
    symlinks inside the root that point outside it.
    """

    def __init__(self, root: Path):
        root_str = _normalize(os.fspath(root))
        if not posixpath.isabs(root_str):
            root_str = _normalize(os.path.abspath(root_str))
        self._root = root_str

    @property
    def root(self) -> Path:
        return Path(self._root)

    @property
    def is_filesystem_root(self) -> bool:
        return self._root == "/"

    def resolve(self, user_path: str) -> Path:
        if "\x00" in (user_path or ""):
            logger.error("access denied (NUL byte): requested=%r", user_path)
            raise AccessDenied("Access denied: Invalid path structure.")

        normalized = _normalize(user_path or ".")
        if PARENT_PREFIX.match(normalized):
            # Anything that still climbs after collapsing ".." points above the root
            logger.error("access denied (traversal): requested=%r normalized=%r", user_path, normalized)
            raise AccessDenied("Access denied: Invalid path structure.")

        if self.is_filesystem_root and posixpath.isabs(normalized):
            resolved = normalized
        else:
            # Absolute-looking input is rooted at the configured root
            relative = normalized.lstrip("/")
            resolved = _normalize(posixpath.join(self._root, relative))

        if self.is_filesystem_root:
            if not posixpath.isabs(resolved):
                logger.error(
                    "access denied (not absolute): requested=%r resolved=%r", user_path, resolved
                )
                raise AccessDenied("Access denied: Invalid path resolution.")
        elif resolved != self._root and not resolved.startswith(self._root + "/"):
            logger.error(
                "access denied (outside root): requested=%r resolved=%r root=%r",
                user_path, resolved, self._root,
            )
            raise AccessDenied()

        if not self.is_filesystem_root and not self._within_real_root(resolved):
            logger.error("access denied (symlink escape): requested=%r resolved=%r", user_path, resolved)
            raise AccessDenied()

        logger.debug("resolved %r -> %r", user_path, resolved)
        return Path(resolved)

    def relative(self, resolved: Path) -> str:
        """Path of ``resolved`` relative to the root, POSIX style; '' for the root itself."""
        rel = posixpath.relpath(os.fspath(resolved), self._root)
        return "" if rel == "." else rel

    def _within_real_root(self, resolved: str) -> bool:
        real_root = os.path.realpath(self._root)
        real = os.path.realpath(resolved)
        return real == real_root or real.startswith(real_root.rstrip("/") + "/")
