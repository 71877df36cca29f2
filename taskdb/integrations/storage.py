"""Storage client interface and the local-disk implementation."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from taskdb.core.exceptions import RemoteNotFoundError, RevisionConflictError, StorageError
from taskdb.utils.files import atomic_write_text


@dataclass
class RemoteFile:
    """File content together with the revision token it was read at."""

    content: str
    revision: Optional[str] = None


class StorageClient:
    """Reads and writes whole files guarded by an opaque revision token."""

    name = "storage"

    async def get_file(self, path: str) -> RemoteFile:
        """Return the file at ``path``; raise :class:`RemoteNotFoundError` when absent."""
        raise NotImplementedError

    async def put_file(self, path: str, content: str, message: str, revision: Optional[str] = None) -> Optional[str]:
        """Write ``content``; ``revision`` must match the stored one. Returns the new revision."""
        raise NotImplementedError


def content_revision(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class FileSystemStorageClient(StorageClient):
    """Stores files under a root directory; the revision token is the content hash."""

    name = "filesystem"

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path.lstrip("/")).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return resolved

    async def get_file(self, path: str) -> RemoteFile:
        target = self._resolve(path)
        if not target.is_file():
            raise RemoteNotFoundError(f"Not Found: {path}")
        try:
            content = target.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc
        return RemoteFile(content=content, revision=content_revision(content))

    async def put_file(self, path: str, content: str, message: str, revision: Optional[str] = None) -> Optional[str]:
        target = self._resolve(path)
        current: Optional[str] = None
        if target.is_file():
            current = content_revision(target.read_text(encoding="utf-8"))
        if current != revision:
            raise RevisionConflictError(path, revision)

        try:
            atomic_write_text(target, content)
        except OSError as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc
        return content_revision(content)
