"""Ordered document sources and the ``first_available`` combinator.

A source is an async callable returning a :class:`SourceResult`. Sources never
raise: storage and parse failures become ``ok=False`` results so the
combinator can move on to the next one.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from taskdb.core.exceptions import StorageError
from taskdb.integrations.storage import StorageClient

logger = logging.getLogger(__name__)

EMPTY_SOURCE = "empty"


@dataclass
class SourceResult:
    """Outcome of reading one source."""

    source: str
    ok: bool
    document: Any = None
    revision: Optional[str] = None
    error: Optional[str] = None
    failures: List["SourceResult"] = field(default_factory=list)


Source = Callable[[], Awaitable[SourceResult]]


def storage_source(client: StorageClient, path: str, name: Optional[str] = None) -> Source:
    """Read a JSON document through a storage client, keeping its revision token."""
    label = name or client.name

    async def read() -> SourceResult:
        try:
            remote = await client.get_file(path)
            document = json.loads(remote.content) if remote.content.strip() else None
        except (StorageError, ValueError) as exc:
            return SourceResult(source=label, ok=False, error=str(exc))
        return SourceResult(source=label, ok=True, document=document, revision=remote.revision)

    return read


def file_source(path: Optional[str], name: str = "local") -> Source:
    """Read a JSON document from a flat file on disk; no revision token."""

    async def read() -> SourceResult:
        if not path:
            return SourceResult(source=name, ok=False, error="No local file configured")
        target = Path(path)
        if not target.is_file():
            return SourceResult(source=name, ok=False, error=f"File not found: {path}")
        try:
            document = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            return SourceResult(source=name, ok=False, error=str(exc))
        return SourceResult(source=name, ok=True, document=document)

    return read


async def first_available(sources: Sequence[Source], fallback: Any = None) -> SourceResult:
    """Return the first successful source, else an ``empty`` result holding ``fallback``."""
    failures: List[SourceResult] = []
    for source in sources:
        result = await source()
        if result.ok:
            result.failures = failures
            if failures:
                logger.info("Loaded from %s after %d failed source(s)", result.source, len(failures))
            return result
        logger.warning("Source %s unavailable: %s", result.source, result.error)
        failures.append(result)

    return SourceResult(source=EMPTY_SOURCE, ok=True, document=fallback, failures=failures)


def extract_tasks(document: Any) -> Optional[List[Any]]:
    """Tasks of a bare list or a ``{"tasks": [...]}`` document; ``None`` for anything else."""
    if isinstance(document, list):
        return document
    if isinstance(document, dict) and isinstance(document.get("tasks"), list):
        return document["tasks"]
    return None
