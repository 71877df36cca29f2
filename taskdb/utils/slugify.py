"""Utility helpers for generating file-name friendly slugs."""
from __future__ import annotations

import re
import unicodedata

_INVALID_CHARS_RE = re.compile(r"[^\w\s-]", flags=re.UNICODE)
_SEPARATOR_RE = re.compile(r"[-\s_]+", flags=re.UNICODE)


def slugify(value: str, *, max_length: int = 80, default: str = "unknown") -> str:
    """Convert a status label such as ``"Pending Review"`` into ``"pending-review"``."""
    if not value:
        return default

    normalized = unicodedata.normalize("NFKD", str(value))
    cleaned = _INVALID_CHARS_RE.sub("", normalized)
    slug = _SEPARATOR_RE.sub("-", cleaned.strip().lower()).strip("-")

    if not slug:
        return default

    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-") or default

    return slug
