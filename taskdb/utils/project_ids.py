"""Helpers for turning user-supplied project identifiers into safe folder names."""
from __future__ import annotations

import re
from typing import Any, Optional

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_project_id(value: Any) -> Optional[str]:
    """Strip everything outside ``[A-Za-z0-9_-]``; return ``None`` when nothing is left."""
    if value is None:
        return None

    cleaned = _UNSAFE_CHARS_RE.sub("", str(value).strip())
    return cleaned or None
