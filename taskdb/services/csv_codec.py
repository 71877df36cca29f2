"""CSV encoding of task records.

Two shapes are produced:

* the rich export, with one column per declared task field and the nested
  fields flattened into delimited sub-structures, which :func:`decode_tasks`
  reverses;
* the persisted snapshot written next to ``tasks.json`` with a fixed, flat
  column set.

Nested encodings::

    assigned_workers  name:email:role                      joined by "|"
    dependencies      predecessor::type::lagDays           joined by ";"
    tags              tag                                  joined by ";"
    comments          author::timestamp::text              joined by ";"
    attachments       filename::url::uploaded_by::uploaded_date  joined by ";"
"""
from __future__ import annotations

import csv
import io
import json
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from taskdb.core.fields import PERSISTED_CSV_FIELDS, TASK_SCHEMA, DependencyType, is_blank, is_number

WORKER_SEPARATOR = "|"
WORKER_FIELD_SEPARATOR = ":"
LIST_SEPARATOR = ";"
ENTRY_FIELD_SEPARATOR = "::"

NUMERIC_FIELDS = {"task_id", "progress_percentage", "estimated_hours", "actual_hours", "parent_task_id"}
BOOLEAN_FIELDS = {"is_critical_path"}

_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
_DIGITS_RE = re.compile(r"^\d+$")


def format_number(value: Any) -> str:
    """Render integral floats without a fractional part (``8.0`` -> ``"8"``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_cell(value: Any) -> str:
    """Plain text of a scalar cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def escape_csv_value(value: Any) -> str:
    """Quote a cell when it holds a double quote, a comma or a line break."""
    text = format_cell(value)
    if any(char in text for char in ('"', ",", "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def _text(value: Any) -> str:
    return "" if value is None else format_cell(value)


def _entries(value: Any) -> List[Dict[str, Any]]:
    return [entry for entry in value if isinstance(entry, dict)] if isinstance(value, list) else []


def encode_field(name: str, value: Any) -> str:
    """Flatten one field of a task into its CSV text."""
    if name == "assigned_workers" and isinstance(value, list):
        return WORKER_SEPARATOR.join(
            WORKER_FIELD_SEPARATOR.join(_text(w.get(key)) for key in ("name", "email", "role"))
            for w in _entries(value)
        )
    if name == "dependencies" and isinstance(value, list):
        encoded = []
        for dep in _entries(value):
            predecessor = dep.get("predecessor_task_id")
            if is_blank(predecessor):
                predecessor = dep.get("predecessor_task_name")
            dep_type = dep.get("type") or DependencyType.FINISH_TO_START.value
            encoded.append(ENTRY_FIELD_SEPARATOR.join((_text(predecessor), _text(dep_type), _text(dep.get("lag_days") or 0))))
        return LIST_SEPARATOR.join(encoded)
    if name == "tags" and isinstance(value, list):
        return LIST_SEPARATOR.join(_text(tag) for tag in value)
    if name == "comments" and isinstance(value, list):
        return LIST_SEPARATOR.join(
            ENTRY_FIELD_SEPARATOR.join(_text(c.get(key)) for key in ("author", "timestamp", "text"))
            for c in _entries(value)
        )
    if name == "attachments" and isinstance(value, list):
        return LIST_SEPARATOR.join(
            ENTRY_FIELD_SEPARATOR.join(_text(a.get(key)) for key in ("filename", "url", "uploaded_by", "uploaded_date"))
            for a in _entries(value)
        )
    return format_cell(value)


def encode_tasks(tasks: Sequence[Dict[str, Any]], fields: Optional[Sequence[str]] = None) -> str:
    """Rich CSV export; every declared field becomes a column even when empty."""
    if not tasks:
        return ""

    columns = list(fields or TASK_SCHEMA.all_fields)
    lines = [",".join(columns)]
    for task in tasks:
        record = task if isinstance(task, dict) else {}
        lines.append(",".join(escape_csv_value(encode_field(name, record.get(name))) for name in columns))
    return "\n".join(lines)


def generate_persisted_csv(tasks: Iterable[Any]) -> str:
    """Flat snapshot with the fixed column set; always ends with a newline."""
    lines = [",".join(PERSISTED_CSV_FIELDS)]
    for task in tasks or []:
        record = task if isinstance(task, dict) else {}
        lines.append(",".join(escape_csv_value(record.get(name)) for name in PERSISTED_CSV_FIELDS))
    return "\n".join(lines) + "\n"


def _split(value: str, separator: str, parts: int) -> List[str]:
    pieces = value.split(separator, parts - 1)
    return pieces + [""] * (parts - len(pieces))


def _parse_number(value: str) -> Any:
    if not _NUMBER_RE.match(value):
        return value
    number = float(value)
    return int(number) if number.is_integer() and "." not in value else number


def decode_field(name: str, value: str) -> Any:
    """Reverse :func:`encode_field` for one cell."""
    if name == "assigned_workers":
        workers = []
        for entry in value.split(WORKER_SEPARATOR):
            if not entry.strip():
                continue
            worker_name, email, role = _split(entry, WORKER_FIELD_SEPARATOR, 3)
            workers.append({"name": worker_name, "email": email, "role": role})
        return workers
    if name == "dependencies":
        dependencies = []
        for entry in value.split(LIST_SEPARATOR):
            if not entry.strip():
                continue
            predecessor, dep_type, lag = _split(entry, ENTRY_FIELD_SEPARATOR, 3)
            lag_value = _parse_number(lag.strip()) if lag.strip() else 0
            dep: Dict[str, Any] = {
                "type": dep_type or DependencyType.FINISH_TO_START.value,
                "lag_days": int(lag_value) if is_number(lag_value) else 0,
            }
            if _DIGITS_RE.match(predecessor):
                dep["predecessor_task_id"] = int(predecessor)
            else:
                dep["predecessor_task_name"] = predecessor
            dependencies.append(dep)
        return dependencies
    if name == "tags":
        return [tag.strip() for tag in value.split(LIST_SEPARATOR) if tag.strip()]
    if name == "comments":
        comments = []
        for entry in value.split(LIST_SEPARATOR):
            if not entry.strip():
                continue
            author, timestamp, text = _split(entry, ENTRY_FIELD_SEPARATOR, 3)
            comments.append({"author": author, "timestamp": timestamp, "text": text})
        return comments
    if name == "attachments":
        attachments = []
        for entry in value.split(LIST_SEPARATOR):
            if not entry.strip():
                continue
            filename, url, uploaded_by, uploaded_date = _split(entry, ENTRY_FIELD_SEPARATOR, 4)
            attachments.append(
                {"filename": filename, "url": url, "uploaded_by": uploaded_by, "uploaded_date": uploaded_date}
            )
        return attachments
    if name in BOOLEAN_FIELDS and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    if name in NUMERIC_FIELDS:
        return _parse_number(value.strip())
    return value


def parse_rows(content: str) -> Tuple[List[str], List[List[str]]]:
    """Split CSV text into a header and its non-blank data rows."""
    reader = csv.reader(io.StringIO(content or ""))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        raise ValueError("CSV must have at least a header row and one data row")
    headers = [header.strip() for header in rows[0]]
    return headers, rows[1:]


def decode_row(headers: Sequence[str], values: Sequence[str]) -> Dict[str, Any]:
    """Build a partial task record from one row; empty cells are left out."""
    record: Dict[str, Any] = {}
    for index, header in enumerate(headers):
        if not header:
            continue
        value = values[index] if index < len(values) else ""
        if value == "":
            continue
        record[header] = decode_field(header, value)
    return record


def decode_tasks(content: str) -> List[Dict[str, Any]]:
    """Parse rich CSV text back into partial task records."""
    headers, rows = parse_rows(content)
    return [decode_row(headers, row) for row in rows]
