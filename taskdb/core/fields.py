"""Record kinds, enumerations and the field tables shared by validation, automation and CSV."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    BLOCKED = "Blocked"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    PENDING_REVIEW = "Pending Review"


class ProjectStatus(str, Enum):
    """Project lifecycle states."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskPriority(str, Enum):
    """Task priorities."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class DependencyType(str, Enum):
    """Scheduling link between a predecessor and a successor task."""

    FINISH_TO_START = "FS"
    START_TO_START = "SS"
    FINISH_TO_FINISH = "FF"
    START_TO_FINISH = "SF"


class RecordKind(str, Enum):
    """Kinds understood by the schema validator."""

    TASK = "task"
    PROJECT = "project"
    WORKER = "worker"
    TEMPLATE = "template"
    DOCUMENT = "document"


TASK_STATUSES: List[str] = [status.value for status in TaskStatus]
PROJECT_STATUSES: List[str] = [status.value for status in ProjectStatus]
TASK_PRIORITIES: List[str] = [priority.value for priority in TaskPriority]
DEPENDENCY_TYPES: List[str] = [dep_type.value for dep_type in DependencyType]

# Spellings that do not reduce to a canonical label by case/separator folding
STATUS_ALIASES: Dict[str, str] = {
    "planning": TaskStatus.NOT_STARTED.value,
    "done": TaskStatus.COMPLETED.value,
    "finished": TaskStatus.COMPLETED.value,
    "canceled": TaskStatus.CANCELLED.value,
}

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+$")
WORKER_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
PROGRESS_RANGE: Tuple[int, int] = (0, 100)
HOURS_MIN = 0


@dataclass(frozen=True)
class RecordSchema:
    """Declared field table for one record kind."""

    kind: RecordKind
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()
    automatic: Tuple[str, ...] = ()
    defaults: Dict[str, Any] = field(default_factory=dict)

    @property
    def all_fields(self) -> List[str]:
        return [*self.required, *self.optional]


TASK_SCHEMA = RecordSchema(
    kind=RecordKind.TASK,
    required=(
        "task_id",
        "task_name",
        "description",
        "start_date",
        "end_date",
        "priority",
        "status",
        "estimated_hours",
        "category_name",
    ),
    optional=(
        "progress_percentage",
        "actual_hours",
        "is_critical_path",
        "tags",
        "assigned_workers",
        "parent_task_id",
        "creator_id",
        "created_date",
        "completed_date",
        "comments",
        "attachments",
        "dependencies",
    ),
    automatic=("task_id", "created_date", "creator_id", "completed_date"),
    defaults={
        "status": TaskStatus.NOT_STARTED.value,
        "priority": TaskPriority.MEDIUM.value,
        "progress_percentage": 0,
        "actual_hours": 0,
        "is_critical_path": False,
        "assigned_workers": [],
        "dependencies": [],
        "comments": [],
        "attachments": [],
        "tags": [],
        "parent_task_id": None,
        "completed_date": None,
    },
)

PROJECT_SCHEMA = RecordSchema(
    kind=RecordKind.PROJECT,
    required=("name", "start_date", "end_date", "status"),
    optional=("description", "budget"),
    defaults={
        "status": ProjectStatus.NOT_STARTED.value,
        "budget": 0,
    },
)

# Columns written by the persistence service; nested fields are left out
PERSISTED_CSV_FIELDS: Tuple[str, ...] = (
    "task_id",
    "task_name",
    "description",
    "start_date",
    "end_date",
    "priority",
    "status",
    "progress_percentage",
    "estimated_hours",
    "actual_hours",
    "is_critical_path",
    "category_name",
    "parent_task_id",
    "creator_id",
    "created_date",
    "completed_date",
)


def _fold(value: str) -> str:
    return " ".join(value.replace("_", " ").replace("-", " ").lower().split())


_TASK_STATUS_LOOKUP: Dict[str, str] = {_fold(label): label for label in TASK_STATUSES}
_PROJECT_STATUS_LOOKUP: Dict[str, str] = {_fold(label): label for label in PROJECT_STATUSES}


def normalize_status(value: Any, kind: RecordKind = RecordKind.TASK) -> Optional[str]:
    """Return the canonical status label for ``value`` or ``None`` when it is not recognised."""
    if not isinstance(value, str) or not value.strip():
        return None

    lookup = _PROJECT_STATUS_LOOKUP if kind == RecordKind.PROJECT else _TASK_STATUS_LOOKUP
    folded = _fold(value)
    canonical = lookup.get(folded) or STATUS_ALIASES.get(folded)
    if canonical is None or canonical not in lookup.values():
        return None
    return canonical


def is_blank(value: Any) -> bool:
    """A field counts as missing when absent, ``None`` or a blank string."""
    return value is None or (isinstance(value, str) and not value.strip())


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
