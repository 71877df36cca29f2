"""Automation service filling in identifiers, defaults, timestamps and project statistics."""
from __future__ import annotations

import copy
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from taskdb.config import settings
from taskdb.core.fields import (
    PROJECT_SCHEMA,
    TASK_SCHEMA,
    RecordKind,
    TaskStatus,
    is_blank,
    is_number,
    normalize_status,
)
from taskdb.services.schema_validator import is_positive_int, is_valid_date

CLOSED_STATUSES = {TaskStatus.COMPLETED.value, TaskStatus.CANCELLED.value}


def _tasks_of(project: Any) -> List[Dict[str, Any]]:
    """Accept a project/template document, a bare task list, or nothing."""
    if isinstance(project, list):
        tasks = project
    elif isinstance(project, dict) and isinstance(project.get("tasks"), list):
        tasks = project["tasks"]
    else:
        tasks = []
    return [task for task in tasks if isinstance(task, dict)]


def _normalize_terms(values: Optional[Iterable[Any]]) -> set:
    if not values or isinstance(values, (str, bytes)):
        return set()
    return {str(value).strip().lower() for value in values if str(value).strip()}


class AutomationService:
    """Derives the fields a user never types in."""

    def __init__(
        self,
        default_creator_id: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.default_creator_id = default_creator_id or settings.DEFAULT_CREATOR_ID
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def timestamp(self) -> str:
        """Current UTC time as an ISO string with millisecond precision and ``Z`` suffix."""
        return self._clock().astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def generate_task_id(tasks: Iterable[Any]) -> int:
        """Return the smallest positive integer not used as a task_id."""
        used = {
            task.get("task_id")
            for task in tasks or []
            if isinstance(task, dict) and is_positive_int(task.get("task_id"))
        }
        candidate = 1
        while candidate in used:
            candidate += 1
        return candidate

    def auto_populate_task(
        self,
        partial: Any,
        existing_project: Any = None,
        creator_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Complete a partial task record without overwriting anything the caller supplied."""
        task: Dict[str, Any] = copy.deepcopy(partial) if isinstance(partial, dict) else {}
        existing_tasks = _tasks_of(existing_project)

        if is_blank(task.get("task_id")):
            task["task_id"] = self.generate_task_id(existing_tasks)

        for name, default in TASK_SCHEMA.defaults.items():
            if is_blank(task.get(name)):
                task[name] = copy.deepcopy(default)

        if is_blank(task.get("created_date")):
            task["created_date"] = self.timestamp()
        if is_blank(task.get("creator_id")):
            task["creator_id"] = creator_id or self.default_creator_id

        self.apply_status_rules(task)
        self._resolve_dependencies(task, existing_tasks)
        return task

    def apply_status_rules(self, task: Dict[str, Any]) -> Dict[str, Any]:
        """Canonicalise the status and enforce ``Completed => progress 100`` in place."""
        normalized = normalize_status(task.get("status"), RecordKind.TASK)
        if normalized:
            task["status"] = normalized

        if task.get("status") == TaskStatus.COMPLETED.value:
            task["progress_percentage"] = 100
            if is_blank(task.get("completed_date")):
                task["completed_date"] = self.timestamp()
        return task

    @staticmethod
    def _resolve_dependencies(task: Dict[str, Any], existing_tasks: List[Dict[str, Any]]) -> None:
        dependencies = task.get("dependencies")
        if not isinstance(dependencies, list) or not existing_tasks:
            return

        ids_by_name = {
            t["task_name"]: t["task_id"]
            for t in existing_tasks
            if isinstance(t.get("task_name"), str) and is_positive_int(t.get("task_id"))
        }
        for dep in dependencies:
            if not isinstance(dep, dict) or not is_blank(dep.get("predecessor_task_id")):
                continue
            name = dep.get("predecessor_task_name")
            resolved = ids_by_name.get(name) if isinstance(name, str) else None
            if resolved is not None:
                dep["predecessor_task_id"] = resolved

    @staticmethod
    def auto_populate_project(partial: Any) -> Dict[str, Any]:
        """Apply project defaults (status, budget) and canonicalise the status."""
        project: Dict[str, Any] = copy.deepcopy(partial) if isinstance(partial, dict) else {}
        for name, default in PROJECT_SCHEMA.defaults.items():
            if is_blank(project.get(name)):
                project[name] = default

        normalized = normalize_status(project.get("status"), RecordKind.PROJECT)
        if normalized:
            project["status"] = normalized
        return project

    @staticmethod
    def calculate_skill_match(required_tags: Optional[Iterable[Any]], worker_skills: Optional[Iterable[Any]]) -> int:
        """Number of required terms found among the worker's skills, ignoring case."""
        return len(_normalize_terms(required_tags) & _normalize_terms(worker_skills))

    @classmethod
    def rank_workers(cls, task: Dict[str, Any], workers: Iterable[Any]) -> List[Dict[str, Any]]:
        """Workers whose skills overlap the task's tags, best match first."""
        ranked = []
        for worker in workers or []:
            if not isinstance(worker, dict):
                continue
            score = cls.calculate_skill_match(task.get("tags"), worker.get("skills"))
            if score > 0:
                ranked.append({"worker": worker, "score": score})
        ranked.sort(key=lambda entry: entry["score"], reverse=True)
        return ranked

    @staticmethod
    def generate_project_summary(project: Any, today: Optional[date] = None) -> Dict[str, Any]:
        """Aggregate counts, hours and progress over a project's tasks."""
        tasks = _tasks_of(project)
        today_iso = (today or date.today()).isoformat()

        counts_by_status: Dict[str, int] = {}
        counts_by_priority: Dict[str, int] = {}
        estimated = 0.0
        actual = 0.0
        progress_values: List[float] = []
        critical = 0
        overdue = 0

        for task in tasks:
            status = str(task.get("status") or "Unknown")
            counts_by_status[status] = counts_by_status.get(status, 0) + 1
            priority = str(task.get("priority") or "Unknown")
            counts_by_priority[priority] = counts_by_priority.get(priority, 0) + 1

            if is_number(task.get("estimated_hours")):
                estimated += task["estimated_hours"]
            if is_number(task.get("actual_hours")):
                actual += task["actual_hours"]
            if is_number(task.get("progress_percentage")):
                progress_values.append(task["progress_percentage"])
            if task.get("is_critical_path") is True:
                critical += 1

            end_date = task.get("end_date")
            if is_valid_date(end_date) and end_date < today_iso and status not in CLOSED_STATUSES:
                overdue += 1

        total = len(tasks)
        completed = counts_by_status.get(TaskStatus.COMPLETED.value, 0)
        return {
            "total_tasks": total,
            "total_estimated_hours": estimated,
            "total_actual_hours": actual,
            "counts_by_status": counts_by_status,
            "counts_by_priority": counts_by_priority,
            "completed_tasks": completed,
            "completion_rate": round(completed / total * 100, 1) if total else 0.0,
            "average_progress": round(sum(progress_values) / len(progress_values), 1) if progress_values else 0.0,
            "critical_path_tasks": critical,
            "overdue_tasks": overdue,
        }


automation_service = AutomationService()
