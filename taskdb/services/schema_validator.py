"""Schema validation for tasks, projects, workers, templates and whole project documents.

Every check collects all of its findings in one pass so callers can display the
complete list at once. Nothing here raises for bad input: a malformed record
simply produces an invalid :class:`ValidationResult`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from taskdb.core.fields import (
    DATE_PATTERN,
    DEPENDENCY_TYPES,
    EMAIL_PATTERN,
    HOURS_MIN,
    PROGRESS_RANGE,
    PROJECT_SCHEMA,
    PROJECT_STATUSES,
    TASK_PRIORITIES,
    TASK_SCHEMA,
    TASK_STATUSES,
    WORKER_ID_PATTERN,
    RecordKind,
    TaskStatus,
    is_blank,
    is_number,
    normalize_status,
)

TIMESTAMP_POLLUTION_RE = re.compile(r"\b\d{10,}\b")
TEST_TASK_TAG = "e2e-test"

Messages = Tuple[List[str], List[str]]


@dataclass
class ValidationResult:
    """Outcome of a validation pass."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_messages(cls, errors: List[str], warnings: List[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors), warnings=list(warnings))


def is_valid_date(value: Any) -> bool:
    """True for ``YYYY-MM-DD`` strings naming a real calendar day."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value.strip()))


def is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _category_names(categories: Any) -> Optional[Set[str]]:
    if not isinstance(categories, list) or not categories:
        return None
    names = set()
    for category in categories:
        if isinstance(category, dict) and category.get("name"):
            names.add(str(category["name"]))
        elif isinstance(category, str) and category:
            names.add(category)
    return names


@dataclass
class _Context:
    task_ids: Set[int]
    task_names: Set[str]
    categories: Optional[Set[str]]

    @classmethod
    def build(cls, context: Any) -> Optional["_Context"]:
        if isinstance(context, list):
            context = {"tasks": context}
        if not isinstance(context, dict):
            return None
        tasks = context.get("tasks") if isinstance(context.get("tasks"), list) else []
        task_ids = {t.get("task_id") for t in tasks if isinstance(t, dict) and is_positive_int(t.get("task_id"))}
        task_names = {t.get("task_name") for t in tasks if isinstance(t, dict) and isinstance(t.get("task_name"), str)}
        return cls(task_ids=task_ids, task_names=task_names, categories=_category_names(context.get("categories")))


class SchemaValidator:
    """Validator for every record kind of a project document."""

    def validate(self, record: Any, kind: Any = RecordKind.TASK, context: Any = None) -> ValidationResult:
        """Validate ``record`` as ``kind``; ``context`` is the surrounding document or task list."""
        try:
            record_kind = RecordKind(kind)
        except (TypeError, ValueError):
            return ValidationResult(is_valid=False, errors=["Unknown validation type"], warnings=[])

        if record_kind == RecordKind.TASK:
            errors, warnings = self._check_task(record, _Context.build(context))
        elif record_kind == RecordKind.PROJECT:
            errors, warnings = self._check_project(record)
        elif record_kind == RecordKind.WORKER:
            errors, warnings = self._check_worker(record, "Worker")
        elif record_kind == RecordKind.TEMPLATE:
            errors, warnings = self._check_template(record)
        else:
            errors, warnings = self._check_document(record)

        return ValidationResult.from_messages(errors, warnings)

    # Records

    def _check_task(self, task: Any, context: Optional[_Context] = None) -> Messages:
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(task, dict):
            return ["Task must be an object"], warnings

        for name in TASK_SCHEMA.required:
            if is_blank(task.get(name)):
                errors.append(f"Missing required task field: {name}")

        task_id = task.get("task_id")
        if not is_blank(task_id) and not is_positive_int(task_id):
            errors.append("Invalid task_id: must be a positive integer")

        status = task.get("status")
        canonical_status = None
        if not is_blank(status):
            canonical_status = self._check_status(status, TASK_STATUSES, RecordKind.TASK, "Task", errors, warnings)

        priority = task.get("priority")
        if not is_blank(priority) and priority not in TASK_PRIORITIES:
            errors.append(f"Invalid task priority: {priority}")

        self._check_date_range(task, "Task", errors)

        for name in ("estimated_hours", "actual_hours"):
            value = task.get(name)
            if not is_blank(value) and (not is_number(value) or value < HOURS_MIN):
                errors.append(f"Task {name} must be a non-negative number")

        progress = task.get("progress_percentage")
        low, high = PROGRESS_RANGE
        progress_ok = is_number(progress) and low <= progress <= high
        if not is_blank(progress) and not progress_ok:
            errors.append(f"Task progress_percentage must be between {low} and {high}")
        if canonical_status == TaskStatus.COMPLETED.value and progress_ok and progress != high:
            errors.append(f"Completed task must have progress_percentage {high}")

        critical = task.get("is_critical_path")
        if critical is not None and not isinstance(critical, bool):
            errors.append("Task is_critical_path must be a boolean")

        tags = task.get("tags")
        if tags is not None and (not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags)):
            errors.append("Task tags must be a list of strings")

        for name in ("comments", "attachments"):
            value = task.get(name)
            if value is not None and not isinstance(value, list):
                errors.append(f"Task {name} must be a list")

        parent_id = task.get("parent_task_id")
        if not is_blank(parent_id):
            if not is_positive_int(parent_id):
                errors.append("Invalid parent_task_id: must be a positive integer")
            elif parent_id == task_id:
                errors.append("Task cannot be its own parent")
            elif context is not None and parent_id not in context.task_ids:
                errors.append(f"Task parent_task_id {parent_id} does not exist")

        self._check_assigned_workers(task.get("assigned_workers"), errors, warnings)
        self._check_dependencies(task.get("dependencies"), context, errors, warnings)

        category = task.get("category_name")
        if context is not None and context.categories is not None and isinstance(category, str) and category.strip():
            if category not in context.categories:
                errors.append(f'Task category "{category}" does not exist in project categories')

        return errors, warnings

    def _check_project(self, project: Any) -> Messages:
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(project, dict):
            return ["Project must be an object"], warnings

        for name in PROJECT_SCHEMA.required:
            if is_blank(project.get(name)):
                errors.append(f"Missing required project field: {name}")

        status = project.get("status")
        if not is_blank(status):
            self._check_status(status, PROJECT_STATUSES, RecordKind.PROJECT, "Project", errors, warnings)

        self._check_date_range(project, "Project", errors)

        budget = project.get("budget")
        if budget is not None and (not is_number(budget) or budget < 0):
            errors.append("Project budget must be a non-negative number")

        return errors, warnings

    def _check_worker(self, worker: Any, label: str) -> Messages:
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(worker, dict):
            return [f"{label}: must be an object"], warnings

        worker_id = str(worker.get("worker_id") or "").strip()
        email = str(worker.get("email") or "").strip()
        name = str(worker.get("name") or "").strip()
        role = str(worker.get("role") or "").strip()

        if not worker_id and not email:
            errors.append(f"{label}: missing worker_id (preferred) or email")
        if worker_id and not WORKER_ID_PATTERN.match(worker_id):
            errors.append(f"{label}: invalid worker_id format")
        if email and not is_valid_email(email):
            errors.append(f"{label}: invalid email format")
        if not name and not role:
            errors.append(f"{label}: missing name or role")

        skills = worker.get("skills")
        if skills is not None and (not isinstance(skills, list) or not all(isinstance(s, str) for s in skills)):
            errors.append(f"{label}: skills must be a list of strings")

        rate = worker.get("hourly_rate")
        if rate is not None and (not is_number(rate) or rate < 0):
            errors.append(f"{label}: hourly_rate must be a non-negative number")

        return errors, warnings

    # Collections

    def _check_template(self, template: Any) -> Messages:
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(template, dict):
            return ["Template must be an object"], warnings

        if not isinstance(template.get("project"), dict):
            errors.append("Missing project object")
        else:
            project_errors, project_warnings = self._check_project(template["project"])
            errors.extend(project_errors)
            warnings.extend(project_warnings)

        tasks = template.get("tasks")
        if not isinstance(tasks, list):
            errors.append("Missing or invalid tasks array")
        elif not tasks:
            warnings.append("Template has no tasks")
        else:
            context = _Context.build(template)
            seen_ids: Set[int] = set()
            seen_names: Set[str] = set()
            for index, task in enumerate(tasks, start=1):
                task_errors, task_warnings = self._check_task(task, context)
                errors.extend(f"Task {index}: {message}" for message in task_errors)
                warnings.extend(f"Task {index}: {message}" for message in task_warnings)
                if not isinstance(task, dict):
                    continue
                task_id = task.get("task_id")
                if is_positive_int(task_id):
                    if task_id in seen_ids:
                        errors.append(f"Task {index}: Duplicate task_id {task_id}")
                    seen_ids.add(task_id)
                task_name = task.get("task_name")
                if isinstance(task_name, str) and task_name:
                    if task_name in seen_names:
                        errors.append(f'Task {index}: Duplicate task_name "{task_name}"')
                    seen_names.add(task_name)

        self._check_lists(template, errors, warnings)
        return errors, warnings

    def _check_document(self, document: Any) -> Messages:
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(document, dict):
            return ["Document root is not an object"], warnings

        if not isinstance(document.get("project"), dict):
            errors.append("Missing project object")
        else:
            project_errors, project_warnings = self._check_project(document["project"])
            errors.extend(f"project: {message}" for message in project_errors)
            warnings.extend(f"project: {message}" for message in project_warnings)

        tasks = document.get("tasks")
        if not isinstance(tasks, list):
            errors.append("Missing or invalid tasks array")
            return errors, warnings

        context = _Context.build(document)
        seen_ids: Set[int] = set()
        for index, task in enumerate(tasks):
            prefix = f"tasks[{index}]"
            task_errors, task_warnings = self._check_task(task, context)
            errors.extend(f"{prefix}: {message}" for message in task_errors)
            warnings.extend(f"{prefix}: {message}" for message in task_warnings)
            if not isinstance(task, dict):
                continue

            task_id = task.get("task_id")
            if is_positive_int(task_id):
                if task_id in seen_ids:
                    errors.append(f"Duplicate task_id: {task_id}")
                seen_ids.add(task_id)

            is_test = task.get("is_test") is True
            task_name = task.get("task_name")
            if not is_test and isinstance(task_name, str) and TIMESTAMP_POLLUTION_RE.search(task_name):
                errors.append(f'{prefix}: task_name contains an embedded timestamp-like number (10+ digits): "{task_name}"')
            tags = task.get("tags")
            if is_test and not (isinstance(tags, list) and TEST_TASK_TAG in tags):
                errors.append(f'{prefix}: is_test is true but tags does not include "{TEST_TASK_TAG}"')

        self._check_lists(document, errors, warnings)
        return errors, warnings

    def _check_lists(self, container: Dict[str, Any], errors: List[str], warnings: List[str]) -> None:
        if container.get("categories") is not None:
            category_errors = self._check_categories(container["categories"])
            errors.extend(category_errors)
        if container.get("workers") is not None:
            worker_errors, worker_warnings = self._check_workers(container["workers"])
            errors.extend(worker_errors)
            warnings.extend(worker_warnings)

    def _check_categories(self, categories: Any) -> List[str]:
        if not isinstance(categories, list):
            return ["Categories must be an array"]

        errors: List[str] = []
        names = {c.get("name") for c in categories if isinstance(c, dict) and isinstance(c.get("name"), str)}
        seen: Set[str] = set()
        for index, category in enumerate(categories, start=1):
            if not isinstance(category, dict):
                errors.append(f"Category {index}: must be an object")
                continue
            name = category.get("name")
            if not isinstance(name, str) or not name.strip():
                errors.append(f"Category {index}: missing name")
            else:
                if name in seen:
                    errors.append(f'Category {index}: duplicate name "{name}"')
                seen.add(name)
            parent = category.get("parent_category_name")
            if parent and str(parent) not in names:
                errors.append(f'Category {index}: parent_category_name "{parent}" does not exist')
        return errors

    def _check_workers(self, workers: Any) -> Messages:
        if not isinstance(workers, list):
            return ["Workers must be an array"], []

        errors: List[str] = []
        warnings: List[str] = []
        seen_keys: Set[str] = set()
        for index, worker in enumerate(workers, start=1):
            label = f"Worker {index}"
            worker_errors, worker_warnings = self._check_worker(worker, label)
            errors.extend(worker_errors)
            warnings.extend(worker_warnings)
            if not isinstance(worker, dict):
                continue

            worker_id = str(worker.get("worker_id") or "").strip()
            email = str(worker.get("email") or "").strip()
            if not worker_id and not email:
                continue
            key = f"id:{worker_id}" if worker_id else f"email:{email.lower()}"
            if key in seen_keys:
                errors.append(f'{label}: duplicate {"worker_id" if worker_id else "email"} "{worker_id or email}"')
            seen_keys.add(key)
        return errors, warnings

    # Field helpers

    @staticmethod
    def _check_status(
        status: Any,
        valid: Iterable[str],
        kind: RecordKind,
        label: str,
        errors: List[str],
        warnings: List[str],
    ) -> Optional[str]:
        if status in valid:
            return status
        normalized = normalize_status(status, kind)
        if normalized:
            warnings.append(f'{label} status "{status}" normalized to "{normalized}"')
        else:
            errors.append(f"Invalid {label.lower()} status: {status}")
        return normalized

    @staticmethod
    def _check_date_range(record: Dict[str, Any], label: str, errors: List[str]) -> None:
        start, end = record.get("start_date"), record.get("end_date")
        for name, value in (("start_date", start), ("end_date", end)):
            if not is_blank(value) and not is_valid_date(value):
                errors.append(f"Invalid {label.lower()} {name} format: {value}")
        if is_valid_date(start) and is_valid_date(end) and start > end:
            errors.append(f"{label} start_date cannot be after end_date")

    def _check_assigned_workers(self, workers: Any, errors: List[str], warnings: List[str]) -> None:
        if workers is None:
            return
        if not isinstance(workers, list):
            errors.append("Task assigned_workers must be a list")
            return

        for index, worker in enumerate(workers, start=1):
            label = f"Task assigned_worker {index}"
            if not isinstance(worker, dict):
                errors.append(f"{label}: must be an object")
                continue

            worker_id = str(worker.get("worker_id") or "").strip()
            email = str(worker.get("email") or "").strip()
            name = str(worker.get("name") or "").strip()

            if not worker_id and not email and not name:
                errors.append(f"{label}: missing identifier (worker_id, email, or name)")
            if email and not is_valid_email(email):
                errors.append(f"{label}: invalid email format")
            if worker_id and not WORKER_ID_PATTERN.match(worker_id):
                errors.append(f"{label}: invalid worker_id format")
            if not str(worker.get("role") or "").strip():
                warnings.append(f"{label}: missing role (recommended)")

    @staticmethod
    def _check_dependencies(
        dependencies: Any,
        context: Optional[_Context],
        errors: List[str],
        warnings: List[str],
    ) -> None:
        if dependencies is None:
            return
        if not isinstance(dependencies, list):
            errors.append("Task dependencies must be a list")
            return

        for index, dep in enumerate(dependencies, start=1):
            label = f"Task dependency {index}"
            if not isinstance(dep, dict):
                errors.append(f"{label}: must be an object")
                continue

            predecessor_id = dep.get("predecessor_task_id")
            predecessor_name = dep.get("predecessor_task_name")
            if is_blank(predecessor_id) and is_blank(predecessor_name):
                errors.append(f"{label}: missing predecessor_task_id or predecessor_task_name")
            if not is_blank(predecessor_id) and not is_positive_int(predecessor_id):
                errors.append(f"{label}: predecessor_task_id must be a positive integer")

            dep_type = dep.get("type")
            if not is_blank(dep_type) and dep_type not in DEPENDENCY_TYPES:
                errors.append(f'{label}: invalid type "{dep_type}"')

            lag = dep.get("lag_days")
            if lag is not None and not is_number(lag):
                errors.append(f"{label}: lag_days must be a number")

            if context is None:
                continue
            if is_positive_int(predecessor_id) and predecessor_id not in context.task_ids:
                warnings.append(f"{label}: predecessor_task_id {predecessor_id} does not exist")
            elif is_blank(predecessor_id) and isinstance(predecessor_name, str) and predecessor_name.strip():
                if predecessor_name not in context.task_names:
                    warnings.append(f'{label}: predecessor_task_name "{predecessor_name}" does not exist')


schema_validator = SchemaValidator()


def validate(record: Any, kind: Any = RecordKind.TASK, context: Any = None) -> ValidationResult:
    """Module-level shortcut for :meth:`SchemaValidator.validate`."""
    return schema_validator.validate(record, kind, context)
