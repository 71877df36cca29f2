"""Tests for the schema validator."""
import pytest

from taskdb.core.fields import TASK_SCHEMA, normalize_status
from taskdb.services.schema_validator import schema_validator, validate


def test_valid_task_passes(make_task):
    """A complete task produces no errors."""
    result = validate(make_task(), "task")
    assert result.is_valid
    assert result.errors == []


def test_empty_task_reports_each_required_field_once():
    result = validate({}, "task")
    assert not result.is_valid
    assert len(result.errors) == len(TASK_SCHEMA.required)
    for name in TASK_SCHEMA.required:
        assert f"Missing required task field: {name}" in result.errors


@pytest.mark.parametrize("record", [None, "task", 42, ["task"]])
def test_non_dict_input_is_invalid_without_raising(record):
    result = validate(record, "task")
    assert not result.is_valid
    assert result.errors == ["Task must be an object"]


def test_unknown_kind():
    result = validate({"name": "x"}, "invoice")
    assert not result.is_valid
    assert result.errors == ["Unknown validation type"]


def test_zero_and_false_count_as_present(make_task):
    result = validate(make_task(estimated_hours=0, is_critical_path=False), "task")
    assert result.is_valid


def test_task_id_must_be_positive_integer(make_task):
    for bad_id in (0, -3, 1.5, True, "7"):
        result = validate(make_task(task_id=bad_id), "task")
        assert "Invalid task_id: must be a positive integer" in result.errors


def test_start_after_end_is_rejected(make_task):
    result = validate(make_task(start_date="2025-12-21", end_date="2025-12-20"), "task")
    assert "Task start_date cannot be after end_date" in result.errors


def test_dates_must_be_real_calendar_days(make_task):
    result = validate(make_task(start_date="2025-02-30"), "task")
    assert "Invalid task start_date format: 2025-02-30" in result.errors


def test_enumerations(make_task):
    result = validate(make_task(status="Someday", priority="Urgent"), "task")
    assert "Invalid task status: Someday" in result.errors
    assert "Invalid task priority: Urgent" in result.errors


def test_non_canonical_status_is_accepted_with_warning(make_task):
    result = validate(make_task(status="in_progress"), "task")
    assert result.is_valid
    assert result.warnings == ['Task status "in_progress" normalized to "In Progress"']


def test_completed_requires_full_progress(make_task):
    result = validate(make_task(status="Completed", progress_percentage=80), "task")
    assert "Completed task must have progress_percentage 100" in result.errors

    assert validate(make_task(status="Completed", progress_percentage=100), "task").is_valid


def test_numeric_ranges(make_task):
    result = validate(make_task(estimated_hours=-1, actual_hours="3", progress_percentage=101), "task")
    assert "Task estimated_hours must be a non-negative number" in result.errors
    assert "Task actual_hours must be a non-negative number" in result.errors
    assert "Task progress_percentage must be between 0 and 100" in result.errors


def test_assigned_workers(make_task):
    workers = [
        {"name": "Dev", "email": "dev@example.com", "role": "Developer"},
        {"name": "No Role", "email": "qa@example"},
        {"email": "not-an-email"},
        {"role": "Reviewer"},
        "Bob",
    ]
    result = validate(make_task(assigned_workers=workers), "task")
    assert "Task assigned_worker 2: missing role (recommended)" in result.warnings
    assert "Task assigned_worker 3: invalid email format" in result.errors
    assert "Task assigned_worker 4: missing identifier (worker_id, email, or name)" in result.errors
    assert "Task assigned_worker 5: must be an object" in result.errors
    assert not any(error.startswith("Task assigned_worker 1") for error in result.errors)
    assert not any(error.startswith("Task assigned_worker 2") for error in result.errors)


def test_dependencies(make_task):
    dependencies = [
        {"predecessor_task_id": 1, "type": "FS", "lag_days": 0},
        {"type": "SS"},
        {"predecessor_task_name": "Design", "type": "XX", "lag_days": "two"},
    ]
    result = validate(make_task(task_id=2, dependencies=dependencies), "task")
    assert "Task dependency 2: missing predecessor_task_id or predecessor_task_name" in result.errors
    assert 'Task dependency 3: invalid type "XX"' in result.errors
    assert "Task dependency 3: lag_days must be a number" in result.errors


def test_context_warns_on_unknown_predecessor_and_rejects_unknown_parent(make_task):
    existing = [make_task(1)]
    task = make_task(
        2,
        parent_task_id=9,
        dependencies=[{"predecessor_task_id": 7, "type": "FS", "lag_days": 0}],
    )
    result = validate(task, "task", context=existing)
    assert "Task dependency 1: predecessor_task_id 7 does not exist" in result.warnings
    assert "Task parent_task_id 9 does not exist" in result.errors


def test_context_rejects_unknown_category(make_task):
    context = {"tasks": [], "categories": [{"name": "Testing"}]}
    result = validate(make_task(category_name="Marketing"), "task", context=context)
    assert 'Task category "Marketing" does not exist in project categories' in result.errors


def test_project_rules():
    project = {"name": "P", "start_date": "2026-01-02", "end_date": "2026-01-01", "status": "done", "budget": -5}
    result = validate(project, "project")
    assert "Project start_date cannot be after end_date" in result.errors
    assert "Project budget must be a non-negative number" in result.errors
    assert 'Project status "done" normalized to "Completed"' in result.warnings


def test_project_missing_fields():
    result = validate({}, "project")
    assert len(result.errors) == 4


def test_template_prefixes_task_errors_and_finds_duplicates(make_task):
    template = {
        "project": {"name": "P", "start_date": "2026-01-01", "end_date": "2026-02-01", "status": "Not Started"},
        "tasks": [make_task(1), make_task(1, task_name="Task 1"), make_task(3, priority="Urgent")],
        "categories": [{"name": "Backend Development"}],
    }
    result = validate(template, "template")
    assert "Task 2: Duplicate task_id 1" in result.errors
    assert 'Task 2: Duplicate task_name "Task 1"' in result.errors
    assert "Task 3: Invalid task priority: Urgent" in result.errors


def test_template_without_tasks_warns():
    template = {
        "project": {"name": "P", "start_date": "2026-01-01", "end_date": "2026-02-01", "status": "Not Started"},
        "tasks": [],
    }
    result = validate(template, "template")
    assert result.is_valid
    assert "Template has no tasks" in result.warnings


def test_document_rules(make_task):
    document = {
        "project": {"name": "P", "start_date": "2026-01-01", "end_date": "2026-02-01", "status": "In Progress"},
        "tasks": [
            make_task(1, task_name="Smoke task - 1765725892303"),
            make_task(1),
            make_task(2, task_name="E2E 1765725892303", is_test=True, tags=["smoke"]),
        ],
        "workers": [
            {"name": "A", "email": "a@example.com"},
            {"name": "B", "email": "A@example.com"},
        ],
        "categories": [{"name": "Backend Development"}, {"name": "API", "parent_category_name": "Missing"}],
    }
    result = schema_validator.validate(document, "document")
    assert "Duplicate task_id: 1" in result.errors
    assert any("embedded timestamp-like number" in error and error.startswith("tasks[0]") for error in result.errors)
    assert not any("embedded timestamp" in error and error.startswith("tasks[2]") for error in result.errors)
    assert 'tasks[2]: is_test is true but tags does not include "e2e-test"' in result.errors
    assert 'Worker 2: duplicate email "A@example.com"' in result.errors
    assert 'Category 2: parent_category_name "Missing" does not exist' in result.errors


def test_document_test_task_with_non_list_tags_is_invalid(make_task):
    document = {
        "project": {"name": "P", "start_date": "2026-01-01", "end_date": "2026-02-01", "status": "In Progress"},
        "tasks": [make_task(1, is_test=True, tags=5)],
    }
    result = validate(document, "document")
    assert not result.is_valid
    assert 'tasks[0]: is_test is true but tags does not include "e2e-test"' in result.errors


def test_worker_rules():
    assert validate({"worker_id": "w-1", "role": "QA"}, "worker").is_valid
    result = validate({"skills": "python", "hourly_rate": -1}, "worker")
    assert "Worker: missing worker_id (preferred) or email" in result.errors
    assert "Worker: missing name or role" in result.errors
    assert "Worker: skills must be a list of strings" in result.errors
    assert "Worker: hourly_rate must be a non-negative number" in result.errors


@pytest.mark.parametrize(
    "value,expected",
    [
        ("in_progress", "In Progress"),
        ("in progress", "In Progress"),
        ("IN PROGRESS", "In Progress"),
        ("pending-review", "Pending Review"),
        ("done", "Completed"),
        ("canceled", "Cancelled"),
        ("planning", "Not Started"),
        ("someday", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_status(value, expected):
    assert normalize_status(value) == expected


def test_normalize_status_respects_project_statuses():
    assert normalize_status("blocked", "project") is None
    assert normalize_status("blocked") == "Blocked"
