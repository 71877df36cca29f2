"""Pytest configuration and fixtures."""
from datetime import datetime, timezone
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from taskdb.api.v1.tasks import get_persistence_service
from taskdb.main import app
from taskdb.services.automation_service import AutomationService
from taskdb.services.persistence_service import PersistenceService

FIXED_NOW = datetime(2025, 12, 10, 9, 30, 0, 123000, tzinfo=timezone.utc)


def build_task(task_id: int = 1, **overrides: Any) -> Dict[str, Any]:
    """A complete, valid task record."""
    task = {
        "task_id": task_id,
        "task_name": f"Task {task_id}",
        "description": f"Description of task {task_id}",
        "start_date": "2025-12-08",
        "end_date": "2025-12-20",
        "priority": "Medium",
        "status": "Not Started",
        "estimated_hours": 8,
        "category_name": "Backend Development",
        "progress_percentage": 0,
        "actual_hours": 0,
        "is_critical_path": False,
        "tags": [],
        "assigned_workers": [],
        "dependencies": [],
        "comments": [],
        "attachments": [],
        "parent_task_id": None,
        "creator_id": "dev@example.com",
        "created_date": "2025-12-08T10:00:00.000Z",
        "completed_date": None,
    }
    task.update(overrides)
    return task


@pytest.fixture
def make_task():
    """Factory for valid task records."""
    return build_task


@pytest.fixture
def automation():
    """Automation service with a frozen clock."""
    return AutomationService(default_creator_id="system@example.com", clock=lambda: FIXED_NOW)


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "tasksDB"


@pytest.fixture
def persistence(store_dir):
    """Persistence service rooted in a temporary directory."""
    return PersistenceService(str(store_dir))


@pytest.fixture(scope="function")
def client(persistence):
    """Create a test client bound to the temporary task store."""
    app.dependency_overrides[get_persistence_service] = lambda: persistence
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
