"""Task document schemas."""
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ProjectInfo(BaseModel):
    """Project header of a tasks document."""

    name: str
    description: Optional[str] = None
    start_date: str
    end_date: str
    status: str = "Not Started"
    budget: float = 0


class CategoryInfo(BaseModel):
    """Task category."""

    name: str
    parent_category_name: Optional[str] = None


class WorkerInfo(BaseModel):
    """Worker available for assignment."""

    worker_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    skills: List[str] = []
    hourly_rate: float = 0


class ProjectMetadata(BaseModel):
    """Everything of a saved document except the task list."""

    project: ProjectInfo
    categories: List[CategoryInfo] = []
    workers: List[WorkerInfo] = []

    def to_document(self, tasks: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Full ``{project, categories, workers, tasks}`` document."""
        return {
            "project": self.project.model_dump(exclude_none=True),
            "categories": [category.model_dump() for category in self.categories],
            "workers": [worker.model_dump(exclude_none=True) for worker in self.workers],
            "tasks": tasks,
        }


class SaveTasksResponse(BaseModel):
    """Result of a document write."""

    ok: bool = True
    tasks: int


class HealthResponse(BaseModel):
    """Health check payload."""

    ok: bool = True


DEFAULT_PROJECT_METADATA = ProjectMetadata(
    project=ProjectInfo(
        name="GitHub Task Manager - Web Application",
        description=(
            "Build a collaborative task management system integrated with GitHub, enabling public users "
            "to manage tasks through a modern web UI with automatic task ID generation and template-based "
            "task creation."
        ),
        start_date="2025-12-08",
        end_date="2026-02-28",
        status="In Progress",
        budget=15000,
    ),
    categories=[
        CategoryInfo(name=name)
        for name in (
            "Project Setup",
            "Backend Development",
            "Frontend Development",
            "Testing",
            "Deployment",
            "Documentation",
            "Retrospective",
        )
    ],
    workers=[
        WorkerInfo(
            name="Public User",
            email="public@example.com",
            role="Collaborator",
            skills=["Task Management", "GitHub"],
            hourly_rate=0.0,
        ),
        WorkerInfo(
            name="Developer",
            email="dev@example.com",
            role="Full Stack Developer",
            skills=["JavaScript", "React", "Node.js", "GitHub API"],
            hourly_rate=75.0,
        ),
        WorkerInfo(
            name="QA Tester",
            email="qa@example.com",
            role="Quality Assurance",
            skills=["Testing", "GitHub"],
            hourly_rate=50.0,
        ),
    ],
)


def load_project_metadata(path: Optional[str] = None) -> ProjectMetadata:
    """Metadata from a JSON file, or a copy of the built-in default when no path is given."""
    if not path:
        return DEFAULT_PROJECT_METADATA.model_copy(deep=True)
    return ProjectMetadata.model_validate_json(Path(path).read_text(encoding="utf-8"))
