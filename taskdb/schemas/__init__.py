"""Schema modules."""
from taskdb.schemas.task import (
    CategoryInfo,
    HealthResponse,
    ProjectInfo,
    ProjectMetadata,
    SaveTasksResponse,
    WorkerInfo,
    load_project_metadata,
)
