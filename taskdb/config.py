"""Application configuration from environment variables."""
from pydantic_settings import BaseSettings
from typing import List, Optional

from taskdb.utils.project_ids import sanitize_project_id


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "TaskDB"
    APP_VERSION: str = "1.3.0"
    API_PREFIX: str = "/api"
    HOST: str = "127.0.0.1"
    PORT: int = 3000

    # Local persistence service
    TASKS_DB_DIR: str = "public/tasksDB"
    SEED_TASKS_DB_DIR: Optional[str] = None
    MAX_BODY_BYTES: int = 5 * 1024 * 1024

    # Project layout
    TASKS_ROOT: str = "public/tasksDB"
    DEFAULT_PROJECT_ID: str = "github-task-manager"
    LOCAL_TASKS_FILE: Optional[str] = None
    PROJECT_METADATA_FILE: Optional[str] = None
    TEMPLATE_PATHS: List[str] = ["task-templates/starter_project_template.json"]

    # Remote file host (GitHub contents API)
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_OWNER: str = "nlarchive"
    GITHUB_REPO: str = "github-task-manager"
    GITHUB_BRANCH: str = "main"
    GITHUB_TOKEN: Optional[str] = None
    REMOTE_TIMEOUT_SECONDS: float = 30.0

    # Automation
    DEFAULT_CREATOR_ID: str = "system@example.com"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # json or text

    class Config:
        env_file = ".env"
        case_sensitive = True

    def tasks_file(self, project_id: Optional[str] = None) -> str:
        """Return the repository path of a project's tasks.json."""
        safe_id = sanitize_project_id(project_id) or sanitize_project_id(self.DEFAULT_PROJECT_ID)
        return f"{self.TASKS_ROOT.rstrip('/')}/{safe_id}/tasks.json"


settings = Settings()
