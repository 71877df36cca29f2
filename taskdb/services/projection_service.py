"""Per-status projections written under a project's ``state/`` directory."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from taskdb.core.fields import TASK_STATUSES
from taskdb.utils.slugify import slugify

SUMMARY_FILE = "tasks-by-status.json"
UNKNOWN_STATUS = "Unknown"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def status_file_name(status: str) -> str:
    """``"Not Started"`` -> ``"tasks-not-started.json"``."""
    return f"tasks-{slugify(status)}.json"


class ProjectionService:
    """Groups tasks by status and builds the state file payloads."""

    @staticmethod
    def group_by_status(tasks: List[Any]) -> Dict[str, List[Any]]:
        """Tasks keyed by their status label, in first-seen order."""
        grouped: Dict[str, List[Any]] = {}
        for task in tasks or []:
            status = str(task["status"]) if isinstance(task, dict) and task.get("status") else UNKNOWN_STATUS
            grouped.setdefault(status, []).append(task)
        return grouped

    def build_summary(self, tasks: List[Any], generated_at: Optional[str] = None) -> Dict[str, Any]:
        grouped = self.group_by_status(tasks)
        return {
            "generated_at": generated_at or utc_now_iso(),
            "total_tasks": len(tasks or []),
            "counts_by_status": {status: len(items) for status, items in grouped.items()},
            "tasks_by_status": grouped,
        }

    def build_state_files(self, tasks: List[Any], generated_at: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """File name -> payload for the summary and one file per canonical status."""
        generated_at = generated_at or utc_now_iso()
        grouped = self.group_by_status(tasks)

        files = {SUMMARY_FILE: self.build_summary(tasks, generated_at)}
        for status in TASK_STATUSES:
            files[status_file_name(status)] = {
                "status": status,
                "generated_at": generated_at,
                "tasks": grouped.get(status, []),
            }
        return files


projection_service = ProjectionService()
