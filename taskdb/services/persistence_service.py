"""File-backed task store behind ``/api/tasks``.

Layout of one project directory::

    <TASKS_DB_DIR>/<project>/tasks.json
    <TASKS_DB_DIR>/<project>/tasks.csv
    <TASKS_DB_DIR>/<project>/state/tasks-by-status.json
    <TASKS_DB_DIR>/<project>/state/tasks-<status>.json

Without a project id the store root itself is used. Every file is written to a
temp file and renamed into place, canonical document first.
"""
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from taskdb.config import settings
from taskdb.core.exceptions import DocumentRejectedError
from taskdb.core.fields import is_number
from taskdb.middleware.metrics import task_documents_rejected_total, task_documents_written_total
from taskdb.services.csv_codec import format_number, generate_persisted_csv
from taskdb.services.projection_service import ProjectionService, projection_service
from taskdb.utils.files import atomic_write_text, dump_json, write_json
from taskdb.utils.project_ids import sanitize_project_id

logger = logging.getLogger(__name__)

DOCUMENT_FILE = "tasks.json"
CSV_FILE = "tasks.csv"
STATE_DIR = "state"
SEEDED_FILES = (DOCUMENT_FILE, CSV_FILE)


def duplicate_task_ids(tasks: List[Any]) -> List[Any]:
    """Numeric task ids that occur more than once, ascending."""
    seen = set()
    duplicates = set()
    for task in tasks or []:
        task_id = task.get("task_id") if isinstance(task, dict) else None
        if not is_number(task_id):
            continue
        if task_id in seen:
            duplicates.add(task_id)
        seen.add(task_id)
    return sorted(duplicates)


class PersistenceService:
    """Reads and writes project documents with their derived artifacts."""

    def __init__(self, root: Optional[str] = None, projections: Optional[ProjectionService] = None):
        self.root = Path(root or settings.TASKS_DB_DIR)
        self.projections = projections or projection_service

    def project_dir(self, project_id: Any = None) -> Path:
        safe_id = sanitize_project_id(project_id)
        return self.root / safe_id if safe_id else self.root

    def read_document(self, project_id: Any = None) -> Optional[str]:
        """Stored document text, or ``None`` when the project has none."""
        path = self.project_dir(project_id) / DOCUMENT_FILE
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    @staticmethod
    def parse_payload(raw: str) -> Dict[str, Any]:
        """Decode a request body; an empty body counts as ``{}``."""
        try:
            payload = json.loads(raw or "{}")
        except ValueError as exc:
            task_documents_rejected_total.labels(reason="malformed_json").inc()
            raise DocumentRejectedError(f"Malformed JSON body: {exc}") from exc
        return payload

    def write_document(self, project_id: Any, payload: Any) -> int:
        """Check and persist a full document; returns the number of tasks written."""
        if not isinstance(payload, dict) or not isinstance(payload.get("tasks"), list):
            task_documents_rejected_total.labels(reason="invalid_tasks").inc()
            raise DocumentRejectedError("Expected payload with { tasks: [...] }")

        duplicates = duplicate_task_ids(payload["tasks"])
        if duplicates:
            task_documents_rejected_total.labels(reason="duplicate_task_id").inc()
            raise DocumentRejectedError(
                f"Duplicate task_id detected: {', '.join(format_number(value) for value in duplicates)}"
            )

        directory = self.project_dir(project_id)
        self.write_artifacts(directory, payload)

        scope = "named" if sanitize_project_id(project_id) else "default"
        task_documents_written_total.labels(scope=scope).inc()
        logger.info("Stored %d task(s) in %s", len(payload["tasks"]), directory)
        return len(payload["tasks"])

    def write_artifacts(self, directory: Path, document: Dict[str, Any]) -> None:
        """Write the document, its CSV snapshot and the state projections."""
        tasks = document.get("tasks") or []
        atomic_write_text(directory / DOCUMENT_FILE, dump_json(document))
        atomic_write_text(directory / CSV_FILE, generate_persisted_csv(tasks))
        self.write_state_files(directory, tasks)

    def write_state_files(self, directory: Path, tasks: List[Any]) -> List[Path]:
        state_dir = directory / STATE_DIR
        written = []
        for name, payload in self.projections.build_state_files(tasks).items():
            write_json(state_dir / name, payload)
            written.append(state_dir / name)
        return written

    def bootstrap_store(self, seed_dir: Optional[str] = None, project_id: Optional[str] = None) -> List[Path]:
        """Copy seed ``tasks.json``/``tasks.csv`` into the store where they are missing.

        A seed folder for the default project is preferred; otherwise the
        seed root is copied into the store root. Failures are logged only.
        """
        if not seed_dir:
            return []

        seed_root = Path(seed_dir)
        safe_id = sanitize_project_id(project_id or settings.DEFAULT_PROJECT_ID)
        if safe_id and (seed_root / safe_id).is_dir():
            source, target = seed_root / safe_id, self.root / safe_id
        else:
            source, target = seed_root, self.root

        copied = []
        try:
            target.mkdir(parents=True, exist_ok=True)
            for name in SEEDED_FILES:
                if not (target / name).exists() and (source / name).is_file():
                    shutil.copyfile(source / name, target / name)
                    copied.append(target / name)
        except OSError as exc:
            logger.warning("Could not bootstrap task store from %s: %s", seed_root, exc)
            return copied

        if copied:
            logger.info("Bootstrapped %d file(s) into %s", len(copied), target)
        return copied


persistence_service = PersistenceService()
