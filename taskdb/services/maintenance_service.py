"""Maintenance jobs over the on-disk task store (CSV/state regeneration, validation, archiving)."""
from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from taskdb.config import settings
from taskdb.core.fields import RecordKind
from taskdb.services.csv_codec import generate_persisted_csv
from taskdb.services.persistence_service import CSV_FILE, DOCUMENT_FILE, STATE_DIR, PersistenceService
from taskdb.services.schema_validator import SchemaValidator, ValidationResult, schema_validator
from taskdb.services.sources import extract_tasks
from taskdb.utils.files import atomic_write_text
from taskdb.utils.project_ids import sanitize_project_id

logger = logging.getLogger(__name__)

HISTORY_DIR = "history"
ARCHIVE_PREFIX = "tasks-root-legacy"


class MaintenanceService:
    """Back end of the command line scripts."""

    def __init__(
        self,
        root: Optional[str] = None,
        persistence: Optional[PersistenceService] = None,
        validator: Optional[SchemaValidator] = None,
    ):
        self.root = Path(root or settings.TASKS_DB_DIR)
        self.persistence = persistence or PersistenceService(str(self.root))
        self.validator = validator or schema_validator

    def project_dir(self, project_id: Optional[str] = None) -> Path:
        safe_id = sanitize_project_id(project_id) or sanitize_project_id(settings.DEFAULT_PROJECT_ID)
        return self.root / safe_id

    def list_projects(self) -> List[str]:
        """Project ids that have a ``tasks.json``, sorted."""
        if not self.root.is_dir():
            return []
        return sorted(
            entry.name for entry in self.root.iterdir() if entry.is_dir() and (entry / DOCUMENT_FILE).is_file()
        )

    def load_document(self, project_id: Optional[str] = None) -> Tuple[Path, Any]:
        """Parsed ``tasks.json`` of a project; raises ``FileNotFoundError`` or ``ValueError``."""
        path = self.project_dir(project_id) / DOCUMENT_FILE
        if not path.is_file():
            raise FileNotFoundError(f"tasks.json not found at: {path}")
        return path, json.loads(path.read_text(encoding="utf-8"))

    def regenerate_csv(self, project_id: Optional[str] = None) -> Tuple[Path, int]:
        """Rewrite ``tasks.csv`` from ``tasks.json``; returns the CSV path and row count."""
        path, document = self.load_document(project_id)
        tasks = extract_tasks(document) or []
        csv_path = path.parent / CSV_FILE
        atomic_write_text(csv_path, generate_persisted_csv(tasks))
        logger.info("Regenerated %s with %d rows", csv_path, len(tasks))
        return csv_path, len(tasks)

    def regenerate_state(self, project_id: Optional[str] = None) -> Tuple[Path, int]:
        """Rewrite the ``state/`` projections; returns the state directory and task count."""
        path, document = self.load_document(project_id)
        tasks = extract_tasks(document) or []
        self.persistence.write_state_files(path.parent, tasks)
        return path.parent / STATE_DIR, len(tasks)

    def validate_projects(
        self, project_ids: Sequence[str] = (), all_projects: bool = False
    ) -> Dict[str, ValidationResult]:
        """Document validation per project; unreadable files count as invalid."""
        ids = self.list_projects() if all_projects else [pid for pid in project_ids if sanitize_project_id(pid)]
        results: Dict[str, ValidationResult] = {}
        for project_id in ids:
            safe_id = sanitize_project_id(project_id)
            try:
                _, document = self.load_document(safe_id)
            except (OSError, ValueError) as exc:
                results[safe_id] = ValidationResult(is_valid=False, errors=[str(exc)])
                continue
            results[safe_id] = self.validator.validate(document, RecordKind.DOCUMENT)
        return results

    def archive_legacy(
        self,
        legacy_path: str,
        history_dir: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Path]:
        """Snapshot a legacy root ``tasks.json`` (plus a CSV when it parses) into the history folder."""
        source = Path(legacy_path)
        if not source.is_file():
            raise FileNotFoundError(f"Legacy tasks.json not found at: {source}")

        target_dir = Path(history_dir) if history_dir else self.root / HISTORY_DIR
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        raw = source.read_text(encoding="utf-8")

        json_path = target_dir / f"{ARCHIVE_PREFIX}-{stamp}.json"
        atomic_write_text(json_path, raw)
        written = [json_path]

        try:
            tasks = extract_tasks(json.loads(raw)) or []
        except ValueError as exc:
            logger.warning("Legacy file is not valid JSON, archived without CSV: %s", exc)
            return written

        csv_path = target_dir / f"{ARCHIVE_PREFIX}-{stamp}.csv"
        atomic_write_text(csv_path, generate_persisted_csv(tasks))
        written.append(csv_path)
        return written


maintenance_service = MaintenanceService()
