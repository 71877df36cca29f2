"""Task Database: the in-memory task collection and its load/save/import paths.

A ``TaskDatabase`` owns one project's task list. Reads go through an ordered
chain of sources (storage client first, then an optional local flat file) and
writes go through the storage client only, guarded by the revision token the
caller received from :meth:`TaskDatabase.load_tasks`.

Results are plain dicts with a ``success`` flag; storage failures never escape
as exceptions.
"""
from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from taskdb.config import settings
from taskdb.core.exceptions import RevisionConflictError, StorageError
from taskdb.core.fields import RecordKind, is_blank
from taskdb.integrations.storage import StorageClient
from taskdb.schemas.task import ProjectMetadata, load_project_metadata
from taskdb.services import csv_codec
from taskdb.services.automation_service import AutomationService, automation_service
from taskdb.services.schema_validator import SchemaValidator, is_positive_int, schema_validator
from taskdb.services.sources import extract_tasks, file_source, first_available, storage_source
from taskdb.utils.files import dump_json

logger = logging.getLogger(__name__)


class TaskDatabase:
    """One project's task collection."""

    def __init__(
        self,
        storage: Optional[StorageClient] = None,
        tasks_path: Optional[str] = None,
        metadata: Optional[ProjectMetadata] = None,
        local_file: Optional[str] = None,
        template_paths: Optional[Sequence[str]] = None,
        validator: Optional[SchemaValidator] = None,
        automation: Optional[AutomationService] = None,
    ):
        self.storage = storage
        self.tasks_path = tasks_path or settings.tasks_file()
        self.metadata = metadata or load_project_metadata(settings.PROJECT_METADATA_FILE)
        self.local_file = local_file if local_file is not None else settings.LOCAL_TASKS_FILE
        self.template_paths = list(template_paths if template_paths is not None else settings.TEMPLATE_PATHS)
        self.validator = validator or schema_validator
        self.automation = automation or automation_service
        self.tasks: List[Dict[str, Any]] = []
        self.templates: List[Dict[str, Any]] = []

    async def initialize(self) -> bool:
        """Load tasks, then templates. Returns ``False`` instead of raising."""
        try:
            loaded = await self.load_tasks()
            await self.load_templates()
        except Exception:
            logger.exception("Failed to initialize task database")
            return False
        return bool(loaded.get("success"))

    # Load / save

    async def load_tasks(self) -> Dict[str, Any]:
        """Read the task list from the first source that answers."""
        sources = []
        if self.storage is not None:
            sources.append(storage_source(self.storage, self.tasks_path))
        sources.append(file_source(self.local_file))

        result = await first_available(sources)
        tasks = extract_tasks(result.document)
        if tasks is None:
            if result.document is not None:
                logger.warning("Document from %s has no task list, using an empty collection", result.source)
            tasks = []
        self.tasks = tasks

        invalid_tasks = []
        for index, task in enumerate(self.tasks):
            validation = self.validator.validate(task, RecordKind.TASK)
            if not validation.is_valid:
                logger.warning("Task %d validation errors: %s", index, "; ".join(validation.errors))
                invalid_tasks.append({"index": index, "task": task, "errors": validation.errors})

        logger.info("Loaded %d task(s) from %s", len(self.tasks), result.source)
        return {
            "success": True,
            "tasks": self.tasks,
            "invalid_tasks": invalid_tasks,
            "revision": result.revision,
            "source": result.source,
        }

    async def load_templates(self) -> Dict[str, Any]:
        """Read the configured project templates; unreadable ones are skipped."""
        templates = []
        if self.storage is None:
            logger.warning("No storage client configured, skipping templates")
        else:
            for path in self.template_paths:
                try:
                    remote = await self.storage.get_file(path)
                    templates.append(json.loads(remote.content))
                except (StorageError, ValueError) as exc:
                    logger.warning("Could not load template %s: %s", path, exc)

        self.templates = templates
        return {"success": True, "templates": templates}

    def validate_collection(self) -> List[str]:
        """Every error of the current collection, including repeated task ids."""
        errors: List[str] = []
        seen = set()
        for index, task in enumerate(self.tasks):
            validation = self.validator.validate(task, RecordKind.TASK, context=self.tasks)
            errors.extend(f"tasks[{index}]: {message}" for message in validation.errors)
            task_id = task.get("task_id") if isinstance(task, dict) else None
            if is_positive_int(task_id):
                if task_id in seen:
                    errors.append(f"Duplicate task_id: {task_id}")
                seen.add(task_id)
        return errors

    async def save_tasks(self, message: str = "Update tasks", *, revision: Optional[str]) -> Dict[str, Any]:
        """Write the full document with the revision token captured at load time."""
        errors = self.validate_collection()
        if errors:
            return {"success": False, "error": f"Validation failed: {', '.join(errors)}", "errors": errors}
        if self.storage is None:
            return {"success": False, "error": "No storage client configured"}

        content = dump_json(self.metadata.to_document(self.tasks))
        try:
            new_revision = await self.storage.put_file(self.tasks_path, content, message, revision)
        except RevisionConflictError as exc:
            logger.warning("Save rejected, %s", exc)
            return {"success": False, "conflict": True, "error": str(exc)}
        except StorageError as exc:
            logger.error("Error saving tasks: %s", exc)
            return {"success": False, "error": str(exc)}

        return {"success": True, "revision": new_revision}

    # CRUD

    def _index_of(self, task_id: Any) -> int:
        for index, task in enumerate(self.tasks):
            if isinstance(task, dict) and task.get("task_id") == task_id:
                return index
        return -1

    def create_task(self, data: Dict[str, Any], creator_id: Optional[str] = None) -> Dict[str, Any]:
        task = self.automation.auto_populate_task(data, {"tasks": self.tasks}, creator_id)
        validation = self.validator.validate(task, RecordKind.TASK, context=self.tasks)
        errors = list(validation.errors)
        if self._index_of(task["task_id"]) != -1:
            errors.append(f"Duplicate task_id: {task['task_id']}")
        if errors:
            return {"success": False, "errors": errors}

        self.tasks.append(task)
        return {"success": True, "task": task}

    def update_task(self, task_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        index = self._index_of(task_id)
        if index == -1:
            return {"success": False, "error": "Task not found"}

        updated = {**self.tasks[index], **copy.deepcopy(updates)}
        self.automation.apply_status_rules(updated)

        others = self.tasks[:index] + self.tasks[index + 1:]
        validation = self.validator.validate(updated, RecordKind.TASK, context=self.tasks)
        errors = list(validation.errors)
        if any(isinstance(t, dict) and t.get("task_id") == updated.get("task_id") for t in others):
            errors.append(f"Duplicate task_id: {updated.get('task_id')}")
        if errors:
            return {"success": False, "errors": errors}

        self.tasks[index] = updated
        return {"success": True, "task": updated}

    def delete_task(self, task_id: int) -> Dict[str, Any]:
        index = self._index_of(task_id)
        if index == -1:
            return {"success": False, "error": "Task not found"}
        removed = self.tasks.pop(index)
        # children of a removed task become top-level tasks
        for task in self.tasks:
            if isinstance(task, dict) and task.get("parent_task_id") == task_id:
                task["parent_task_id"] = None
        return {"success": True, "task": removed}

    def get_task(self, task_id: int) -> Optional[Dict[str, Any]]:
        index = self._index_of(task_id)
        return self.tasks[index] if index != -1 else None

    def get_tasks(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Tasks matching every given filter: status, priority, category, assigned_to, search."""
        filters = filters or {}
        result = [task for task in self.tasks if isinstance(task, dict)]

        if filters.get("status"):
            result = [t for t in result if t.get("status") == filters["status"]]
        if filters.get("priority"):
            result = [t for t in result if t.get("priority") == filters["priority"]]
        if filters.get("category"):
            result = [t for t in result if t.get("category_name") == filters["category"]]
        if filters.get("assigned_to"):
            needle = str(filters["assigned_to"]).lower()
            result = [
                t for t in result
                if any(
                    isinstance(w, dict) and needle in str(w.get("email") or "").lower()
                    for w in t.get("assigned_workers") or []
                )
            ]
        if filters.get("search"):
            term = str(filters["search"]).lower()
            result = [t for t in result if self._matches(t, term)]
        return result

    @staticmethod
    def _matches(task: Dict[str, Any], term: str) -> bool:
        if term in str(task.get("task_name") or "").lower():
            return True
        if term in str(task.get("description") or "").lower():
            return True
        return any(term in str(tag).lower() for tag in task.get("tags") or [])

    def get_statistics(self) -> Dict[str, Any]:
        return self.automation.generate_project_summary({"tasks": self.tasks})

    # Import / export

    def _merge(self, imported: List[Dict[str, Any]], replace_existing: bool) -> List[Dict[str, Any]]:
        """Replace the collection or append the tasks whose id is not taken yet; returns the added tasks."""
        if replace_existing:
            self.tasks = imported
            return imported
        existing_ids = {t.get("task_id") for t in self.tasks if isinstance(t, dict)}
        added = [t for t in imported if t.get("task_id") not in existing_ids]
        self.tasks = self.tasks + added
        return added

    async def import_from_template(
        self,
        template: Dict[str, Any],
        *,
        creator_id: Optional[str] = None,
        task_customizations: Optional[Dict[str, Any]] = None,
        task_overrides: Optional[Dict[Any, Dict[str, Any]]] = None,
        replace_existing: bool = False,
        revision: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Populate, customize and save a template's tasks. Rolls back when the save fails."""
        validation = self.validator.validate(template, RecordKind.TEMPLATE)
        if not validation.is_valid:
            return {
                "success": False,
                "error": f"Template validation failed: {', '.join(validation.errors)}",
                "errors": validation.errors,
            }

        overrides = {str(key): value for key, value in (task_overrides or {}).items()}
        template_tasks = [t for t in template["tasks"] if isinstance(t, dict)]
        imported: List[Dict[str, Any]] = []
        for template_task in template_tasks:
            task = self.automation.auto_populate_task(
                template_task, {"tasks": template_tasks + imported}, creator_id
            )
            if task_customizations:
                task.update(copy.deepcopy(task_customizations))
            template_id = template_task.get("task_id")
            if not is_blank(template_id) and str(template_id) in overrides:
                task.update(copy.deepcopy(overrides[str(template_id)]))
            self.automation.apply_status_rules(task)

            task_validation = self.validator.validate(task, RecordKind.TASK)
            if not task_validation.is_valid:
                errors = task_validation.errors
                return {
                    "success": False,
                    "error": f'Task "{task.get("task_name")}" validation failed: {", ".join(errors)}',
                    "errors": errors,
                }
            imported.append(task)

        previous = self.tasks
        self._merge(imported, replace_existing)

        message = "Import project template" if replace_existing else "Add tasks from template"
        saved = await self.save_tasks(message, revision=revision)
        if not saved["success"]:
            self.tasks = previous
            return saved

        return {"success": True, "imported_count": len(imported), "revision": saved.get("revision")}

    def export_to_csv(self, tasks: Optional[List[Dict[str, Any]]] = None) -> str:
        return csv_codec.encode_tasks(self.tasks if tasks is None else tasks)

    def import_from_csv(
        self,
        content: str,
        *,
        creator_id: Optional[str] = None,
        skip_invalid: bool = False,
        replace_existing: bool = False,
    ) -> Dict[str, Any]:
        """Add the rows of a rich CSV export; generated ids never collide with kept tasks."""
        try:
            records = csv_codec.decode_tasks(content)
        except ValueError as exc:
            logger.error("Error importing from CSV: %s", exc)
            return {"success": False, "error": str(exc)}

        base = [] if replace_existing else [t for t in self.tasks if isinstance(t, dict)]
        imported: List[Dict[str, Any]] = []
        invalid_rows = []
        for row_number, record in enumerate(records, start=1):
            task = self.automation.auto_populate_task(record, {"tasks": base + imported}, creator_id)
            validation = self.validator.validate(task, RecordKind.TASK)
            if not validation.is_valid:
                logger.warning("CSV row %d validation errors: %s", row_number, "; ".join(validation.errors))
                invalid_rows.append({"row": row_number, "errors": validation.errors})
                if skip_invalid:
                    continue
            imported.append(task)

        added = self._merge(imported, replace_existing)
        return {"success": True, "imported_count": len(added), "invalid_rows": invalid_rows}
