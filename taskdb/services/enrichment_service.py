"""Enrichment of task documents with worker-facing expectation fields.

Non-destructive: fields are only added or normalized, never dropped, except
for the legacy ``volunteer_capacity`` key, which moves to ``assignee_capacity``.

* ``skills_required`` derived from ``required_roles`` when missing or empty;
* ``requisites`` normalized to a non-empty list of readable strings;
* ``tracking`` added with a reviewer role, acceptance criteria and
  verification steps when absent.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from taskdb.core.fields import is_number
from taskdb.utils.files import atomic_write_text, dump_json

logger = logging.getLogger(__name__)

DEFAULT_SKILLS = ["Communication", "Problem solving"]
DEFAULT_REVIEWER_ROLE = "Project Manager"
NO_PREREQUISITES = "No prerequisites"
VERIFICATION_STEPS = [
    "Peer review output against goal + expected_output",
    "Confirm dependencies are satisfied (if any)",
]

# (substrings of the role, skills)
ROLE_SKILLS: List[Tuple[Tuple[str, ...], List[str]]] = [
    (("project manager", "pm"), ["Project planning", "Stakeholder communication", "Requirements"]),
    (("ux", "designer"), ["UX research", "Information architecture", "Wireframing"]),
    (("frontend",), ["JavaScript", "HTML/CSS", "UI engineering"]),
    (("backend", "api"), ["API design", "Data modeling", "Security basics"]),
    (("qa", "test"), ["Test planning", "Automation basics", "Bug triage"]),
    (("content", "writer", "community"), ["Technical writing", "Content strategy", "Community enablement"]),
]

# (substrings of the category, requisites)
CATEGORY_REQUISITES: List[Tuple[Tuple[str, ...], List[str]]] = [
    (("discovery", "exploration"), ["Access to existing roadmap content and links", "Agreement on target audience and scope"]),
    (("creation", "design", "prototype"), ["Brand/UI constraints (if any)", "Figma access (or alternative wireframing tool)"]),
    (("validation", "qa", "test"), ["Test environment or staging URL", "Definition of Done / acceptance criteria"]),
    (("delivery", "implementation", "deploy"), ["Local dev environment set up", "Access to repo and build instructions"]),
]
DEFAULT_CATEGORY_REQUISITES = ["Access to repo and relevant docs"]

# (tags, requisite)
TAG_REQUISITES: List[Tuple[Tuple[str, ...], str]] = [
    (("survey", "research"), "Access to survey tool and distribution channel"),
    (("figma", "ux", "design"), "Design file link(s) or wireframes"),
    (("frontend",), "UI spec + API contract"),
    (("backend", "api"), "API contract + data model draft"),
    (("analytics", "instrumentation"), "Analytics event spec + tracking destination"),
    (("playwright", "testing"), "Test plan / target scenarios"),
]


def _non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def unique(values: Iterable[Any]) -> List[str]:
    """Stripped, non-empty strings in first-seen order."""
    seen: List[str] = []
    for value in values or []:
        text = str(value if value is not None else "").strip()
        if text and text not in seen:
            seen.append(text)
    return seen


def role_to_skills(role: Any) -> List[str]:
    lowered = str(role or "").lower()
    for needles, skills in ROLE_SKILLS:
        if any(needle in lowered for needle in needles):
            return list(skills)
    return []


def category_to_requisites(category_name: Any) -> List[str]:
    lowered = str(category_name or "").lower()
    for needles, requisites in CATEGORY_REQUISITES:
        if any(needle in lowered for needle in needles):
            return list(requisites)
    return list(DEFAULT_CATEGORY_REQUISITES)


def tags_to_requisites(tags: Any) -> List[str]:
    tag_set = {str(tag or "").lower().strip() for tag in tags} if isinstance(tags, list) else set()
    return [requisite for needles, requisite in TAG_REQUISITES if tag_set.intersection(needles)]


class EnrichmentService:
    """Adds worker expectation fields to every task of a document."""

    @staticmethod
    def requisite_text(ref: Any, tasks_by_id: Dict[Any, Dict[str, Any]]) -> str:
        """Readable requisite for a string, a task id or a dependency-like object."""
        if _non_empty(ref):
            return ref.strip()

        ref_id: Any = None
        ref_name: Any = None
        if is_number(ref):
            ref_id = ref
        elif isinstance(ref, dict):
            ref_id = ref.get("task_id", ref.get("predecessor_task_id"))
            ref_name = ref.get("task_name", ref.get("predecessor_task_name"))

        if is_number(ref_id):
            hit = tasks_by_id.get(ref_id) or {}
            name = hit.get("task_name") if _non_empty(hit.get("task_name")) else ref_name
            label = f"{ref_id:g}" if isinstance(ref_id, float) else str(ref_id)
            return f"Complete task {label}: {name.strip()}" if _non_empty(name) else f"Complete task {label}"
        if _non_empty(ref_name):
            return ref_name.strip()
        return ""

    def normalize_requisites(self, task: Dict[str, Any], tasks_by_id: Dict[Any, Dict[str, Any]]) -> List[str]:
        dependencies = task.get("dependencies") if isinstance(task.get("dependencies"), list) else []
        existing = task.get("requisites") if isinstance(task.get("requisites"), list) else []

        result = unique(
            [self.requisite_text(ref, tasks_by_id) for ref in existing]
            + [self.requisite_text(dep, tasks_by_id) for dep in dependencies]
        )
        if not result:
            result = unique(category_to_requisites(task.get("category_name")) + tags_to_requisites(task.get("tags")))
        return result or [NO_PREREQUISITES]

    @staticmethod
    def reviewer_role(task: Dict[str, Any]) -> str:
        for entry in task.get("required_roles") or []:
            if isinstance(entry, dict) and _non_empty(entry.get("role")):
                return entry["role"].strip()
        return DEFAULT_REVIEWER_ROLE

    def enrich_task(self, task: Dict[str, Any], tasks_by_id: Dict[Any, Dict[str, Any]]) -> int:
        """Enrich one task in place; returns the number of field groups changed."""
        updated = 0

        if "volunteer_capacity" in task:
            task.setdefault("assignee_capacity", task["volunteer_capacity"])
            del task["volunteer_capacity"]
            updated += 1

        roles = task.get("required_roles") if isinstance(task.get("required_roles"), list) else []
        role_skills = unique(skill for role in roles if isinstance(role, dict) for skill in role_to_skills(role.get("role")))
        current_skills = task.get("skills_required") if isinstance(task.get("skills_required"), list) else []
        if not unique(current_skills):
            task["skills_required"] = role_skills or list(DEFAULT_SKILLS)
            updated += 1

        requisites = self.normalize_requisites(task, tasks_by_id)
        if task.get("requisites") != requisites:
            task["requisites"] = requisites
            updated += 1

        if not isinstance(task.get("tracking"), dict):
            expected = task.get("expected_output")
            task["tracking"] = {
                "reviewer_role": self.reviewer_role(task),
                "acceptance_criteria": [expected] if _non_empty(expected) else [],
                "verification_steps": list(VERIFICATION_STEPS),
            }
            updated += 1

        return updated

    def enrich_document(self, document: Dict[str, Any]) -> int:
        """Enrich every task of a ``{tasks: [...]}`` document in place."""
        if not isinstance(document, dict) or not isinstance(document.get("tasks"), list):
            raise ValueError("Invalid TaskDB JSON: missing tasks array.")

        tasks_by_id = {
            task["task_id"]: task
            for task in document["tasks"]
            if isinstance(task, dict) and is_number(task.get("task_id"))
        }
        return sum(self.enrich_task(task, tasks_by_id) for task in document["tasks"] if isinstance(task, dict))

    def enrich_file(self, path: str) -> int:
        """Enrich a JSON document on disk and rewrite it."""
        target = Path(path)
        document = json.loads(target.read_text(encoding="utf-8"))
        updated = self.enrich_document(document)
        atomic_write_text(target, dump_json(document) + "\n")
        logger.info("Enriched %d field group(s) in %s", updated, target)
        return updated


enrichment_service = EnrichmentService()
