"""Tests for the maintenance service and its command line scripts."""
import importlib.util
import json
from datetime import datetime
from pathlib import Path

import pytest

from taskdb.core.fields import PERSISTED_CSV_FIELDS
from taskdb.services.maintenance_service import MaintenanceService

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"

PROJECT = {"name": "Demo", "start_date": "2025-12-01", "end_date": "2026-01-31", "status": "In Progress"}


def load_script(name):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def maintenance(store_dir):
    return MaintenanceService(str(store_dir))


def write_project(store_dir, project_id, document):
    path = store_dir / project_id / "tasks.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_regenerate_csv(maintenance, store_dir, make_task):
    write_project(store_dir, "demo", {"project": PROJECT, "tasks": [make_task(1), make_task(2)]})

    csv_path, rows = maintenance.regenerate_csv("demo")

    assert rows == 2
    lines = csv_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(PERSISTED_CSV_FIELDS)
    assert len(lines) == 3


def test_regenerate_state(maintenance, store_dir, make_task):
    write_project(store_dir, "demo", [make_task(1, status="Blocked")])

    state_dir, total = maintenance.regenerate_state("demo")

    assert total == 1
    blocked = json.loads((state_dir / "tasks-blocked.json").read_text(encoding="utf-8"))
    assert [t["task_id"] for t in blocked["tasks"]] == [1]


def test_missing_project_raises(maintenance):
    with pytest.raises(FileNotFoundError):
        maintenance.regenerate_csv("ghost")


def test_validate_projects(maintenance, store_dir, make_task):
    write_project(store_dir, "good", {"project": PROJECT, "tasks": [make_task(1)]})
    write_project(store_dir, "bad", {"project": PROJECT, "tasks": [make_task(1), make_task(1)]})
    (store_dir / "empty-dir").mkdir()

    results = maintenance.validate_projects(all_projects=True)

    assert list(results) == ["bad", "good"]
    assert results["good"].is_valid
    assert "Duplicate task_id: 1" in results["bad"].errors


def test_validate_unreadable_project(maintenance, store_dir):
    (store_dir / "broken").mkdir(parents=True)
    (store_dir / "broken" / "tasks.json").write_text("{", encoding="utf-8")
    results = maintenance.validate_projects(["broken", "ghost"])
    assert not results["broken"].is_valid
    assert not results["ghost"].is_valid


def test_archive_legacy(maintenance, tmp_path, make_task):
    legacy = tmp_path / "tasks.json"
    legacy.write_text(json.dumps({"tasks": [make_task(1)]}), encoding="utf-8")

    written = maintenance.archive_legacy(str(legacy), str(tmp_path / "history"), now=datetime(2026, 1, 2, 3, 4, 5))

    assert [path.name for path in written] == [
        "tasks-root-legacy-20260102-030405.json",
        "tasks-root-legacy-20260102-030405.csv",
    ]
    assert written[0].read_text(encoding="utf-8") == legacy.read_text(encoding="utf-8")


def test_archive_legacy_keeps_json_only_when_unparseable(maintenance, tmp_path):
    legacy = tmp_path / "tasks.json"
    legacy.write_text("{broken", encoding="utf-8")
    written = maintenance.archive_legacy(str(legacy), str(tmp_path / "history"))
    assert len(written) == 1


def test_archive_missing_legacy_file_raises(maintenance, tmp_path):
    with pytest.raises(FileNotFoundError):
        maintenance.archive_legacy(str(tmp_path / "absent.json"))


def test_validate_script_exit_codes(monkeypatch, maintenance, store_dir, make_task, capsys):
    write_project(store_dir, "good", {"project": PROJECT, "tasks": [make_task(1)]})
    write_project(store_dir, "bad", {"project": PROJECT, "tasks": [make_task(1, priority="Urgent")]})

    script = load_script("validate_tasks_schema")
    monkeypatch.setattr(script, "maintenance_service", maintenance)

    assert script.main(["good"]) == 0
    assert script.main(["--all"]) == 1
    assert "✗ bad" in capsys.readouterr().out


def test_regenerate_script(monkeypatch, maintenance, store_dir, make_task, capsys):
    write_project(store_dir, "demo", {"tasks": [make_task(1)]})
    script = load_script("regenerate_tasks_csv")
    monkeypatch.setattr(script, "maintenance_service", maintenance)

    assert script.main(["demo"]) == 0
    assert "Regenerated tasks.csv with 1 rows" in capsys.readouterr().out
    assert script.main(["ghost"]) == 1
