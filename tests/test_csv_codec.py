"""Tests for the task CSV codec."""
import csv
import io

import pytest

from taskdb.core.fields import PERSISTED_CSV_FIELDS, TASK_SCHEMA
from taskdb.services.csv_codec import (
    decode_field,
    decode_tasks,
    encode_field,
    encode_tasks,
    escape_csv_value,
    format_cell,
    generate_persisted_csv,
)


def test_escape_csv_value():
    assert escape_csv_value("plain") == "plain"
    assert escape_csv_value("a,b") == '"a,b"'
    assert escape_csv_value('say "hi"') == '"say ""hi"""'
    assert escape_csv_value("line\nbreak") == '"line\nbreak"'
    assert escape_csv_value(None) == ""


def test_format_cell_scalars():
    assert format_cell(True) == "true"
    assert format_cell(False) == "false"
    assert format_cell(8.0) == "8"
    assert format_cell(2.5) == "2.5"
    assert format_cell(0) == "0"
    assert format_cell(None) == ""


def test_encode_nested_fields():
    workers = [{"name": "Dev", "email": "dev@example.com", "role": "Developer"}, {"name": "QA", "email": "qa@example.com"}]
    assert encode_field("assigned_workers", workers) == "Dev:dev@example.com:Developer|QA:qa@example.com:"

    dependencies = [
        {"predecessor_task_id": 1, "type": "FS", "lag_days": 2},
        {"predecessor_task_name": "Design"},
    ]
    assert encode_field("dependencies", dependencies) == "1::FS::2;Design::FS::0"

    assert encode_field("tags", ["api", "backend"]) == "api;backend"
    comments = [{"author": "dev", "timestamp": "2025-12-08", "text": "Started"}]
    assert encode_field("comments", comments) == "dev::2025-12-08::Started"
    attachments = [{"filename": "a.png", "url": "https://x/a.png", "uploaded_by": "dev", "uploaded_date": "2025-12-08"}]
    assert encode_field("attachments", attachments) == "a.png::https://x/a.png::dev::2025-12-08"


def test_export_of_empty_collection_is_empty_string():
    assert encode_tasks([]) == ""


def test_export_has_one_column_per_declared_field(make_task):
    content = encode_tasks([make_task(1), make_task(2)])
    lines = content.split("\n")
    assert lines[0] == ",".join(TASK_SCHEMA.all_fields)
    assert len(lines) == 3
    assert not content.endswith("\n")


def test_round_trip_preserves_ids_names_and_nested_fields(make_task):
    tasks = [
        make_task(
            1,
            task_name="Design, review",
            description='Use "quotes" carefully',
            tags=["api", "backend"],
            assigned_workers=[{"name": "Dev", "email": "dev@example.com", "role": "Developer"}],
            is_critical_path=True,
            estimated_hours=2.5,
        ),
        make_task(
            2,
            task_name="Implement",
            parent_task_id=1,
            dependencies=[
                {"predecessor_task_id": 1, "type": "FS", "lag_days": 0},
                {"predecessor_task_name": "Kickoff", "type": "SS", "lag_days": 3},
            ],
            comments=[{"author": "lead", "timestamp": "2025-12-09T10:00:00Z", "text": "Looks good"}],
        ),
    ]

    decoded = decode_tasks(encode_tasks(tasks))

    assert [task["task_id"] for task in decoded] == [1, 2]
    assert [task["task_name"] for task in decoded] == ["Design, review", "Implement"]
    assert decoded[0]["description"] == 'Use "quotes" carefully'
    assert decoded[0]["tags"] == ["api", "backend"]
    assert decoded[0]["assigned_workers"] == [{"name": "Dev", "email": "dev@example.com", "role": "Developer"}]
    assert decoded[0]["is_critical_path"] is True
    assert decoded[0]["estimated_hours"] == 2.5
    assert decoded[1]["parent_task_id"] == 1
    assert decoded[1]["dependencies"] == [
        {"predecessor_task_id": 1, "type": "FS", "lag_days": 0},
        {"predecessor_task_name": "Kickoff", "type": "SS", "lag_days": 3},
    ]
    assert decoded[1]["comments"] == [{"author": "lead", "timestamp": "2025-12-09T10:00:00Z", "text": "Looks good"}]


def test_empty_cells_are_left_out(make_task):
    decoded = decode_tasks(encode_tasks([make_task(1)]))
    assert "parent_task_id" not in decoded[0]
    assert "completed_date" not in decoded[0]
    assert "tags" not in decoded[0]


def test_digits_only_predecessor_is_an_id():
    assert decode_field("dependencies", "12::FF::1") == [{"predecessor_task_id": 12, "type": "FF", "lag_days": 1}]
    assert decode_field("dependencies", "Build 2::FS::0") == [
        {"predecessor_task_name": "Build 2", "type": "FS", "lag_days": 0}
    ]


def test_text_fields_are_not_coerced_to_numbers():
    assert decode_field("task_name", "2025") == "2025"
    assert decode_field("task_id", "7") == 7
    assert decode_field("estimated_hours", "1.5") == 1.5


def test_decode_requires_header_and_data_row():
    with pytest.raises(ValueError, match="at least a header row and one data row"):
        decode_tasks("task_id,task_name\n")


def test_persisted_csv_has_fixed_columns(make_task):
    content = generate_persisted_csv([make_task(1, task_name="a,b", estimated_hours=8.0, is_critical_path=True)])
    assert content.endswith("\n")
    rows = list(csv.reader(io.StringIO(content)))
    assert rows[0] == list(PERSISTED_CSV_FIELDS)
    row = dict(zip(rows[0], rows[1]))
    assert row["task_name"] == "a,b"
    assert row["estimated_hours"] == "8"
    assert row["is_critical_path"] == "true"
    assert row["parent_task_id"] == ""


def test_persisted_csv_of_no_tasks_is_header_only():
    assert generate_persisted_csv([]) == ",".join(PERSISTED_CSV_FIELDS) + "\n"
