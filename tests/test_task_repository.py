"""Tests for JSON persistence and legacy record migration."""

from __future__ import annotations

import datetime
import json

from taskcal.tasks.models import Recurring, Subtask, Task
from taskcal.tasks.repository import TaskRepository, migrate_task_record

UTC = datetime.timezone.utc


def _write(path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


class TestMigration:
    def test_deadline_becomes_start_time(self):
        record = migrate_task_record({"id": "a", "title": "Old", "deadline": "2024-01-01T09:00:00.000Z"})
        assert record["startTime"] == "2024-01-01T09:00:00.000Z"
        assert "deadline" not in record
        assert record["timeSpent"] == 0
        assert record["completed"] is False
        assert record["subtasks"] == []
        assert record["description"] == ""

    def test_existing_start_time_wins_over_deadline(self):
        record = migrate_task_record(
            {"startTime": "2024-02-01T00:00:00Z", "deadline": "2024-01-01T00:00:00Z"}
        )
        assert record["startTime"] == "2024-02-01T00:00:00Z"

    def test_subtasks_receive_ids(self):
        record = migrate_task_record(
            {"startTime": "2024-01-01T00:00:00Z", "subtasks": [{"text": "a"}, {"id": "keep", "text": "b"}]}
        )
        assert record["subtasks"][0]["id"]
        assert record["subtasks"][1]["id"] == "keep"

    def test_end_not_after_start_is_dropped(self):
        record = migrate_task_record(
            {"startTime": "2024-01-01T10:00:00Z", "endTime": "2024-01-01T09:00:00Z"}
        )
        assert "endTime" not in record


class TestLoad:
    def test_missing_file_loads_empty(self, tasks_path):
        assert TaskRepository(tasks_path).load() == []

    def test_corrupt_file_loads_empty_with_warning(self, tasks_path, caplog):
        tasks_path.parent.mkdir(parents=True)
        tasks_path.write_text("{not json", encoding="utf-8")
        with caplog.at_level("WARNING"):
            assert TaskRepository(tasks_path).load() == []
        assert "Failed to read tasks file" in caplog.text

    def test_bare_list_and_invalid_records(self, tasks_path, caplog):
        _write(
            tasks_path,
            [
                {"id": "good", "title": "Legacy", "deadline": "2024-01-01T09:00:00.000Z"},
                {"id": "bad", "title": "", "startTime": "2024-01-01T09:00:00.000Z"},
                "not a record",
            ],
        )
        with caplog.at_level("WARNING"):
            tasks = TaskRepository(tasks_path).load()

        assert [task.id for task in tasks] == ["good"]
        assert tasks[0].start_time == datetime.datetime(2024, 1, 1, 9, tzinfo=UTC)
        assert "Skipping invalid task entry bad" in caplog.text


class TestSave:
    def test_save_writes_camel_case_document(self, tasks_path):
        task = Task(
            id="t1",
            title="Yoga",
            start_time=datetime.datetime(2024, 1, 1, 7, tzinfo=UTC),
            subtasks=[Subtask(id="s1", text="Mat")],
            recurring=Recurring(frequency="weekly", days_of_week=[1, 3]),
        )
        repository = TaskRepository(tasks_path)

        assert repository.save([task]) is True

        document = json.loads(tasks_path.read_text(encoding="utf-8"))
        stored = document["tasks"][0]
        assert stored["startTime"].startswith("2024-01-01T07:00:00")
        assert stored["timeSpent"] == 0
        assert stored["recurring"]["daysOfWeek"] == [1, 3]
        assert repository.load() == [task]
        assert list(tasks_path.parent.glob(".tasks_*")) == []

    def test_save_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        assert TaskRepository(blocker / "tasks.json").save([]) is False
