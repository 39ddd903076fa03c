"""Tests for TaskStorageManager."""

import json
from unittest.mock import patch

import pytest

from claude_orchestrator.core.task_storage import TaskStorageManager, atomic_write_text
from claude_orchestrator.models.checks import CommandCheck
from claude_orchestrator.models.task import TaskStatus
from claude_orchestrator.services.exceptions import TaskNotFoundError


class TestTaskStorageManager:
    """Test cases for TaskStorageManager."""

    def test_create_task(self, storage, config, make_task_input):
        """Test creating a new task."""
        task = storage.create(make_task_input(completion_checks=[{"type": "command", "cmd": "pytest"}]))

        assert len(task.id) == 12
        assert task.status == TaskStatus.PENDING
        assert task.created_at.tzinfo is not None
        assert task.log_dir == str(config.logs_dir / task.id)
        assert (config.logs_dir / task.id).is_dir()
        assert (config.tasks_dir / task.id / "metadata.json").exists()
        assert task.completion_checks == [CommandCheck(cmd="pytest")]

    def test_get_returns_stored_task(self, storage, make_task_input):
        task = storage.create(make_task_input())
        assert storage.get(task.id) == task

    def test_get_missing(self, storage):
        assert storage.get("missing") is None

    def test_update_merges_fields(self, storage, make_task_input):
        """Test a partial update keeps untouched fields and persists."""
        task = storage.create(make_task_input(max_iterations=7))

        updated = storage.update(task.id, status=TaskStatus.RUNNING, container_id="c123")

        assert updated.status == TaskStatus.RUNNING
        assert updated.container_id == "c123"
        assert updated.max_iterations == 7
        assert storage.get(task.id) == updated

    def test_update_missing_task(self, storage):
        with pytest.raises(TaskNotFoundError, match="not found"):
            storage.update("missing", status=TaskStatus.FAILED)

    def test_delete(self, storage, config, make_task_input):
        task = storage.create(make_task_input())

        storage.delete(task.id)

        assert storage.get(task.id) is None
        assert not (config.tasks_dir / task.id).exists()

    def test_delete_unknown_is_ignored(self, storage):
        storage.delete("missing")

    def test_list_oldest_first(self, storage, make_task_input):
        """Test creation order is preserved even for tasks created back to back."""
        ids = [storage.create(make_task_input(prompt=f"task {i}")).id for i in range(5)]

        assert [t.id for t in storage.list()] == ids

    def test_list_filters_by_status(self, storage, make_task_input):
        first = storage.create(make_task_input())
        second = storage.create(make_task_input())
        storage.update(second.id, status=TaskStatus.FAILED)

        assert [t.id for t in storage.list(TaskStatus.PENDING)] == [first.id]
        assert [t.id for t in storage.list(TaskStatus.FAILED)] == [second.id]

    def test_list_skips_corrupt_records(self, storage, config, make_task_input):
        task = storage.create(make_task_input())
        broken = config.tasks_dir / "broken"
        broken.mkdir()
        (broken / "metadata.json").write_text("{not json")

        assert [t.id for t in storage.list()] == [task.id]

    def test_records_survive_new_manager(self, storage, config, make_task_input):
        task = storage.create(make_task_input())

        reopened = TaskStorageManager(config.tasks_dir, config.logs_dir)

        assert reopened.get(task.id) == task


class TestAtomicWrite:
    """Test cases for atomic_write_text."""

    def test_writes_content_and_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "nested" / "data.json"

        atomic_write_text(target, json.dumps({"a": 1}))
        atomic_write_text(target, json.dumps({"a": 2}))

        assert json.loads(target.read_text()) == {"a": 2}
        assert [p.name for p in target.parent.iterdir()] == ["data.json"]

    @patch("claude_orchestrator.core.task_storage.os.replace", side_effect=OSError("disk full"))
    def test_failed_rename_keeps_previous_content(self, mock_replace, tmp_path):
        target = tmp_path / "data.json"
        target.write_text(json.dumps({"a": 1}))

        with pytest.raises(OSError):
            atomic_write_text(target, json.dumps({"a": 2}))

        assert json.loads(target.read_text()) == {"a": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["data.json"]
