"""Tests for task models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from claude_orchestrator.models.checks import CommandCheck
from claude_orchestrator.models.task import Task, TaskCreateInput, TaskStatus


class TestTaskStatus:
    """Test cases for TaskStatus."""

    @pytest.mark.parametrize("status", [
        TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED, TaskStatus.BLOCKED,
    ])
    def test_terminal_statuses(self, status):
        assert status.is_terminal

    @pytest.mark.parametrize("status", [TaskStatus.PENDING, TaskStatus.RUNNING])
    def test_non_terminal_statuses(self, status):
        assert not status.is_terminal


class TestTaskCreateInput:
    """Test cases for TaskCreateInput validation."""

    def test_defaults(self):
        task_input = TaskCreateInput(prompt="Do it", project_dir="/repo")

        assert task_input.max_iterations == 10
        assert task_input.max_hours == 4.0
        assert task_input.max_budget_usd == 30.0
        assert task_input.turns_per_iteration == 30
        assert task_input.completion_checks == []
        assert task_input.fresh_context is False

    def test_empty_prompt_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateInput(prompt="", project_dir="/repo")

    @pytest.mark.parametrize("field", ["max_iterations", "max_hours", "max_budget_usd", "turns_per_iteration"])
    def test_limits_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            TaskCreateInput(prompt="Do it", project_dir="/repo", **{field: 0})

    def test_completion_checks_from_dicts(self):
        task_input = TaskCreateInput(
            prompt="Do it",
            project_dir="/repo",
            completion_checks=[{"type": "command", "cmd": "pytest"}],
        )
        assert task_input.completion_checks == [CommandCheck(cmd="pytest")]


class TestTask:
    """Test cases for the Task record."""

    def test_json_round_trip_keeps_checks(self):
        """Test a stored record reloads with typed checks and aware timestamps."""
        task = Task(
            id="abc123",
            prompt="Do it",
            project_dir="/repo",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            log_dir="/logs/abc123",
            completion_checks=[CommandCheck(cmd="pytest")],
        )

        loaded = Task.model_validate_json(task.model_dump_json())

        assert loaded == task
        assert loaded.status == TaskStatus.PENDING
        assert not loaded.is_terminal
