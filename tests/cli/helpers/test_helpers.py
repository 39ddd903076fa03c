"""Tests for CLI helper functions."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from rich.console import Console

from claude_orchestrator.cli.helpers import (
    first_line,
    format_task_table,
    get_config,
    get_docker_service,
    resolve_task_id,
)
from claude_orchestrator.cli.helpers.event_renderer import EventRenderer, format_event
from claude_orchestrator.models.events import (
    CompletionEvent,
    DoneEvent,
    ErrorEvent,
    IterationStartEvent,
    MessageEvent,
    TimeoutEvent,
)
from claude_orchestrator.models.task import Task, TaskStatus
from claude_orchestrator.services.exceptions import DockerServiceError


def _task(task_id, status=TaskStatus.PENDING, error=None):
    return Task(
        id=task_id,
        prompt="Implement the feature\nwith details",
        project_dir="/repo",
        status=status,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        log_dir=f"/logs/{task_id}",
        error=error,
    )


class TestHelpers:
    """Test cases for shared CLI helpers."""

    def test_get_config_creates_directories(self, orchestrator_home):
        config = get_config()

        assert config.home_dir == orchestrator_home
        assert config.tasks_dir.is_dir()
        assert config.auth_dir.is_dir()

    def test_get_config_exits_on_invalid_file(self, orchestrator_home):
        orchestrator_home.mkdir(parents=True)
        (orchestrator_home / "config.json").write_text("{bad")

        with pytest.raises(SystemExit) as exc_info:
            get_config()
        assert exc_info.value.code == 1

    @patch('claude_orchestrator.cli.helpers.DockerService')
    def test_get_docker_service_exits_when_unavailable(self, mock_service):
        mock_service.side_effect = DockerServiceError("Docker daemon is not running")

        with pytest.raises(SystemExit):
            get_docker_service()

    def test_resolve_full_and_short_ids(self, storage, make_task_input):
        task = storage.create(make_task_input())

        assert resolve_task_id(storage, task.id).id == task.id
        assert resolve_task_id(storage, task.id[:6]).id == task.id

    def test_resolve_unknown_id_exits(self, storage, capsys):
        with pytest.raises(SystemExit):
            resolve_task_id(storage, "zzz")
        assert "No task found with ID: zzz" in capsys.readouterr().err

    def test_first_line(self):
        assert first_line("short\nsecond") == "short"
        assert first_line("x" * 80, max_length=10) == "xxxxxxx..."

    def test_task_table(self):
        table = format_task_table([_task("abc123", TaskStatus.RUNNING)])

        assert "abc123" in table
        assert "RUNNING" in table
        assert "Implement the feature" in table
        assert "with details" not in table
        assert "0/10" in table


class TestEventRenderer:
    """Test cases for console rendering of events."""

    def test_format_events(self):
        assert "Iteration 1/5" in format_event(IterationStartEvent(iteration=1, max_iterations=5, fresh=True))
        assert "retrying in 2s" in format_event(ErrorEvent(iteration=1, error="boom", backoff_ms=2000))
        assert "Time limit reached" in format_event(TimeoutEvent())
        assert "failed" in format_event(CompletionEvent(all_passed=False, summary="[FAIL] x"))
        assert "$1.25" in format_event(DoneEvent(status="completed", iterations=2, total_cost_usd=1.25))

    def test_message_markup_is_escaped(self):
        line = format_event(MessageEvent(source="agent", text="[bold]not markup[/bold]"))
        assert "\\[bold]" in line

    def test_renderer_prints_status_changes_once(self):
        console = Console(record=True, width=200)
        renderer = EventRenderer(console=console)

        renderer.on_task_update(_task("t1", TaskStatus.RUNNING))
        renderer.on_task_update(_task("t1", TaskStatus.RUNNING))
        renderer.on_task_update(_task("t1", TaskStatus.FAILED, error="Worker exited with code 1"))
        renderer.on_event("t1", MessageEvent(source="tool", text="Bash: ls"))

        output = console.export_text()
        assert output.count("Task t1 is running") == 1
        assert "Task t1 is failed: Worker exited with code 1" in output
        assert "tool: Bash: ls" in output
