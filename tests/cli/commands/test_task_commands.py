"""Tests for task management commands."""

from unittest.mock import Mock, patch

import pytest

from claude_orchestrator.cli.main import cli
from claude_orchestrator.core.event_log import EventLogWriter
from claude_orchestrator.models.checks import CommandCheck
from claude_orchestrator.models.events import IterationStartEvent, MessageEvent
from claude_orchestrator.models.task import TaskStatus


class TestSubmitAndList:
    """Test cases for queueing and listing tasks."""

    def test_submit_queues_pending_task(self, cli_runner, storage, git_repo):
        result = cli_runner.invoke(cli, [
            'submit', 'Write the docs',
            '-p', str(git_repo),
            '--max-iterations', '3',
            '--check', 'make test',
            '--fresh-context',
        ])

        assert result.exit_code == 0, result.output
        assert "Queued task" in result.output
        [task] = storage.list()
        assert task.status == TaskStatus.PENDING
        assert task.prompt == "Write the docs"
        assert task.project_dir == str(git_repo.resolve())
        assert task.max_iterations == 3
        assert task.completion_checks == [CommandCheck(cmd="make test")]
        assert task.fresh_context is True

    def test_submit_from_task_file(self, cli_runner, storage, git_repo, tmp_path):
        task_file = tmp_path / "task.md"
        task_file.write_text("---\nmax_hours: 1\n---\nRefactor the parser\n")

        result = cli_runner.invoke(cli, ['submit', '-f', str(task_file), '-p', str(git_repo),
                                         '--max-hours', '2'])

        assert result.exit_code == 0, result.output
        [task] = storage.list()
        assert task.prompt == "Refactor the parser"
        assert task.max_hours == 2.0

    def test_submit_requires_prompt(self, cli_runner, storage, git_repo):
        result = cli_runner.invoke(cli, ['submit', '-p', str(git_repo)])

        assert result.exit_code == 1
        assert "A prompt or --file is required" in result.output
        assert storage.list() == []

    def test_submit_rejects_prompt_and_file(self, cli_runner, storage, git_repo, tmp_path):
        task_file = tmp_path / "task.md"
        task_file.write_text("---\n---\nBody\n")

        result = cli_runner.invoke(cli, ['submit', 'Prompt', '-f', str(task_file), '-p', str(git_repo)])

        assert result.exit_code == 1

    def test_submit_rejects_invalid_limits(self, cli_runner, storage, git_repo):
        result = cli_runner.invoke(cli, ['submit', 'x', '-p', str(git_repo), '--max-budget', '0'])

        assert result.exit_code == 1
        assert "Invalid task settings" in result.output

    def test_list_filters_by_status(self, cli_runner, storage, make_task_input):
        pending = storage.create(make_task_input(prompt="Pending work"))
        done = storage.create(make_task_input(prompt="Finished work"))
        storage.update(done.id, status=TaskStatus.COMPLETED)

        result = cli_runner.invoke(cli, ['list', '--status', 'pending'])

        assert result.exit_code == 0
        assert pending.id in result.output
        assert done.id not in result.output


class TestShow:
    """Test cases for the show command."""

    def test_show_details_and_events(self, cli_runner, storage, config, make_task_input):
        task = storage.create(make_task_input(completion_checks=[CommandCheck(cmd="pytest")]))
        storage.update(task.id, status=TaskStatus.FAILED, error="Worker exited with code 1", exit_code=1)
        writer = EventLogWriter(config.task_events_file(task.id))
        writer.emit(IterationStartEvent(iteration=1, max_iterations=10, fresh=True))
        writer.emit(MessageEvent(source="agent", text="Reading the code"))

        result = cli_runner.invoke(cli, ['show', task.id[:5]])

        assert result.exit_code == 0, result.output
        assert f"Task Details: {task.id}" in result.output
        assert "Worker exited with code 1" in result.output
        assert "pytest" in result.output
        assert "Iteration 1/10" in result.output
        assert "Reading the code" in result.output

    def test_show_unknown(self, cli_runner, storage):
        result = cli_runner.invoke(cli, ['show', 'nope'])
        assert result.exit_code == 1


class TestDelete:
    """Test cases for the delete command."""

    def test_delete_finished_task(self, cli_runner, storage, config, make_task_input):
        task = storage.create(make_task_input())
        storage.update(task.id, status=TaskStatus.COMPLETED)

        result = cli_runner.invoke(cli, ['delete', task.id, '--yes'])

        assert result.exit_code == 0
        assert storage.get(task.id) is None
        assert not config.task_log_dir(task.id).exists()

    @pytest.mark.parametrize("status", [TaskStatus.PENDING, TaskStatus.RUNNING])
    def test_delete_refused_for_active_task(self, cli_runner, storage, make_task_input, status):
        task = storage.create(make_task_input())
        storage.update(task.id, status=status)

        result = cli_runner.invoke(cli, ['delete', task.id, '--yes'])

        assert result.exit_code == 1
        assert "cannot be deleted" in result.output
        assert storage.get(task.id) is not None

    def test_delete_asks_for_confirmation(self, cli_runner, storage, make_task_input):
        task = storage.create(make_task_input())
        storage.update(task.id, status=TaskStatus.FAILED)

        result = cli_runner.invoke(cli, ['delete', task.id], input="n\n")

        assert "Cancelled" in result.output
        assert storage.get(task.id) is not None

    @patch('claude_orchestrator.cli.commands.delete.questionary')
    def test_delete_interactive_selection(self, mock_questionary, cli_runner, storage, make_task_input):
        task = storage.create(make_task_input())
        storage.update(task.id, status=TaskStatus.CANCELLED)
        mock_questionary.select.return_value.ask.return_value = task.id

        result = cli_runner.invoke(cli, ['delete', '--yes'])

        assert result.exit_code == 0, result.output
        assert storage.get(task.id) is None

    def test_delete_interactive_nothing_to_delete(self, cli_runner, storage, make_task_input):
        storage.create(make_task_input())

        result = cli_runner.invoke(cli, ['delete'])

        assert "No finished tasks to delete" in result.output


class TestAbort:
    """Test cases for the abort command."""

    @patch('claude_orchestrator.cli.commands.abort.build_components')
    @patch('claude_orchestrator.cli.commands.abort.get_docker_service')
    def test_abort_signals_running_container(self, mock_docker, mock_components, cli_runner, storage,
                                             make_task_input):
        containers = Mock()
        mock_components.return_value = (Mock(), containers)
        task = storage.create(make_task_input())
        storage.update(task.id, status=TaskStatus.RUNNING, container_id="c123")

        result = cli_runner.invoke(cli, ['abort', task.id])

        assert result.exit_code == 0, result.output
        containers.signal.assert_called_once_with("c123", "SIGUSR1")

    def test_abort_requires_running_task(self, cli_runner, storage, make_task_input):
        task = storage.create(make_task_input())

        result = cli_runner.invoke(cli, ['abort', task.id])

        assert result.exit_code == 1
        assert "is not running" in result.output


class TestCleanup:
    """Test cases for the cleanup command."""

    @patch('claude_orchestrator.cli.commands.cleanup.build_components')
    @patch('claude_orchestrator.cli.commands.cleanup.get_docker_service')
    def test_cleanup_reports_counts(self, mock_docker, mock_components, cli_runner, storage, make_task_input):
        workspaces, containers = Mock(), Mock()
        workspaces.prune_orphans.return_value = 2
        containers.cleanup_orphans.return_value = 1
        containers.is_stale.return_value = True
        mock_components.return_value = (workspaces, containers)
        stale = storage.create(make_task_input())
        storage.update(stale.id, status=TaskStatus.RUNNING, container_id="dead")

        result = cli_runner.invoke(cli, ['cleanup'])

        assert result.exit_code == 0, result.output
        assert "Stale tasks marked failed: 1" in result.output
        assert "Orphaned containers removed: 1" in result.output
        assert "Orphaned workspaces removed: 2" in result.output
        assert storage.get(stale.id).status == TaskStatus.FAILED
