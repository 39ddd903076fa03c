"""CLI Helper Functions for Claude Orchestrator.

Shared setup for the commands: loading configuration, opening the task store,
connecting to Docker, wiring the runner and scheduler, resolving short task
IDs and formatting task tables.
"""

import sys
import uuid
from typing import Any, List, Optional

import click
from tabulate import tabulate

from claude_orchestrator.core.container_manager import TaskContainerManager
from claude_orchestrator.core.runner import TaskRunner
from claude_orchestrator.core.scheduler import TaskScheduler
from claude_orchestrator.core.task_storage import TaskStorageManager
from claude_orchestrator.core.workspace import WorkspaceProvider
from claude_orchestrator.models.config import OrchestratorConfig
from claude_orchestrator.models.task import Task, TaskStatus
from claude_orchestrator.services.docker_service import DockerService
from claude_orchestrator.services.exceptions import ConfigError, DockerServiceError
from claude_orchestrator.utils.config_manager import ConfigManager

STATUS_COLORS = {
    TaskStatus.PENDING: 'white',
    TaskStatus.RUNNING: 'cyan',
    TaskStatus.COMPLETED: 'green',
    TaskStatus.FAILED: 'red',
    TaskStatus.CANCELLED: 'yellow',
    TaskStatus.BLOCKED: 'magenta',
}


def get_config() -> OrchestratorConfig:
    """Load configuration and create the home directory tree, exit on failure."""
    try:
        config = ConfigManager().load_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    config.ensure_dirs()
    return config


def get_storage(config: OrchestratorConfig) -> TaskStorageManager:
    return TaskStorageManager(config.tasks_dir, config.logs_dir)


def get_docker_service() -> DockerService:
    """Connect to Docker with error handling.

    Note:
        Exits with error message if Docker is not available.
    """
    try:
        return DockerService()
    except DockerServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def new_session_id() -> str:
    return uuid.uuid4().hex[:8]


def build_components(config: OrchestratorConfig,
                     docker_service: DockerService) -> tuple[WorkspaceProvider, TaskContainerManager]:
    """Create the workspace provider and container manager for this process."""
    workspaces = WorkspaceProvider(config.workspaces_dir)
    containers = TaskContainerManager(docker_service, config, session_id=new_session_id())
    return workspaces, containers


def build_scheduler(config: OrchestratorConfig, storage: TaskStorageManager,
                    workspaces: WorkspaceProvider, containers: TaskContainerManager,
                    max_concurrent: Optional[int] = None) -> TaskScheduler:
    """Wire a scheduler whose runners share this process's components."""
    def runner_factory(on_event, on_task_update):
        return TaskRunner(storage, workspaces, containers, config,
                          on_event=on_event, on_task_update=on_task_update)

    return TaskScheduler(
        storage,
        runner_factory,
        containers,
        max_concurrent=max_concurrent or config.max_concurrent,
        shutdown_grace=config.shutdown_grace_seconds,
    )


def resolve_task_id(storage: TaskStorageManager, task_id: str) -> Task:
    """Resolve a task ID with short ID support.

    Note:
        Exits with error if task not found or multiple matches.
    """
    task = storage.get(task_id)
    if task:
        return task

    matching_tasks = [t for t in storage.list() if t.id.startswith(task_id)]
    if len(matching_tasks) == 1:
        return matching_tasks[0]
    if len(matching_tasks) > 1:
        click.echo(f"Error: Multiple tasks found starting with '{task_id}':", err=True)
        for task in matching_tasks:
            click.echo(f"  - {task.id}: {first_line(task.prompt)}", err=True)
        sys.exit(1)

    click.echo(f"Error: No task found with ID: {task_id}", err=True)
    sys.exit(1)


def first_line(text: str, max_length: int = 50) -> str:
    line = text.strip().split('\n')[0]
    if len(line) > max_length:
        line = line[:max_length - 3] + "..."
    return line


def format_status(status: TaskStatus) -> str:
    return click.style(status.value.upper(), fg=STATUS_COLORS.get(status, 'white'))


def format_task_table(tasks: List[Task], max_prompt_length: int = 50) -> str:
    """Format tasks as a table with consistent styling."""
    headers = ["ID", "STATUS", "PROMPT", "ITER", "COST", "CREATED"]

    table_data = []
    for task in tasks:
        table_data.append([
            task.id,
            format_status(task.status),
            first_line(task.prompt, max_prompt_length),
            f"{task.iteration}/{task.max_iterations}",
            f"${task.cost_usd:.2f}",
            task.created_at.astimezone().strftime("%Y-%m-%d %H:%M"),
        ])

    return tabulate(table_data, headers=headers, tablefmt="simple")


def print_table(headers: list[str], rows: list[list[Any]],
                tablefmt: str = "simple") -> None:
    """Print a table with project-wide defaults."""
    click.echo(tabulate(rows, headers=headers, tablefmt=tablefmt))
