"""Abort iteration command."""

import sys

import click

from ...models.task import TaskStatus
from ...services.exceptions import DockerServiceError
from ..helpers import build_components, get_config, get_docker_service, get_storage, resolve_task_id


@click.command()
@click.argument('task_id')
def abort(task_id):
    """Interrupt the running agent call of a task; the task itself continues"""
    config = get_config()
    storage = get_storage(config)
    task = resolve_task_id(storage, task_id)

    if task.status != TaskStatus.RUNNING or not task.container_id:
        click.echo(f"Error: Task {task.id} is not running", err=True)
        sys.exit(1)

    _, containers = build_components(config, get_docker_service())
    try:
        containers.signal(task.container_id, "SIGUSR1")
    except DockerServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Aborted current iteration of task {task.id}")
