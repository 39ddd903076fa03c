"""List tasks command."""

import click

from ...models.task import TaskStatus
from ..helpers import format_task_table, get_config, get_storage


@click.command(name='list')
@click.option('--status', type=click.Choice([s.value for s in TaskStatus]), help='Filter by task status')
def list_tasks(status):
    """List all tasks, oldest first"""
    storage = get_storage(get_config())
    tasks = storage.list(TaskStatus(status) if status else None)

    if not tasks:
        click.echo("No tasks found")
        return

    click.echo(format_task_table(tasks))
