"""Delete task command."""

import shutil
import sys

import click
import questionary

from ...models.task import TaskStatus
from ..helpers import first_line, get_config, get_storage, resolve_task_id


@click.command()
@click.argument('task_id', required=False)
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
def delete(task_id, yes):
    """Delete a finished task and its logs.

    Without TASK_ID, pick from finished tasks interactively.
    """
    config = get_config()
    storage = get_storage(config)

    if task_id:
        task = resolve_task_id(storage, task_id)
    else:
        finished = [t for t in storage.list() if t.is_terminal]
        if not finished:
            click.echo("No finished tasks to delete")
            return
        choices = [
            questionary.Choice(f"{t.id}  {t.status.value:<9}  {first_line(t.prompt)}", value=t.id)
            for t in finished
        ]
        selected = questionary.select("Select a task to delete:", choices=choices).ask()
        if selected is None:
            click.echo("Cancelled")
            return
        task = storage.get(selected)

    if task.status in (TaskStatus.PENDING, TaskStatus.RUNNING):
        click.echo(f"Error: Task {task.id} is {task.status.value} and cannot be deleted", err=True)
        sys.exit(1)

    if not yes and not click.confirm(f"Delete task {task.id}?"):
        click.echo("Cancelled")
        return

    storage.delete(task.id)
    shutil.rmtree(config.task_log_dir(task.id), ignore_errors=True)
    click.echo(f"Task {task.id} deleted")
