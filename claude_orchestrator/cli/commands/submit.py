"""Submit command for Claude Orchestrator."""

import click

from ..helpers import get_config, get_storage
from ..util import build_task_input, task_options


@click.command()
@click.argument('prompt', required=False)
@task_options
def submit(prompt, **options):
    """Queue a task for 'serve' to pick up"""
    config = get_config()
    task_input = build_task_input(prompt, **options)
    task = get_storage(config).create(task_input)
    click.echo(f"Queued task {task.id}")
