"""Run command for Claude Orchestrator."""

import asyncio
import signal
import sys

import click

from ...core.runner import TaskRunner
from ...core.startup import recover_on_startup
from ...models.task import TaskStatus
from ..helpers import build_components, get_config, get_docker_service, get_storage
from ..helpers.event_renderer import EventRenderer
from ..util import build_task_input, task_options


async def _run_task(runner: TaskRunner, task_id: str):
    """Run one task, turning Ctrl-C into a cancellation request."""
    loop = asyncio.get_running_loop()

    def on_interrupt():
        click.echo("\nCancelling task...", err=True)
        runner.request_cancel()
        task = runner.store.get(task_id)
        if task and task.container_id:
            loop.run_in_executor(None, runner.containers.stop, task.container_id)

    loop.add_signal_handler(signal.SIGINT, on_interrupt)
    try:
        return await runner.run(task_id)
    finally:
        loop.remove_signal_handler(signal.SIGINT)


@click.command()
@click.argument('prompt', required=False)
@task_options
def run(prompt, **options):
    """Run one task in a container and follow it until it finishes.

    Exits 0 only when the task completes.
    """
    config = get_config()
    task_input = build_task_input(prompt, **options)

    storage = get_storage(config)
    docker_service = get_docker_service()
    workspaces, containers = build_components(config, docker_service)
    recover_on_startup(storage, workspaces, containers)

    task = storage.create(task_input)
    click.echo(f"Created task {task.id}")

    renderer = EventRenderer()
    runner = TaskRunner(storage, workspaces, containers, config,
                        on_event=renderer.on_event, on_task_update=renderer.on_task_update)
    final = asyncio.run(_run_task(runner, task.id))

    if final.status != TaskStatus.COMPLETED:
        sys.exit(1)
