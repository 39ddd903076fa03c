"""Serve command for Claude Orchestrator."""

import asyncio

import click

from ...core.scheduler import TaskScheduler
from ...core.startup import recover_on_startup
from ..helpers import build_components, build_scheduler, get_config, get_docker_service, get_storage
from ..helpers.event_renderer import EventRenderer


async def _serve(scheduler: TaskScheduler, renderer: EventRenderer) -> None:
    scheduler.subscribe(on_event=renderer.on_event, on_task_update=renderer.on_task_update)
    scheduler.start()
    await scheduler.wait_closed()


@click.command()
@click.option('--max-concurrent', '-n', type=click.IntRange(min=1), help='Override the concurrency limit')
def serve(max_concurrent):
    """Run queued tasks until interrupted (Ctrl-C shuts down gracefully)"""
    config = get_config()
    storage = get_storage(config)
    docker_service = get_docker_service()
    workspaces, containers = build_components(config, docker_service)

    recovered = recover_on_startup(storage, workspaces, containers)
    if recovered:
        click.echo(f"Marked {len(recovered)} stale task(s) as failed")

    scheduler = build_scheduler(config, storage, workspaces, containers, max_concurrent)
    click.echo(f"Serving tasks with up to {scheduler.max_concurrent} running at once. Press Ctrl-C to stop.")
    asyncio.run(_serve(scheduler, EventRenderer(show_task_id=True)))
    click.echo("Shut down.")
