"""Cleanup command for Claude Orchestrator."""

import click

from ...core.startup import cleanup_orphans, recover_stale_tasks
from ..helpers import build_components, get_config, get_docker_service, get_storage


@click.command()
def cleanup():
    """Fail stale tasks and remove orphaned containers and workspaces"""
    config = get_config()
    storage = get_storage(config)
    docker_service = get_docker_service()
    workspaces, containers = build_components(config, docker_service)

    recovered = recover_stale_tasks(storage, containers)
    removed_containers, removed_workspaces = cleanup_orphans(storage, workspaces, containers)

    click.echo(f"Stale tasks marked failed: {len(recovered)}")
    click.echo(f"Orphaned containers removed: {removed_containers}")
    click.echo(f"Orphaned workspaces removed: {removed_workspaces}")
