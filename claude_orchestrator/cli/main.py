"""Main CLI entry point for Claude Orchestrator."""

import logging

import click

from .commands.abort import abort
from .commands.cleanup import cleanup
from .commands.delete import delete
from .commands.list_tasks import list_tasks
from .commands.login import login
from .commands.run import run
from .commands.serve import serve
from .commands.show import show
from .commands.submit import submit


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """Claude Orchestrator - Run autonomous Claude tasks in isolated Docker containers"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


# Register commands
cli.add_command(run)
cli.add_command(submit)
cli.add_command(serve)
cli.add_command(list_tasks)
cli.add_command(show)
cli.add_command(delete)
cli.add_command(abort)
cli.add_command(cleanup)
cli.add_command(login)


if __name__ == '__main__':
    cli()
