"""Login command for Claude Orchestrator."""

import subprocess
import sys

import click

from ...core.constants import CONTAINER_HOME
from ..helpers import build_components, get_config, get_docker_service


@click.command()
def login():
    """Open a shell in the worker image to authenticate Claude.

    Credentials are written to the orchestrator's auth directory and copied
    into every task container.
    """
    config = get_config()
    _, containers = build_components(config, get_docker_service())

    try:
        containers.ensure_image()
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not config.claude_json.exists():
        config.claude_json.write_text("{}")

    docker_cmd = [
        'docker', 'run', '--rm', '-it',
        '-e', f'HOME={CONTAINER_HOME}',
        '-v', f'{config.auth_dir}:{CONTAINER_HOME}/.claude:rw',
        '-v', f'{config.claude_json}:{CONTAINER_HOME}/.claude.json:rw',
        '--entrypoint', '/bin/bash',
        config.image_name,
    ]

    click.echo("Opening bash shell for Claude authentication...")
    click.echo("Run 'claude' and log in, then exit (Ctrl+D or 'exit').")

    try:
        subprocess.run(docker_cmd, check=False)
    except OSError as e:
        click.echo(f"Error starting container: {e}", err=True)
        sys.exit(1)
