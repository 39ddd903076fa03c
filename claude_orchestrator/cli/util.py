"""Shared task options for CLI commands that create tasks."""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from pydantic import ValidationError

from claude_orchestrator.core.task_file import load_task_file
from claude_orchestrator.models.checks import CommandCheck
from claude_orchestrator.models.task import TaskCreateInput
from claude_orchestrator.services.exceptions import TaskFileError


def task_options(f):
    """Options shared by commands that define a new task."""
    options = [
        click.option('--file', '-f', 'task_file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     help='Task file with YAML front matter; the body is the prompt'),
        click.option('--project-dir', '-p', type=click.Path(exists=True, file_okay=False, path_type=Path),
                     default='.', show_default=True, help='Git repository to work on'),
        click.option('--max-iterations', type=int, help='Maximum agent iterations'),
        click.option('--max-hours', type=float, help='Wall-clock limit in hours'),
        click.option('--max-budget', type=float, help='Spend limit in USD'),
        click.option('--turns-per-iteration', type=int, help='Agent turns per iteration'),
        click.option('--check', 'check_cmds', multiple=True,
                     help='Shell command that must exit 0 before the task counts as complete (repeatable)'),
        click.option('--fresh-context', is_flag=True, help='Start a fresh agent session every iteration'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_task_input(
    prompt: Optional[str],
    task_file: Optional[Path],
    project_dir: Path,
    max_iterations: Optional[int],
    max_hours: Optional[float],
    max_budget: Optional[float],
    turns_per_iteration: Optional[int],
    check_cmds: Tuple[str, ...],
    fresh_context: bool,
) -> TaskCreateInput:
    """Combine a prompt or task file with command-line overrides.

    Note:
        Exits with error message on invalid input.
    """
    project_dir = Path(project_dir).resolve()

    if task_file and prompt:
        click.echo("Error: Pass either a prompt or --file, not both.", err=True)
        sys.exit(1)

    try:
        if task_file:
            base = load_task_file(task_file, project_dir)
        elif prompt:
            base = TaskCreateInput(prompt=prompt, project_dir=str(project_dir))
        else:
            click.echo("Error: A prompt or --file is required.", err=True)
            sys.exit(1)
    except (TaskFileError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    fields = base.model_dump()
    overrides = {
        'max_iterations': max_iterations,
        'max_hours': max_hours,
        'max_budget_usd': max_budget,
        'turns_per_iteration': turns_per_iteration,
    }
    fields.update({key: value for key, value in overrides.items() if value is not None})
    fields['completion_checks'] += [CommandCheck(cmd=cmd).model_dump() for cmd in check_cmds]
    if fresh_context:
        fields['fresh_context'] = True

    try:
        return TaskCreateInput.model_validate(fields)
    except ValidationError as e:
        click.echo(f"Error: Invalid task settings: {e}", err=True)
        sys.exit(1)
