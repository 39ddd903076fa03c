"""Show task command."""

import click
from rich.console import Console

from ...core.event_log import read_event_log
from ..helpers import format_status, get_config, get_storage, print_table, resolve_task_id
from ..helpers.event_renderer import format_event


def _fmt_time(value) -> str:
    return value.astimezone().strftime('%Y-%m-%d %H:%M:%S') if value else ""


@click.command()
@click.argument('task_id')
@click.option('--events', '-e', 'event_count', type=int, default=20, show_default=True,
              help='Number of recent events to show (0 for none)')
def show(task_id, event_count):
    """Show detailed information about a task"""
    config = get_config()
    storage = get_storage(config)
    task = resolve_task_id(storage, task_id)

    click.echo("\n" + "=" * 80)
    click.echo(f"Task Details: {task.id}")
    click.echo("=" * 80)

    click.echo(f"\n   Status: {format_status(task.status)}")
    click.echo(f"   Project: {task.project_dir}")
    click.echo(f"   Created: {_fmt_time(task.created_at)}")
    if task.started_at:
        click.echo(f"   Started: {_fmt_time(task.started_at)}")
    if task.finished_at:
        click.echo(f"   Finished: {_fmt_time(task.finished_at)}")
    if task.exit_code is not None:
        click.echo(f"   Exit code: {task.exit_code}")
    if task.error:
        click.echo(f"   Error: {click.style(task.error, fg='red')}")
    click.echo(f"   Logs: {task.log_dir}")

    click.echo("\nLimits:")
    print_table(
        ["", "USED", "LIMIT"],
        [
            ["Iterations", task.iteration, task.max_iterations],
            ["Cost (USD)", f"{task.cost_usd:.2f}", f"{task.max_budget_usd:.2f}"],
            ["Hours", "", task.max_hours],
            ["Turns / iteration", "", task.turns_per_iteration],
        ],
    )

    if task.completion_checks:
        click.echo("\nCompletion checks:")
        for check in task.completion_checks:
            click.echo(f"   - {check.model_dump_json()}")

    click.echo("\nPrompt:")
    click.echo(task.prompt)

    if event_count > 0:
        records = read_event_log(config.task_events_file(task.id))[-event_count:]
        if records:
            click.echo(f"\nRecent events ({len(records)}):")
            console = Console()
            for record in records:
                line = format_event(record.event)
                if line:
                    stamp = record.timestamp.astimezone().strftime('%H:%M:%S')
                    console.print(f"[dim]{stamp}[/dim] {line}", highlight=False)
