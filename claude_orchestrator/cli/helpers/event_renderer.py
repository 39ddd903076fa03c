"""Plain console rendering of worker events and task updates."""

from typing import Dict, Optional

from rich.console import Console
from rich.markup import escape

from claude_orchestrator.models.events import (
    CompletionEvent,
    DoneEvent,
    ErrorEvent,
    IterationEndEvent,
    IterationStartEvent,
    MessageEvent,
    SignalEvent,
    StagnationEvent,
    TimeoutEvent,
    WorkerEvent,
)
from claude_orchestrator.models.task import Task, TaskStatus

SOURCE_STYLES = {
    "agent": "white",
    "tool": "cyan",
    "system": "dim",
}


def format_event(event: WorkerEvent) -> Optional[str]:
    """One line of rich markup for a worker event."""
    if isinstance(event, IterationStartEvent):
        mode = "fresh" if event.fresh else "resumed"
        return f"[bold blue]Iteration {event.iteration}/{event.max_iterations}[/bold blue] ({mode})"
    if isinstance(event, IterationEndEvent):
        seconds = event.duration_ms / 1000
        return (f"[blue]Iteration {event.iteration} done[/blue]: "
                f"{event.num_turns} turns, ${event.cost_usd:.2f}, {seconds:.0f}s")
    if isinstance(event, MessageEvent):
        style = SOURCE_STYLES.get(event.source, "white")
        return f"[{style}]{event.source}: {escape(event.text)}[/{style}]"
    if isinstance(event, ErrorEvent):
        line = f"[red]Error (iteration {event.iteration}): {escape(event.error)}[/red]"
        if event.backoff_ms is not None:
            line += f" [dim]retrying in {event.backoff_ms / 1000:.0f}s[/dim]"
        return line
    if isinstance(event, SignalEvent):
        return f"[magenta]Signal: {event.signal}[/magenta]"
    if isinstance(event, CompletionEvent):
        verdict = "[green]passed[/green]" if event.all_passed else "[red]failed[/red]"
        return f"Completion checks {verdict}\n{escape(event.summary)}"
    if isinstance(event, StagnationEvent):
        return (f"[yellow]No progress for {event.stagnant_count} iterations "
                f"(threshold {event.threshold})[/yellow]")
    if isinstance(event, TimeoutEvent):
        return "[yellow]Time limit reached[/yellow]"
    if isinstance(event, DoneEvent):
        return (f"[bold]Done[/bold]: {event.status} after {event.iterations} iteration(s), "
                f"${event.total_cost_usd:.2f}")
    return None


class EventRenderer:
    """Prints each event and each task status change as it arrives."""

    def __init__(self, console: Optional[Console] = None, show_task_id: bool = False):
        self.console = console or Console()
        self.show_task_id = show_task_id
        self._last_status: Dict[str, TaskStatus] = {}

    def _prefix(self, task_id: str) -> str:
        return f"[dim]{task_id}[/dim] " if self.show_task_id else ""

    def on_event(self, task_id: str, event: WorkerEvent) -> None:
        line = format_event(event)
        if line:
            self.console.print(self._prefix(task_id) + line, highlight=False)

    def on_task_update(self, task: Task) -> None:
        if self._last_status.get(task.id) == task.status:
            return
        self._last_status[task.id] = task.status
        line = f"Task {task.id} is [bold]{task.status.value}[/bold]"
        if task.error and task.is_terminal:
            line += f": {escape(task.error)}"
        self.console.print(line, highlight=False)
