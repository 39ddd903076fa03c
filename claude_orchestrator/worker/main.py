"""Worker entry point, run inside the task container."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from ..core.constants import (
    CONTAINER_LOG_DIR,
    CONTAINER_WORKSPACE,
    DEFAULT_MAX_BUDGET_USD,
    DEFAULT_MAX_HOURS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TURNS_PER_ITERATION,
)
from ..core.event_log import EventLogWriter
from ..models.checks import parse_completion_checks
from ..models.config import WorkerConfig
from .agent import Agent, ClaudeAgent
from .loop import IterationLoop, exit_code_for

logger = logging.getLogger(__name__)


def _parse_checks(ctx, param, value):
    if not value:
        return []
    try:
        return parse_completion_checks(value)
    except ValidationError as e:
        raise click.BadParameter(f"must be a valid JSON array of completion checks: {e}") from e


async def run_worker(config: WorkerConfig, agent: Agent) -> int:
    """Run the iteration loop with signal handling; return the process exit code.

    SIGUSR1 aborts the current agent invocation, SIGTERM ends the loop.
    """
    iteration_loop = IterationLoop(config, agent, EventLogWriter(config.events_file))
    loop = asyncio.get_running_loop()
    main_task = asyncio.create_task(iteration_loop.run())

    loop.add_signal_handler(signal.SIGUSR1, iteration_loop.abort)
    loop.add_signal_handler(signal.SIGTERM, main_task.cancel)
    try:
        state = await main_task
    finally:
        loop.remove_signal_handler(signal.SIGUSR1)
        loop.remove_signal_handler(signal.SIGTERM)

    logger.info(f"Finished with status {state.status.value} after {state.iteration} iteration(s)")
    return exit_code_for(state.status)


@click.command()
@click.option('--prompt', required=True, help='Task prompt')
@click.option('--max-iterations', type=click.IntRange(min=1), default=DEFAULT_MAX_ITERATIONS, show_default=True)
@click.option('--max-hours', type=click.FloatRange(min=0, min_open=True), default=DEFAULT_MAX_HOURS, show_default=True)
@click.option('--max-budget', type=click.FloatRange(min=0, min_open=True), default=DEFAULT_MAX_BUDGET_USD,
              show_default=True, help='Maximum spend in USD')
@click.option('--turns-per-iteration', type=click.IntRange(min=1), default=DEFAULT_TURNS_PER_ITERATION,
              show_default=True)
@click.option('--log-dir', type=click.Path(file_okay=False, path_type=Path), default=CONTAINER_LOG_DIR,
              show_default=True)
@click.option('--workspace', type=click.Path(file_okay=False, path_type=Path), default=CONTAINER_WORKSPACE,
              show_default=True)
@click.option('--completion-checks', callback=_parse_checks, default=None,
              help='JSON array of completion checks')
@click.option('--fresh-context', is_flag=True, help='Start a fresh agent session every iteration')
def main(prompt, max_iterations, max_hours, max_budget, turns_per_iteration, log_dir, workspace,
         completion_checks, fresh_context):
    """Run one task's iteration loop to completion."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    if not prompt.strip():
        raise click.BadParameter("must not be empty", param_hint="'--prompt'")

    config = WorkerConfig(
        prompt=prompt,
        max_iterations=max_iterations,
        max_hours=max_hours,
        max_budget_usd=max_budget,
        turns_per_iteration=turns_per_iteration,
        log_dir=log_dir,
        workspace_dir=workspace,
        completion_checks=completion_checks,
        fresh_context=fresh_context,
    )

    logger.info(f"Starting: {prompt[:80]}")
    logger.info(
        f"Config: iterations={max_iterations}, budget=${max_budget}, turns={turns_per_iteration}"
    )

    sys.exit(asyncio.run(run_worker(config, ClaudeAgent())))


if __name__ == '__main__':
    main()
