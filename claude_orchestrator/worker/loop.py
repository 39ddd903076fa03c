"""Worker-side iteration loop.

Drives one task through repeated bounded agent invocations until it is
completed, blocked, stagnant, out of time, out of budget or out of
iterations. Every transition is persisted to ``state.json`` so a restarted
worker resumes where the previous one stopped, and every observable step is
appended to the event log. The loop always emits exactly one ``done`` event.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional

from ..core.constants import (
    BACKOFF_BASE_SECONDS,
    BACKOFF_MAX_SECONDS,
    CONTINUE_PROMPT,
    EXIT_BLOCKED,
    EXIT_COMPLETED,
    EXIT_FAILED,
    FORK_COMPACTION_THRESHOLD,
    FRESH_PROMPT_SUFFIX,
    SIGNAL_BLOCKED,
    SIGNAL_COMPLETE,
    STAGNATION_THRESHOLD,
    SYSTEM_PROMPT_APPEND,
)
from ..core.event_log import EventLogWriter
from ..models.config import WorkerConfig
from ..models.events import (
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
from ..models.state import IterationError, IterationState, IterationStatus
from .agent import (
    Agent,
    AgentInit,
    AgentMessage,
    AgentRequest,
    AgentResult,
    AgentText,
    AgentToolUse,
    load_mcp_servers,
)
from .completion import run_completion_checks
from .hooks import (
    build_compact_hook,
    build_stop_hook,
    build_tool_policy,
    clear_signal_file,
    read_signal_file,
)
from .state_store import load_state, save_state, update_stagnation

logger = logging.getLogger(__name__)

TEXT_LIMIT = 200
TOOL_INPUT_LIMIT = 120
RESULT_TEXT_LIMIT = 500


class IterationAborted(Exception):
    """The in-flight agent invocation was interrupted on request."""


def exit_code_for(status: IterationStatus) -> int:
    if status == IterationStatus.COMPLETED:
        return EXIT_COMPLETED
    if status == IterationStatus.BLOCKED:
        return EXIT_BLOCKED
    return EXIT_FAILED


def backoff_seconds(error_count: int) -> float:
    """1s, 2s, 4s, ... capped at 30s for the n-th cumulative error."""
    return min(BACKOFF_MAX_SECONDS, BACKOFF_BASE_SECONDS * 2 ** max(error_count - 1, 0))


def project_message(message: AgentMessage) -> List[MessageEvent]:
    """Turn one agent message into the message events shown to observers."""
    if isinstance(message, AgentText):
        text = message.text[:TEXT_LIMIT].replace("\n", " ")
        return [MessageEvent(source="agent", text=text)]
    if isinstance(message, AgentToolUse):
        tool_input = json.dumps(message.input, default=str)[:TOOL_INPUT_LIMIT]
        return [MessageEvent(source="tool", text=f"{message.name}: {tool_input}")]
    if isinstance(message, AgentInit):
        return [MessageEvent(source="system", text=f"Init: model={message.model or 'unknown'}")]
    if isinstance(message, AgentResult):
        events = [MessageEvent(
            source="system",
            text=f"Result: {message.num_turns} turns, ${message.cost_usd:.2f}, subtype={message.subtype}",
        )]
        if message.result_text:
            events.append(MessageEvent(
                source="system",
                text=f"Result text: {message.result_text[:RESULT_TEXT_LIMIT]}",
            ))
        return events
    return []


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IterationLoop:
    """Runs the agent loop for one task inside the worker process."""

    def __init__(
        self,
        config: WorkerConfig,
        agent: Agent,
        log: EventLogWriter,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.agent = agent
        self.log = log
        self.clock = clock
        self.sleep = sleep
        self.state: Optional[IterationState] = None
        self._current: Optional[asyncio.Task] = None
        self._abort_requested = False

    def emit(self, event: WorkerEvent) -> None:
        self.log.emit(event)

    def abort(self) -> bool:
        """Interrupt the current agent invocation without ending the loop.

        Returns:
            True if an invocation was in flight
        """
        if self._current is None or self._current.done():
            return False
        self._abort_requested = True
        self._current.cancel()
        return True

    async def run(self) -> IterationState:
        """Run to a terminal status and emit the final ``done`` event."""
        state = load_state(self.config.state_file)
        self.state = state

        try:
            self.config.worker_state_dir.mkdir(parents=True, exist_ok=True)
            await self._loop(state)
        except asyncio.CancelledError:
            logger.warning("Iteration loop cancelled")
            self._record_fatal(state, "Worker terminated")
        except Exception as e:
            logger.exception("Iteration loop crashed")
            self._record_fatal(state, f"Fatal: {e}")

        self.emit(DoneEvent(
            status=state.status.value,
            iterations=state.iteration,
            total_cost_usd=state.total_cost_usd,
        ))
        return state

    def _record_fatal(self, state: IterationState, message: str) -> None:
        self.emit(ErrorEvent(iteration=state.iteration, error=message))
        state.status = IterationStatus.FAILED
        try:
            save_state(self.config.state_file, state)
        except OSError as e:
            logger.error(f"Could not persist final state: {e}")

    def _timed_out(self, state: IterationState) -> bool:
        deadline = state.started_at + timedelta(hours=self.config.max_hours)
        return self.clock() >= deadline

    def _budget_spent(self, state: IterationState) -> bool:
        return state.total_cost_usd >= self.config.max_budget_usd

    def _can_continue(self, state: IterationState) -> bool:
        return (
            state.iteration < self.config.max_iterations
            and not self._timed_out(state)
            and not self._budget_spent(state)
        )

    def _save(self, state: IterationState) -> None:
        save_state(self.config.state_file, state)

    def _build_request(self, state: IterationState, fresh: bool, fork: bool) -> AgentRequest:
        prompt = self.config.prompt + FRESH_PROMPT_SUFFIX if fresh else CONTINUE_PROMPT
        return AgentRequest(
            prompt=prompt,
            cwd=self.config.workspace_dir,
            max_turns=self.config.turns_per_iteration,
            max_budget_usd=max(self.config.max_budget_usd - state.total_cost_usd, 0.0),
            resume=None if fresh else state.session_id,
            fork_session=fork,
            system_prompt_append=SYSTEM_PROMPT_APPEND,
            tool_policy=build_tool_policy([self.config.state_file]),
            stop_hook=build_stop_hook(self.config.signal_file),
            on_compact=build_compact_hook(state),
            mcp_servers=load_mcp_servers(self.config.mcp_config_file),
        )

    async def _consume(self, request: AgentRequest, state: IterationState) -> AgentResult:
        result = AgentResult(session_id=state.session_id)
        async for message in self.agent.stream(request):
            for event in project_message(message):
                self.emit(event)
            if isinstance(message, AgentInit) and message.session_id:
                state.session_id = message.session_id
            elif isinstance(message, AgentResult):
                result = message
                if message.session_id:
                    state.session_id = message.session_id
        return result

    async def _invoke(self, request: AgentRequest, state: IterationState) -> AgentResult:
        self._current = asyncio.create_task(self._consume(request, state))
        try:
            return await self._current
        except asyncio.CancelledError:
            if self._abort_requested:
                self._abort_requested = False
                raise IterationAborted() from None
            raise
        finally:
            self._current = None

    async def _loop(self, state: IterationState) -> None:
        if state.status != IterationStatus.RUNNING:
            logger.info(f"State already terminal ({state.status.value}), nothing to do")
            return

        signal_file = self.config.signal_file

        while self._can_continue(state):
            state.iteration += 1
            state.status = IterationStatus.RUNNING
            self._save(state)
            clear_signal_file(signal_file)

            fresh = self.config.fresh_context or state.session_id is None
            self.emit(IterationStartEvent(
                iteration=state.iteration,
                max_iterations=self.config.max_iterations,
                fresh=fresh,
            ))

            fork = not fresh and state.compactions > FORK_COMPACTION_THRESHOLD
            if fork:
                logger.info(f"Forking session after {state.compactions} compactions")
                state.compactions = 0

            request = self._build_request(state, fresh, fork)
            started = time.monotonic()
            aborted = False
            cost = 0.0
            turns = 0
            try:
                result = await self._invoke(request, state)
                cost = result.cost_usd
                turns = result.num_turns
            except IterationAborted:
                logger.info(f"Iteration {state.iteration} aborted")
                aborted = True
            except Exception as e:
                error = str(e) or type(e).__name__
                state.errors.append(IterationError(iteration=state.iteration, error=error))
                state.session_id = None
                self._save(state)

                delay = backoff_seconds(len(state.errors))
                self.emit(ErrorEvent(
                    iteration=state.iteration,
                    error=error,
                    backoff_ms=int(delay * 1000),
                ))
                logger.warning(f"Iteration {state.iteration} failed: {error}; retrying in {delay:.0f}s")
                await self.sleep(delay)
                continue

            state.total_cost_usd += cost
            self.emit(IterationEndEvent(
                iteration=state.iteration,
                cost_usd=cost,
                duration_ms=int((time.monotonic() - started) * 1000),
                num_turns=turns,
            ))

            if aborted:
                self._save(state)
                continue

            signal = read_signal_file(signal_file)

            if signal == SIGNAL_COMPLETE:
                self.emit(SignalEvent(signal=signal))
                if not self.config.completion_checks:
                    state.status = IterationStatus.COMPLETED
                    self._save(state)
                    break
                report = await run_completion_checks(
                    self.config.completion_checks,
                    self.config.workspace_dir,
                    self.agent,
                    self.config.prompt,
                )
                self.emit(CompletionEvent(all_passed=report.all_passed, summary=report.summary))
                if report.all_passed:
                    state.status = IterationStatus.COMPLETED
                    self._save(state)
                    break
                clear_signal_file(signal_file)

            if signal == SIGNAL_BLOCKED:
                self.emit(SignalEvent(signal=signal))
                state.status = IterationStatus.BLOCKED
                self._save(state)
                break

            if update_stagnation(state, self.config.progress_file) >= STAGNATION_THRESHOLD:
                self.emit(StagnationEvent(
                    stagnant_count=state.stagnant_count,
                    threshold=STAGNATION_THRESHOLD,
                ))
                state.status = IterationStatus.FAILED
                self._save(state)
                break

            self._save(state)

        if state.status == IterationStatus.RUNNING:
            if self._timed_out(state):
                self.emit(TimeoutEvent())
            state.status = IterationStatus.FAILED
            self._save(state)
