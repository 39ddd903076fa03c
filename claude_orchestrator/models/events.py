"""Worker event models written to and read from the event log."""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class IterationStartEvent(_Event):
    type: Literal["iteration:start"] = "iteration:start"
    iteration: int
    max_iterations: int
    fresh: bool


class IterationEndEvent(_Event):
    type: Literal["iteration:end"] = "iteration:end"
    iteration: int
    cost_usd: float
    duration_ms: int
    num_turns: int


class MessageEvent(_Event):
    type: Literal["message"] = "message"
    source: Literal["agent", "tool", "system"]
    text: str


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    iteration: int
    error: str
    backoff_ms: Optional[int] = None


class SignalEvent(_Event):
    type: Literal["signal"] = "signal"
    signal: str


class CompletionEvent(_Event):
    type: Literal["completion"] = "completion"
    all_passed: bool
    summary: str


class StagnationEvent(_Event):
    type: Literal["stagnation"] = "stagnation"
    stagnant_count: int
    threshold: int


class TimeoutEvent(_Event):
    type: Literal["timeout"] = "timeout"


class DoneEvent(_Event):
    type: Literal["done"] = "done"
    status: str
    iterations: int
    total_cost_usd: float


WorkerEvent = Annotated[
    Union[
        IterationStartEvent,
        IterationEndEvent,
        MessageEvent,
        ErrorEvent,
        SignalEvent,
        CompletionEvent,
        StagnationEvent,
        TimeoutEvent,
        DoneEvent,
    ],
    Field(discriminator="type"),
]


class WorkerEventRecord(BaseModel):
    """One line of the event log."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    event: WorkerEvent
