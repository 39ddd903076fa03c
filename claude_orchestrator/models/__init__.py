"""Models for Claude Orchestrator."""

from .checks import (
    CommandCheck,
    CompletionCheck,
    FileExistsCheck,
    GlobExistsCheck,
    ReviewCheck,
    dump_completion_checks,
    parse_completion_checks,
)
from .config import OrchestratorConfig, WorkerConfig
from .events import (
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
    WorkerEventRecord,
)
from .state import IterationError, IterationState, IterationStatus
from .task import TERMINAL_STATUSES, Task, TaskCreateInput, TaskStatus, TaskStore

__all__ = [
    'CommandCheck',
    'CompletionCheck',
    'FileExistsCheck',
    'GlobExistsCheck',
    'ReviewCheck',
    'dump_completion_checks',
    'parse_completion_checks',
    'OrchestratorConfig',
    'WorkerConfig',
    'CompletionEvent',
    'DoneEvent',
    'ErrorEvent',
    'IterationEndEvent',
    'IterationStartEvent',
    'MessageEvent',
    'SignalEvent',
    'StagnationEvent',
    'TimeoutEvent',
    'WorkerEvent',
    'WorkerEventRecord',
    'IterationError',
    'IterationState',
    'IterationStatus',
    'TERMINAL_STATUSES',
    'Task',
    'TaskCreateInput',
    'TaskStatus',
    'TaskStore',
]
