"""Task data models."""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field

from ..core.constants import (
    DEFAULT_MAX_BUDGET_USD,
    DEFAULT_MAX_HOURS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TURNS_PER_ITERATION,
)
from .checks import CompletionCheck


class TaskStatus(str, Enum):
    """Task status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    TaskStatus.COMPLETED,
    TaskStatus.FAILED,
    TaskStatus.CANCELLED,
    TaskStatus.BLOCKED,
})


class TaskCreateInput(BaseModel):
    """User-supplied fields for a new task."""
    prompt: str = Field(min_length=1)
    project_dir: str
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, gt=0)
    max_hours: float = Field(default=DEFAULT_MAX_HOURS, gt=0)
    max_budget_usd: float = Field(default=DEFAULT_MAX_BUDGET_USD, gt=0)
    turns_per_iteration: int = Field(default=DEFAULT_TURNS_PER_ITERATION, gt=0)
    completion_checks: List[CompletionCheck] = Field(default_factory=list)
    fresh_context: bool = False


class Task(BaseModel):
    """Task record owned by the task store."""
    id: str
    prompt: str
    project_dir: str
    workspace_path: Optional[str] = None  # Assigned at provisioning
    status: TaskStatus = TaskStatus.PENDING
    container_id: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    exit_code: Optional[int] = None
    cost_usd: float = 0.0
    iteration: int = 0
    log_dir: str
    error: Optional[str] = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_hours: float = DEFAULT_MAX_HOURS
    max_budget_usd: float = DEFAULT_MAX_BUDGET_USD
    turns_per_iteration: int = DEFAULT_TURNS_PER_ITERATION
    completion_checks: List[CompletionCheck] = Field(default_factory=list)
    fresh_context: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class TaskStore(Protocol):
    """Storage contract consumed by the scheduler and runner."""

    def create(self, task_input: TaskCreateInput) -> Task: ...

    def get(self, task_id: str) -> Optional[Task]: ...

    def update(self, task_id: str, **fields) -> Task: ...

    def delete(self, task_id: str) -> None: ...

    def list(self, status: Optional[TaskStatus] = None) -> List[Task]: ...
