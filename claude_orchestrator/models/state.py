"""Persisted iteration state for one task's agent loop."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class IterationStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    FAILED = "failed"


class IterationError(BaseModel):
    iteration: int
    error: str


class IterationState(BaseModel):
    """Resumable progress record, stored as ``state.json`` in the task log dir."""
    session_id: Optional[str] = None  # None forces a fresh agent context
    iteration: int = 0
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: IterationStatus = IterationStatus.RUNNING
    compactions: int = 0
    errors: List[IterationError] = Field(default_factory=list)
    progress_hash: Optional[str] = None
    stagnant_count: int = 0
    total_cost_usd: float = 0.0
