"""Configuration models for Claude Orchestrator."""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.constants import (
    AUTH_DIR_NAME,
    CLAUDE_JSON_NAME,
    CONTAINER_STOP_TIMEOUT,
    DEFAULT_CPUS,
    DEFAULT_HOME_DIR_NAME,
    DEFAULT_MAX_BUDGET_USD,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_MAX_HOURS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MEMORY_MB,
    DEFAULT_TURNS_PER_ITERATION,
    EVENTS_FILE_NAME,
    HOME_ENV_VAR,
    IMAGE_NAME,
    LOGS_DIR_NAME,
    MCP_CONFIG_FILE_NAME,
    PROGRESS_FILE_NAME,
    SHUTDOWN_GRACE,
    SIGNAL_FILE_NAME,
    STATE_FILE_NAME,
    TAILER_DRAIN_GRACE,
    TAILER_POLL_INTERVAL,
    TASKS_DIR_NAME,
    WORKER_STATE_DIR,
    WORKSPACES_DIR_NAME,
)
from .checks import CompletionCheck


def default_home_dir() -> Path:
    """Home directory from the environment, or ``~/.claude-orchestrator``."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / DEFAULT_HOME_DIR_NAME


class OrchestratorConfig(BaseModel):
    """Host-side configuration."""
    home_dir: Path = Field(default_factory=default_home_dir)
    max_concurrent: int = Field(default=DEFAULT_MAX_CONCURRENT, gt=0)
    memory_mb: int = Field(default=DEFAULT_MEMORY_MB, gt=0)
    cpus: float = Field(default=DEFAULT_CPUS, gt=0)
    image_name: str = IMAGE_NAME
    image_context_dir: Optional[Path] = None
    stop_timeout_seconds: int = CONTAINER_STOP_TIMEOUT
    poll_interval_seconds: float = TAILER_POLL_INTERVAL
    drain_grace_seconds: float = TAILER_DRAIN_GRACE
    shutdown_grace_seconds: float = SHUTDOWN_GRACE

    @property
    def logs_dir(self) -> Path:
        return self.home_dir / LOGS_DIR_NAME

    @property
    def workspaces_dir(self) -> Path:
        return self.home_dir / WORKSPACES_DIR_NAME

    @property
    def auth_dir(self) -> Path:
        return self.home_dir / AUTH_DIR_NAME

    @property
    def tasks_dir(self) -> Path:
        return self.home_dir / TASKS_DIR_NAME

    @property
    def claude_json(self) -> Path:
        return self.home_dir / CLAUDE_JSON_NAME

    def task_log_dir(self, task_id: str) -> Path:
        return self.logs_dir / task_id

    def task_events_file(self, task_id: str) -> Path:
        return self.task_log_dir(task_id) / EVENTS_FILE_NAME

    def workspace_path(self, task_id: str) -> Path:
        return self.workspaces_dir / task_id

    def ensure_dirs(self) -> None:
        """Create the host directory tree."""
        for directory in (self.logs_dir, self.workspaces_dir, self.auth_dir, self.tasks_dir):
            directory.mkdir(parents=True, exist_ok=True)


class WorkerConfig(BaseModel):
    """Worker-side configuration, built from the container command line.

    Every path the iteration loop touches is derived here rather than from
    the process working directory.
    """
    prompt: str = Field(min_length=1)
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, gt=0)
    max_hours: float = Field(default=DEFAULT_MAX_HOURS, gt=0)
    max_budget_usd: float = Field(default=DEFAULT_MAX_BUDGET_USD, gt=0)
    turns_per_iteration: int = Field(default=DEFAULT_TURNS_PER_ITERATION, gt=0)
    log_dir: Path
    workspace_dir: Path
    completion_checks: List[CompletionCheck] = Field(default_factory=list)
    fresh_context: bool = False

    @property
    def state_file(self) -> Path:
        return self.log_dir / STATE_FILE_NAME

    @property
    def events_file(self) -> Path:
        return self.log_dir / EVENTS_FILE_NAME

    @property
    def worker_state_dir(self) -> Path:
        return self.workspace_dir / WORKER_STATE_DIR

    @property
    def signal_file(self) -> Path:
        return self.worker_state_dir / SIGNAL_FILE_NAME

    @property
    def progress_file(self) -> Path:
        return self.worker_state_dir / PROGRESS_FILE_NAME

    @property
    def mcp_config_file(self) -> Path:
        return self.workspace_dir / MCP_CONFIG_FILE_NAME
