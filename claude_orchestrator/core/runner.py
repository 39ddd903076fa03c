"""Host-side coordinator for one task's full lifecycle."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..models.config import OrchestratorConfig
from ..models.events import DoneEvent, IterationEndEvent, MessageEvent, WorkerEvent, WorkerEventRecord
from ..models.task import Task, TaskStatus, TaskStore
from ..services.exceptions import TaskNotFoundError
from .constants import EXIT_BLOCKED, EXIT_COMPLETED
from .container_manager import TaskContainerManager
from .event_log import EventTailer
from .workspace import WorkspaceProvider

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, WorkerEvent], None]
TaskUpdateCallback = Callable[[Task], None]


class _Cancelled(Exception):
    """Raised between runner steps once cancellation was requested."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskRunner:
    """Drives exactly one task through workspace, container, results and cleanup.

    Steps run in order and any failure short-circuits to cleanup: provision
    the workspace, ensure the image, create the container, mark the task
    running, copy credentials, start tailing the event log, start and wait on
    the container, drain the tailer, record the outcome, integrate results as
    a branch, then remove the container and release the workspace.

    Worker events are forwarded to ``on_event`` and folded into the task's
    cost and iteration counters while the container runs.
    """

    def __init__(
        self,
        store: TaskStore,
        workspaces: WorkspaceProvider,
        containers: TaskContainerManager,
        config: OrchestratorConfig,
        on_event: Optional[EventCallback] = None,
        on_task_update: Optional[TaskUpdateCallback] = None,
    ):
        self.store = store
        self.workspaces = workspaces
        self.containers = containers
        self.config = config
        self.on_event = on_event
        self.on_task_update = on_task_update
        self.cancel_requested = False
        self._done_status: Optional[str] = None

    def request_cancel(self) -> None:
        """Ask the runner to finish as ``cancelled`` unless it already reached an outcome."""
        self.cancel_requested = True

    def _check_cancelled(self) -> None:
        if self.cancel_requested:
            raise _Cancelled()

    def _notify(self, task: Optional[Task]) -> None:
        if task is not None and self.on_task_update is not None:
            self.on_task_update(task)

    def _update(self, task_id: str, **fields) -> Task:
        task = self.store.update(task_id, **fields)
        self._notify(task)
        return task

    def _finish(self, task_id: str, status: TaskStatus, **fields) -> None:
        """Record a terminal status unless one is already recorded."""
        current = self.store.get(task_id)
        if current is None or current.is_terminal:
            return
        self._update(task_id, status=status, finished_at=_now(), **fields)

    def _emit(self, task_id: str, event: WorkerEvent) -> None:
        if self.on_event is not None:
            self.on_event(task_id, event)

    def _handle_record(self, task_id: str, record: WorkerEventRecord) -> None:
        event = record.event
        self._emit(task_id, event)
        self._project(task_id, event)

    def _project(self, task_id: str, event: WorkerEvent) -> None:
        """Fold worker progress into the stored task."""
        if not isinstance(event, (IterationEndEvent, DoneEvent)):
            return
        current = self.store.get(task_id)
        if current is None or current.is_terminal:
            return

        if isinstance(event, IterationEndEvent):
            self._update(
                task_id,
                iteration=event.iteration,
                cost_usd=current.cost_usd + event.cost_usd,
            )
        else:
            self._done_status = event.status
            self._update(
                task_id,
                iteration=event.iterations,
                cost_usd=max(current.cost_usd, event.total_cost_usd),
            )

    def _outcome(self, exit_code: int) -> TaskStatus:
        if exit_code == EXIT_COMPLETED:
            return TaskStatus.COMPLETED
        if exit_code == EXIT_BLOCKED and self._done_status == TaskStatus.BLOCKED.value:
            return TaskStatus.BLOCKED
        if self.cancel_requested:
            return TaskStatus.CANCELLED
        return TaskStatus.FAILED

    async def run(self, task_id: str) -> Task:
        """Run the task to a terminal status and return the stored record.

        Raises:
            TaskNotFoundError: If the task is not in the store
        """
        task = self.store.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task '{task_id}' not found")
        self._notify(task)

        workspace_path: Optional[Path] = None
        container_id: Optional[str] = None
        source_path = Path(task.project_dir)

        try:
            self._check_cancelled()
            workspace_path = await asyncio.to_thread(self.workspaces.provision, source_path, task.id)
            self._update(task.id, workspace_path=str(workspace_path))

            self._check_cancelled()
            await asyncio.to_thread(self.containers.ensure_image)

            container = await asyncio.to_thread(self.containers.create_task_container, task, workspace_path)
            container_id = container.id
            self._check_cancelled()

            self._update(
                task.id,
                status=TaskStatus.RUNNING,
                started_at=_now(),
                container_id=container_id,
            )

            await asyncio.to_thread(self.containers.copy_auth, container)

            tailer = EventTailer(
                self.config.task_events_file(task.id),
                on_event=lambda record: self._handle_record(task.id, record),
                on_error=lambda line, e: logger.warning(f"Task {task.id}: unparseable event line: {e}"),
                poll_interval=self.config.poll_interval_seconds,
            )
            tailer.start()
            try:
                self._check_cancelled()
                await asyncio.to_thread(self.containers.start, container)
                if self.cancel_requested:
                    await asyncio.to_thread(self.containers.stop, container_id)
                exit_code = await asyncio.to_thread(self.containers.wait, container)
                await asyncio.sleep(self.config.drain_grace_seconds)
            finally:
                await tailer.stop()

            outcome = self._outcome(exit_code)
            fields = {"exit_code": exit_code}
            if outcome == TaskStatus.FAILED:
                fields["error"] = f"Worker exited with code {exit_code}"
            self._finish(task.id, outcome, **fields)
            logger.info(f"Task {task.id} finished: {outcome.value} (exit code {exit_code})")

            branch_name = await asyncio.to_thread(
                self.workspaces.integrate, source_path, workspace_path, task.id
            )
            if branch_name:
                self._emit(task.id, MessageEvent(source="system", text=f"Branch created: {branch_name}"))
        except _Cancelled:
            logger.info(f"Task {task.id} cancelled before its container started")
            self._finish(task.id, TaskStatus.CANCELLED)
        except Exception as e:
            logger.error(f"Task {task.id} failed: {e}")
            status = TaskStatus.CANCELLED if self.cancel_requested else TaskStatus.FAILED
            self._finish(task.id, status, error=str(e) or type(e).__name__)
        finally:
            await self._cleanup(container_id, workspace_path)

        return self.store.get(task.id)

    async def _cleanup(self, container_id: Optional[str], workspace_path: Optional[Path]) -> None:
        """Best-effort removal of the container and workspace."""
        if container_id is not None:
            try:
                await asyncio.to_thread(self.containers.remove, container_id)
            except Exception as e:
                logger.warning(f"Container cleanup failed for {container_id[:12]}: {e}")
        if workspace_path is not None:
            try:
                await asyncio.to_thread(self.workspaces.release, workspace_path)
            except Exception as e:
                logger.warning(f"Workspace cleanup failed for {workspace_path}: {e}")
