"""Admission control for concurrent task runners."""

import asyncio
import logging
import signal
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..models.events import WorkerEvent
from ..models.task import Task, TaskCreateInput, TaskStatus, TaskStore
from ..services.exceptions import DockerServiceError
from .constants import DEFAULT_MAX_CONCURRENT, SHUTDOWN_GRACE
from .container_manager import TaskContainerManager
from .runner import EventCallback, TaskRunner, TaskUpdateCallback

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[EventCallback, TaskUpdateCallback], TaskRunner]

ABORT_SIGNAL = "SIGUSR1"


class TaskScheduler:
    """Runs pending tasks oldest-first with at most ``max_concurrent`` at a time.

    All bookkeeping happens on one event loop. Each admitted task gets an
    ``asyncio.Task`` handle in ``_active``; when it finishes the slot is
    released and the queue is re-checked.
    """

    def __init__(
        self,
        store: TaskStore,
        runner_factory: RunnerFactory,
        containers: TaskContainerManager,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        shutdown_grace: float = SHUTDOWN_GRACE,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.store = store
        self.runner_factory = runner_factory
        self.containers = containers
        self.max_concurrent = max_concurrent
        self.shutdown_grace = shutdown_grace

        self._active: Dict[str, asyncio.Task] = {}
        self._runners: Dict[str, TaskRunner] = {}
        self._event_listeners: List[EventCallback] = []
        self._update_listeners: List[TaskUpdateCallback] = []
        self._ticking = False
        self._started = False
        self._closing = False
        self._closed: Optional[asyncio.Event] = None
        self._shutdown_task: Optional[asyncio.Task] = None

    def subscribe(
        self,
        on_event: Optional[EventCallback] = None,
        on_task_update: Optional[TaskUpdateCallback] = None,
    ) -> None:
        if on_event is not None:
            self._event_listeners.append(on_event)
        if on_task_update is not None:
            self._update_listeners.append(on_task_update)

    def _publish_event(self, task_id: str, event: WorkerEvent) -> None:
        for listener in self._event_listeners:
            try:
                listener(task_id, event)
            except Exception as e:
                logger.error(f"Event listener failed: {e}")

    def _publish_update(self, task: Task) -> None:
        for listener in self._update_listeners:
            try:
                listener(task)
            except Exception as e:
                logger.error(f"Task update listener failed: {e}")

    @property
    def active_task_ids(self) -> List[str]:
        return list(self._active)

    def enqueue(self, task_input: TaskCreateInput) -> Task:
        """Persist a new pending task and try to admit work."""
        task = self.store.create(task_input)
        self._publish_update(task)
        self._tick()
        return task

    async def cancel(self, task_id: str) -> None:
        """Cancel a pending task, or request cancellation of a running one.

        A running task becomes ``cancelled`` only when its runner finishes
        without having reached another terminal status first.
        """
        task = self.store.get(task_id)
        if task is None or task.is_terminal:
            return

        runner = self._runners.get(task_id)
        if runner is None:
            if task.status == TaskStatus.PENDING:
                updated = self.store.update(
                    task_id,
                    status=TaskStatus.CANCELLED,
                    finished_at=datetime.now(timezone.utc),
                )
                self._publish_update(updated)
            return

        runner.request_cancel()
        if task.container_id:
            try:
                await asyncio.to_thread(self.containers.stop, task.container_id)
            except DockerServiceError as e:
                logger.warning(f"Could not stop container for task {task_id}: {e}")

    async def abort_iteration(self, task_id: str) -> bool:
        """Interrupt the current agent invocation of a running task.

        Returns:
            True if the signal was delivered
        """
        task = self.store.get(task_id)
        if task is None or task.status != TaskStatus.RUNNING or not task.container_id:
            return False
        try:
            await asyncio.to_thread(self.containers.signal, task.container_id, ABORT_SIGNAL)
        except DockerServiceError as e:
            logger.warning(f"Could not signal container for task {task_id}: {e}")
            return False
        return True

    def delete(self, task_id: str) -> bool:
        """Delete a task record. Refused while the task is pending or running."""
        task = self.store.get(task_id)
        if task is None:
            return False
        if task.status in (TaskStatus.PENDING, TaskStatus.RUNNING) or task_id in self._active:
            logger.info(f"Refusing to delete active task {task_id}")
            return False
        self.store.delete(task_id)
        self._publish_update(task)
        return True

    def start(self, install_signal_handlers: bool = True) -> None:
        """Begin admitting tasks. Must be called from a running event loop."""
        if self._started:
            return
        self._started = True
        self._closed = asyncio.Event()

        if install_signal_handlers:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._on_signal, sig)

        self._tick()

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down")
        if self._shutdown_task is None and not self._closing:
            self._shutdown_task = asyncio.create_task(self.shutdown())
            self._shutdown_task.add_done_callback(self._on_shutdown_done)

    def _on_shutdown_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Shutdown failed: {task.exception()}")

    async def shutdown(self) -> None:
        """Cancel every active task and wait (bounded) for their cleanup."""
        self._closing = True
        task_ids = list(self._active)
        if task_ids:
            await asyncio.gather(*(self.cancel(task_id) for task_id in task_ids), return_exceptions=True)

            handles = list(self._active.values())
            if handles:
                _, still_running = await asyncio.wait(handles, timeout=self.shutdown_grace)
                if still_running:
                    logger.warning(f"{len(still_running)} task(s) did not finish cleanup within {self.shutdown_grace}s")

        if self._closed is not None:
            self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until ``shutdown`` has completed."""
        if self._closed is not None:
            await self._closed.wait()

    def _tick(self) -> None:
        if not self._started or self._closing or self._ticking:
            return
        self._ticking = True
        try:
            while len(self._active) < self.max_concurrent:
                pending = [
                    t for t in self.store.list(status=TaskStatus.PENDING)
                    if t.id not in self._active
                ]
                if not pending:
                    break
                self._launch(pending[0])
        finally:
            self._ticking = False

    def _launch(self, task: Task) -> None:
        runner = self.runner_factory(self._publish_event, self._publish_update)
        self._runners[task.id] = runner
        self._active[task.id] = asyncio.create_task(self._run_and_release(task.id, runner))
        logger.info(f"Admitted task {task.id} ({len(self._active)}/{self.max_concurrent} slots)")

    async def _run_and_release(self, task_id: str, runner: TaskRunner) -> None:
        try:
            await runner.run(task_id)
        except Exception as e:
            logger.error(f"Runner for task {task_id} crashed: {e}")
            self._mark_crashed(task_id, e)
        finally:
            self._active.pop(task_id, None)
            self._runners.pop(task_id, None)
            self._tick()

    def _mark_crashed(self, task_id: str, error: Exception) -> None:
        """Keep a crashed runner's task from being admitted again."""
        task = self.store.get(task_id)
        if task is None or task.is_terminal:
            return
        try:
            updated = self.store.update(
                task_id,
                status=TaskStatus.FAILED,
                error=str(error) or type(error).__name__,
                finished_at=datetime.now(timezone.utc),
            )
        except Exception as e:
            logger.error(f"Could not record failure for task {task_id}: {e}")
            return
        self._publish_update(updated)
