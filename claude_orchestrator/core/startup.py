"""Host startup recovery: fail stale tasks and prune orphaned resources."""

import logging
from datetime import datetime, timezone
from typing import List

from ..models.task import Task, TaskStatus, TaskStore
from ..services.exceptions import DockerServiceError
from .container_manager import TaskContainerManager
from .workspace import WorkspaceProvider

logger = logging.getLogger(__name__)

RECOVERED_ERROR = "Process terminated unexpectedly (recovered on restart)"


def recover_stale_tasks(store: TaskStore, containers: TaskContainerManager) -> List[Task]:
    """Mark ``running`` tasks whose container is gone or left behind as failed.

    Returns:
        The tasks that were marked failed
    """
    recovered = []
    for task in store.list(status=TaskStatus.RUNNING):
        if task.container_id:
            try:
                if not containers.is_stale(task.container_id):
                    continue
            except DockerServiceError as e:
                logger.warning(f"Could not inspect container for task {task.id}: {e}")
                continue

        recovered.append(store.update(
            task.id,
            status=TaskStatus.FAILED,
            error=RECOVERED_ERROR,
            finished_at=datetime.now(timezone.utc),
        ))
        logger.info(f"Recovered stale task {task.id}")
    return recovered


def non_terminal_task_ids(store: TaskStore) -> List[str]:
    return [task.id for task in store.list() if not task.is_terminal]


def cleanup_orphans(
    store: TaskStore,
    workspaces: WorkspaceProvider,
    containers: TaskContainerManager,
) -> tuple[int, int]:
    """Remove containers and workspaces that no non-terminal task owns.

    Returns:
        (containers removed, workspaces removed)
    """
    keep = non_terminal_task_ids(store)
    try:
        removed_containers = containers.cleanup_orphans(keep)
    except DockerServiceError as e:
        logger.warning(f"Could not clean up orphaned containers: {e}")
        removed_containers = 0
    removed_workspaces = workspaces.prune_orphans(keep)
    return removed_containers, removed_workspaces


def recover_on_startup(
    store: TaskStore,
    workspaces: WorkspaceProvider,
    containers: TaskContainerManager,
) -> List[Task]:
    """Run stale-task recovery, then orphan cleanup."""
    recovered = recover_stale_tasks(store, containers)
    cleanup_orphans(store, workspaces, containers)
    return recovered
