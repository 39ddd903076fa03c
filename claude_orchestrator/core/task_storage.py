"""Task storage manager for persistent task tracking."""
import logging
import os
import shutil
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ..models.task import Task, TaskCreateInput, TaskStatus
from ..services.exceptions import TaskNotFoundError

logger = logging.getLogger(__name__)

METADATA_FILE_NAME = "metadata.json"


def atomic_write_text(path: Path, content: str) -> None:
    """Write a file via temp file + rename so readers never see a partial write."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class TaskStorageManager:
    """Manages persistent storage of task records.

    Every task lives in ``<tasks_dir>/<task_id>/metadata.json``. Each update
    re-reads the record, applies the changed fields and rewrites the whole
    file atomically.
    """

    def __init__(self, tasks_dir: Path, logs_dir: Path):
        """Initialize task storage manager.

        Args:
            tasks_dir: Directory holding one subdirectory per task
            logs_dir: Directory under which each task's log directory is created
        """
        self.tasks_dir = Path(tasks_dir)
        self.logs_dir = Path(logs_dir)
        self._last_created_at: Optional[datetime] = None
        self.tasks_dir.mkdir(parents=True, exist_ok=True)

    def _get_task_dir(self, task_id: str) -> Path:
        """Get the directory for a specific task."""
        return self.tasks_dir / task_id

    def _metadata_file(self, task_id: str) -> Path:
        return self._get_task_dir(task_id) / METADATA_FILE_NAME

    def _save_task(self, task: Task) -> None:
        atomic_write_text(self._metadata_file(task.id), task.model_dump_json(indent=2))

    def _load_task(self, metadata_file: Path) -> Optional[Task]:
        try:
            return Task.model_validate_json(metadata_file.read_text())
        except (OSError, ValidationError) as e:
            logger.warning(f"Skipping unreadable task record {metadata_file}: {e}")
            return None

    def _next_created_at(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    def create(self, task_input: TaskCreateInput) -> Task:
        """Create a new pending task.

        Returns:
            Created Task instance
        """
        task_id = uuid.uuid4().hex[:12]
        log_dir = self.logs_dir / task_id
        log_dir.mkdir(parents=True, exist_ok=True)

        task = Task(
            id=task_id,
            created_at=self._next_created_at(),
            log_dir=str(log_dir),
            **task_input.model_dump(),
        )
        self._save_task(task)
        logger.info(f"Created task {task_id}")
        return task

    def get(self, task_id: str) -> Optional[Task]:
        """Get a task by id, or None if it does not exist."""
        metadata_file = self._metadata_file(task_id)
        if not metadata_file.exists():
            return None
        return self._load_task(metadata_file)

    def update(self, task_id: str, **fields) -> Task:
        """Apply a partial update to a task and persist the whole record.

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task '{task_id}' not found")

        updated = Task.model_validate({**task.model_dump(), **fields})
        self._save_task(updated)
        return updated

    def delete(self, task_id: str) -> None:
        """Delete a task record. Unknown ids are ignored."""
        task_dir = self._get_task_dir(task_id)
        if task_dir.exists():
            shutil.rmtree(task_dir)
            logger.info(f"Deleted task {task_id}")

    def list(self, status: Optional[TaskStatus] = None) -> List[Task]:
        """List tasks ordered by creation time, oldest first.

        Args:
            status: Optional status filter
        """
        tasks = []
        for metadata_file in self.tasks_dir.glob(f"*/{METADATA_FILE_NAME}"):
            task = self._load_task(metadata_file)
            if task is None:
                continue
            if status is not None and task.status != status:
                continue
            tasks.append(task)

        tasks.sort(key=lambda t: (t.created_at, t.id))
        return tasks
