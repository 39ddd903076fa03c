"""Per-task isolated workspaces backed by standalone git clones."""

import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional

from ..services.exceptions import GitServiceError, ProvisioningError
from ..services.git_service import GitService
from .constants import AUTO_COMMIT_MESSAGE, BRANCH_PREFIX

logger = logging.getLogger(__name__)


def branch_name_for(task_id: str) -> str:
    """Deterministic integration branch name for a task."""
    return f"{BRANCH_PREFIX}/{task_id}"


class WorkspaceProvider:
    """Creates, integrates and removes task workspaces under one root directory."""

    def __init__(self, workspaces_dir: Path):
        """Initialize workspace provider.

        Args:
            workspaces_dir: Directory holding one workspace per task id
        """
        self.workspaces_dir = Path(workspaces_dir)

    def workspace_path(self, task_id: str) -> Path:
        return self.workspaces_dir / task_id

    def provision(self, source_path: Path, task_id: str) -> Path:
        """Clone the source repository into a fresh workspace for a task.

        Any leftover directory at the target path is removed first.

        Returns:
            Path to the new workspace

        Raises:
            ProvisioningError: If the source is unreachable or the clone fails
        """
        source_path = Path(source_path)
        target = self.workspace_path(task_id)

        if not source_path.is_dir():
            raise ProvisioningError(f"Project directory not found: {source_path}")

        self.release(target)
        self.workspaces_dir.mkdir(parents=True, exist_ok=True)

        try:
            GitService.clone(source_path, target)
        except GitServiceError as e:
            self.release(target)
            raise ProvisioningError(f"git clone failed: {e}") from e

        logger.info(f"Provisioned workspace for task {task_id} at {target}")
        return target

    def integrate(self, source_path: Path, workspace_path: Path, task_id: str) -> Optional[str]:
        """Fold a workspace's commits back into the source repository as a branch.

        Uncommitted workspace changes are committed first. Nothing is done when
        the workspace HEAD equals the source HEAD. Git failures are logged and
        reported as "nothing to integrate".

        Returns:
            The created branch name, or None
        """
        try:
            workspace_repo = GitService(Path(workspace_path))
            workspace_repo.commit_all_changes(AUTO_COMMIT_MESSAGE)
        except GitServiceError as e:
            logger.warning(f"Could not commit workspace changes for task {task_id}: {e}")

        try:
            workspace_head = GitService(Path(workspace_path)).get_commit_hash()
            source_repo = GitService(Path(source_path))
            if workspace_head == source_repo.get_commit_hash():
                logger.info(f"Task {task_id} produced no new commits")
                return None

            branch_name = branch_name_for(task_id)
            source_repo.fetch_into_branch(Path(workspace_path), branch_name)
            return branch_name
        except GitServiceError as e:
            logger.warning(f"Could not integrate workspace for task {task_id}: {e}")
            return None

    def release(self, workspace_path: Path) -> None:
        """Remove a workspace. Missing paths are ignored."""
        workspace_path = Path(workspace_path)
        if workspace_path.exists():
            shutil.rmtree(workspace_path, ignore_errors=True)
            logger.debug(f"Removed workspace {workspace_path}")

    def prune_orphans(self, active_task_ids: Iterable[str]) -> int:
        """Remove every workspace not owned by one of ``active_task_ids``.

        Returns:
            Number of workspaces removed
        """
        if not self.workspaces_dir.exists():
            return 0

        keep = set(active_task_ids)
        removed = 0
        for entry in self.workspaces_dir.iterdir():
            if not entry.is_dir() or entry.name in keep:
                continue
            self.release(entry)
            removed += 1

        if removed:
            logger.info(f"Pruned {removed} orphaned workspace(s)")
        return removed
