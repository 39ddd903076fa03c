"""Git service for abstracting Git operations."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .exceptions import GitServiceError

logger = logging.getLogger(__name__)


def _run_git(args: list[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """Run a git command, wrapping failures in GitServiceError."""
    cmd = ["git"] + args
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.strip() if e.stderr else str(e)
        raise GitServiceError(f"Git command failed: {error_msg}") from e
    except Exception as e:
        raise GitServiceError(f"Unexpected error running git command: {e}") from e


class GitService:
    """Service for Git operations with clean abstractions."""

    def __init__(self, repo_path: Path):
        """Initialize Git service.

        Args:
            repo_path: Path to the git repository

        Raises:
            GitServiceError: If the path is not a git repository
        """
        self.repo_path = Path(repo_path)
        if not self._is_git_repo():
            raise GitServiceError(f"{self.repo_path} is not a git repository")

    @classmethod
    def clone(cls, source: Path, destination: Path) -> "GitService":
        """Create a standalone clone with its own object store.

        ``--no-local`` copies objects instead of hardlinking them, so the
        clone stays usable when bind-mounted somewhere the source is not.

        Raises:
            GitServiceError: If the clone fails
        """
        _run_git(["clone", "--no-local", str(source), str(destination)])
        logger.info(f"Cloned {source} into {destination}")
        return cls(destination)

    def _is_git_repo(self) -> bool:
        """Check if the current path is a git repository."""
        if not self.repo_path.is_dir():
            return False
        try:
            self._run_git_command(["rev-parse", "--git-dir"])
            return True
        except GitServiceError:
            return False

    def _run_git_command(self, args: list[str]) -> subprocess.CompletedProcess:
        """Run a git command inside the repository.

        Raises:
            GitServiceError: If command fails
        """
        return _run_git(args, cwd=self.repo_path)

    def has_uncommitted_changes(self) -> bool:
        """Return True if the working tree has staged, unstaged or untracked changes."""
        result = self._run_git_command(["status", "--porcelain"])
        return bool(result.stdout.strip())

    def commit_all_changes(self, message: str) -> bool:
        """Stage all changes and commit.

        Returns:
            True if a commit was created, False if there was nothing to commit

        Raises:
            GitServiceError: If commit fails
        """
        if not self.has_uncommitted_changes():
            logger.info("No changes to commit")
            return False

        self._run_git_command(["add", "-A"])
        self._run_git_command(["commit", "-m", message])
        logger.info(f"Committed changes: {message}")
        return True

    def get_commit_hash(self, ref: str = "HEAD") -> str:
        """Get the commit hash of a reference.

        Raises:
            GitServiceError: If unable to get hash
        """
        result = self._run_git_command(["rev-parse", ref])
        return result.stdout.strip()

    def fetch_into_branch(self, remote_path: Path, branch_name: str, ref: str = "HEAD") -> None:
        """Fetch ``ref`` from another repository into a local branch.

        The checked-out branch and working tree are left untouched.

        Raises:
            GitServiceError: If the fetch fails
        """
        self._run_git_command(["fetch", str(remote_path), f"{ref}:refs/heads/{branch_name}"])
        logger.info(f"Fetched {ref} from {remote_path} into branch {branch_name}")
