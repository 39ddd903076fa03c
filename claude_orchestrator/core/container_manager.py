"""Task container lifecycle on top of DockerService."""

import io
import logging
import tarfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from docker.models.containers import Container

from ..models.checks import dump_completion_checks
from ..models.config import OrchestratorConfig
from ..models.task import Task
from ..services.docker_service import DockerService
from ..services.exceptions import (
    ContainerNotFoundError,
    DockerServiceError,
    ImageNotFoundError,
)
from .constants import (
    CONTAINER_HOME,
    CONTAINER_LOG_DIR,
    CONTAINER_PREFIX,
    CONTAINER_WORKSPACE,
    DOCKERFILE_NAME,
    LABEL_PREFIX,
    ORPHAN_STOP_TIMEOUT,
)

logger = logging.getLogger(__name__)

LABEL_MANAGED = LABEL_PREFIX
LABEL_TASK_ID = f"{LABEL_PREFIX}.task-id"
LABEL_SESSION = f"{LABEL_PREFIX}.session"

STOPPED_STATES = ("exited", "dead")


def build_worker_command(task: Task) -> List[str]:
    """Command line for the worker entry point inside the container."""
    command = [
        "claude-orchestrator-worker",
        "--prompt", task.prompt,
        "--max-iterations", str(task.max_iterations),
        "--max-hours", str(task.max_hours),
        "--max-budget", str(task.max_budget_usd),
        "--turns-per-iteration", str(task.turns_per_iteration),
        "--log-dir", CONTAINER_LOG_DIR,
        "--workspace", CONTAINER_WORKSPACE,
        "--completion-checks", dump_completion_checks(task.completion_checks),
    ]
    if task.fresh_context:
        command.append("--fresh-context")
    return command


class TaskContainerManager:
    """Creates, signals and removes the container that runs one task's worker."""

    def __init__(self, docker_service: DockerService, config: OrchestratorConfig, session_id: str):
        """Initialize container manager.

        Args:
            docker_service: Docker service wrapper
            config: Host configuration (image, resource ceilings, timeouts)
            session_id: Identifier of this orchestrator process, stored as a label
        """
        self.docker_service = docker_service
        self.config = config
        self.session_id = session_id

    def ensure_image(self) -> None:
        """Make sure the worker image exists, building it if a context is configured.

        Raises:
            ImageNotFoundError: If the image is absent and cannot be built
            DockerServiceError: If the build fails
        """
        image = self.config.image_name
        if self.docker_service.image_exists(image):
            return

        context_dir = self.config.image_context_dir
        if context_dir is None or not (Path(context_dir) / DOCKERFILE_NAME).exists():
            raise ImageNotFoundError(
                f"Image '{image}' not found and no build context with a {DOCKERFILE_NAME} is configured"
            )

        logger.info(f"Building image {image} from {context_dir}")
        self.docker_service.build_image(str(context_dir), DOCKERFILE_NAME, image)

    def _labels(self, task_id: str) -> Dict[str, str]:
        return {
            LABEL_MANAGED: "true",
            LABEL_TASK_ID: task_id,
            LABEL_SESSION: self.session_id,
        }

    def create_task_container(self, task: Task, workspace_path: Path) -> Container:
        """Create (but do not start) the worker container for a task.

        The workspace and the task log directory are bind-mounted read-write.
        """
        volumes = {
            str(Path(workspace_path).resolve()): {"bind": CONTAINER_WORKSPACE, "mode": "rw"},
            str(Path(task.log_dir).resolve()): {"bind": CONTAINER_LOG_DIR, "mode": "rw"},
        }
        container = self.docker_service.create_container(
            image=self.config.image_name,
            name=f"{CONTAINER_PREFIX}-{task.id}",
            command=build_worker_command(task),
            volumes=volumes,
            environment={"HOME": CONTAINER_HOME},
            labels=self._labels(task.id),
            working_dir=CONTAINER_WORKSPACE,
            init=True,
            security_opt=["no-new-privileges"],
            mem_limit=f"{self.config.memory_mb}m",
            nano_cpus=int(self.config.cpus * 1e9),
        )
        logger.info(f"Created container {container.id[:12]} for task {task.id}")
        return container

    def _auth_archive(self) -> Optional[bytes]:
        """Tar the credential files so they land under the container's home."""
        auth_dir = self.config.auth_dir
        claude_json = self.config.claude_json
        files = [p for p in auth_dir.rglob("*") if p.is_file()] if auth_dir.exists() else []
        if not files and not claude_json.exists():
            return None

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w") as tar:
            for path in files:
                tar.add(str(path), arcname=f".claude/{path.relative_to(auth_dir).as_posix()}")
            if claude_json.exists():
                tar.add(str(claude_json), arcname=".claude.json")
        return buffer.getvalue()

    def copy_auth(self, container: Container) -> bool:
        """Copy credentials into a created container before it starts.

        Best-effort: failures are logged and reported as False.
        """
        try:
            archive = self._auth_archive()
            if archive is None:
                logger.warning(f"No credentials found in {self.config.auth_dir}; run 'claude-orchestrator login'")
                return False
            self.docker_service.put_archive(container, CONTAINER_HOME, archive)
            return True
        except (OSError, DockerServiceError) as e:
            logger.warning(f"Could not copy credentials into container {container.id[:12]}: {e}")
            return False

    def start(self, container: Container) -> None:
        self.docker_service.start_container(container)

    def wait(self, container: Container) -> int:
        """Block until the container exits; return its exit code."""
        return self.docker_service.wait_container(container)

    def stop(self, container_id: str, timeout: Optional[int] = None) -> None:
        """Stop a container gracefully, forcing it after the timeout.

        A container that no longer exists is ignored.
        """
        try:
            container = self.docker_service.get_container(container_id)
        except ContainerNotFoundError:
            return
        self.docker_service.stop_container(
            container,
            timeout=self.config.stop_timeout_seconds if timeout is None else timeout,
        )

    def signal(self, container_id: str, signal: str) -> None:
        """Send a signal to a running task container.

        Raises:
            ContainerNotFoundError: If the container is gone
        """
        container = self.docker_service.get_container(container_id)
        self.docker_service.kill_container(container, signal)

    def remove(self, container_id: str) -> None:
        """Force-remove a container. Best-effort and idempotent."""
        try:
            container = self.docker_service.get_container(container_id)
            self.docker_service.remove_container(container, force=True)
            logger.debug(f"Removed container {container_id[:12]}")
        except ContainerNotFoundError:
            pass
        except DockerServiceError as e:
            logger.warning(f"Could not remove container {container_id[:12]}: {e}")

    def is_stale(self, container_id: str) -> bool:
        """Whether a running task's container shows its owner is gone.

        A missing container is stale. An exited or dead one is stale only when
        another orchestrator session created it; this session's runners are
        still draining their own. Any other state means the task is in flight.
        """
        try:
            container = self.docker_service.get_container(container_id)
        except ContainerNotFoundError:
            return True
        container.reload()
        if container.status not in STOPPED_STATES:
            return False
        return (container.labels or {}).get(LABEL_SESSION) != self.session_id

    def list_task_containers(self) -> List[Container]:
        return self.docker_service.list_containers(all=True, labels={LABEL_MANAGED: "true"})

    def cleanup_orphans(self, keep_task_ids: Iterable[str]) -> int:
        """Stop and remove labelled task containers not owned by ``keep_task_ids``.

        Returns:
            Number of containers removed
        """
        keep = set(keep_task_ids)
        removed = 0
        for container in self.list_task_containers():
            task_id = (container.labels or {}).get(LABEL_TASK_ID)
            if task_id in keep:
                continue
            try:
                self.docker_service.stop_container(container, timeout=ORPHAN_STOP_TIMEOUT)
                self.docker_service.remove_container(container, force=True)
                removed += 1
            except DockerServiceError as e:
                logger.warning(f"Could not remove orphaned container {container.id[:12]}: {e}")

        if removed:
            logger.info(f"Removed {removed} orphaned container(s)")
        return removed

