"""Docker service for abstracting Docker operations."""

import logging
from typing import Any, Optional

import docker
import docker.errors
from docker.models.containers import Container

from .exceptions import (
    ContainerNotFoundError,
    DockerServiceError,
    ImageNotFoundError,
)

logger = logging.getLogger(__name__)


class DockerService:
    """Service for Docker operations with clean abstractions."""

    def __init__(self):
        """Initialize Docker service and test connection."""
        try:
            self.client = docker.from_env()
            self.client.ping()
        except docker.errors.DockerException as e:
            if "connection refused" in str(e).lower() or "cannot connect" in str(e).lower():
                raise DockerServiceError(
                    "Docker daemon is not running. Please start Docker Desktop or the Docker service."
                ) from e
            else:
                raise DockerServiceError(f"Failed to connect to Docker: {e}") from e

    def build_image(self, path: str, dockerfile: str, tag: str) -> None:
        """Build a Docker image.

        Args:
            path: Path to the build context
            dockerfile: Path to the Dockerfile relative to the build context
            tag: Tag for the image

        Raises:
            DockerServiceError: If build fails
        """
        try:
            _, logs = self.client.images.build(path=path, dockerfile=dockerfile, tag=tag, rm=True)
            for chunk in logs:
                line = chunk.get("stream", "").rstrip() if isinstance(chunk, dict) else ""
                if line:
                    logger.debug(line)
        except docker.errors.BuildError as e:
            raise DockerServiceError(f"Failed to build image: {e}") from e
        except Exception as e:
            raise DockerServiceError(f"Unexpected error building image: {e}") from e

    def image_exists(self, image_name: str) -> bool:
        """Check if an image exists."""
        try:
            self.client.images.get(image_name)
            return True
        except docker.errors.ImageNotFound:
            return False
        except Exception as e:
            logger.warning(f"Error checking image existence: {e}")
            return False

    def create_container(
        self,
        image: str,
        name: Optional[str] = None,
        command: Optional[list[str]] = None,
        volumes: Optional[dict[str, dict[str, str]]] = None,
        environment: Optional[dict[str, str]] = None,
        labels: Optional[dict[str, str]] = None,
        **kwargs,
    ) -> Container:
        """Create (but do not start) a Docker container.

        Raises:
            ImageNotFoundError: If image not found
            DockerServiceError: If creation fails
        """
        try:
            return self.client.containers.create(
                image=image,
                name=name,
                command=command,
                volumes=volumes,
                environment=environment,
                labels=labels,
                **kwargs,
            )
        except docker.errors.ImageNotFound as e:
            raise ImageNotFoundError(f"Image '{image}' not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to create container: {e}") from e
        except Exception as e:
            raise DockerServiceError(f"Unexpected error creating container: {e}") from e

    def start_container(self, container: Container) -> None:
        """Start a created container.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If start fails
        """
        try:
            container.start()
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError("Container not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to start container: {e}") from e

    def wait_container(self, container: Container) -> int:
        """Block until a container exits and return its exit code.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If waiting fails
        """
        try:
            result = container.wait()
            return int(result.get("StatusCode", -1))
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError("Container not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed waiting for container: {e}") from e

    def stop_container(self, container: Container, timeout: int) -> None:
        """Stop a container: SIGTERM, then SIGKILL after ``timeout`` seconds.

        A container that is already stopped or gone is not an error.

        Raises:
            DockerServiceError: If stop fails for another reason
        """
        try:
            container.stop(timeout=timeout)
        except docker.errors.NotFound:
            logger.debug(f"Container {container.id} already removed")
        except docker.errors.APIError as e:
            if e.status_code == 304 or "not running" in str(e).lower():
                return
            raise DockerServiceError(f"Failed to stop container: {e}") from e

    def kill_container(self, container: Container, signal: str) -> None:
        """Send a signal to a running container.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If signalling fails
        """
        try:
            container.kill(signal=signal)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError("Container not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to signal container: {e}") from e

    def remove_container(self, container: Container, force: bool = False) -> None:
        """Remove a container.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If removal fails
        """
        try:
            container.remove(force=force)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError("Container not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to remove container: {e}") from e
        except Exception as e:
            raise DockerServiceError(f"Unexpected error removing container: {e}") from e

    def put_archive(self, container: Container, path: str, data: bytes) -> None:
        """Extract a tar archive into a container's filesystem.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If copy fails
        """
        try:
            container.put_archive(path, data)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError("Container not found") from e
        except Exception as e:
            raise DockerServiceError(f"Failed to copy to container: {e}") from e

    def list_containers(
        self,
        all: bool = True,
        filters: Optional[dict[str, Any]] = None,
        labels: Optional[dict[str, str]] = None,
    ) -> list[Container]:
        """List containers with optional filters.

        Raises:
            DockerServiceError: If listing fails
        """
        try:
            filter_dict = filters or {}
            if labels:
                filter_dict['label'] = [f"{k}={v}" for k, v in labels.items()]

            return self.client.containers.list(all=all, filters=filter_dict)
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to list containers: {e}") from e
        except Exception as e:
            raise DockerServiceError(f"Unexpected error listing containers: {e}") from e

    def get_container(self, container_id: str) -> Container:
        """Get a container by ID or name.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If retrieval fails
        """
        try:
            return self.client.containers.get(container_id)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError(
                f"Container '{container_id}' not found"
            ) from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to get container: {e}") from e
        except Exception as e:
            raise DockerServiceError(f"Unexpected error getting container: {e}") from e
