"""Service layer for abstracting Docker and Git operations."""

from .docker_service import DockerService
from .git_service import GitService
from .exceptions import (
    ServiceError,
    DockerServiceError,
    GitServiceError,
    ImageNotFoundError,
    ContainerNotFoundError,
    ProvisioningError,
    TaskNotFoundError,
    ConfigError,
    TaskFileError,
)

__all__ = [
    "DockerService",
    "GitService",
    "ServiceError",
    "DockerServiceError",
    "GitServiceError",
    "ImageNotFoundError",
    "ContainerNotFoundError",
    "ProvisioningError",
    "TaskNotFoundError",
    "ConfigError",
    "TaskFileError",
]
