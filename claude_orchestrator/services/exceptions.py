"""Custom exceptions for service layer."""


class ServiceError(Exception):
    """Base exception for all service-related errors."""

    pass


class DockerServiceError(ServiceError):
    """Exception raised for Docker service operations."""

    pass


class GitServiceError(ServiceError):
    """Exception raised for Git service operations."""

    pass


class ImageNotFoundError(DockerServiceError):
    """Exception raised when a Docker image is not found."""

    pass


class ContainerNotFoundError(DockerServiceError):
    """Exception raised when a Docker container is not found."""

    pass


class ProvisioningError(ServiceError):
    """Exception raised when a task workspace cannot be created."""

    pass


class TaskNotFoundError(ServiceError):
    """Exception raised when a task id is not in the store."""

    pass


class ConfigError(ServiceError):
    """Exception raised when configuration cannot be loaded."""

    pass


class TaskFileError(ServiceError):
    """Exception raised for malformed task definition files."""

    pass
