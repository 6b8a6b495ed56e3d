"""Deployment exception types for the project."""

from __future__ import annotations


class DeployError(Exception):
    """Base exception for deployment-related errors."""

    retryable: bool = False


class PreconditionError(DeployError):
    """Raised when an upstream precondition does not hold.

    Covers an unsuccessful upstream pipeline, an empty resolved field and a
    placeholder token left in a rendered manifest. Always raised before any
    cluster mutation.
    """


class ArtifactNotFoundError(DeployError):
    """Raised when an upstream artifact cannot be fetched."""

    retryable = True


class MalformedArtifactError(DeployError):
    """Raised when an upstream artifact is present but cannot be parsed."""


class AuthenticationError(DeployError):
    """Raised when the cloud login is rejected."""


class TransientApiError(DeployError):
    """Raised when a cloud or cluster API call fails in a way worth retrying."""

    retryable = True


class CommandTimeoutError(TransientApiError):
    """Raised when an external command exceeds its timeout."""


class ApplyError(DeployError):
    """Raised when the cluster rejects a manifest."""

    def __init__(self, manifest: str, message: str) -> None:
        super().__init__(f"{manifest}: {message}")
        self.manifest = manifest

