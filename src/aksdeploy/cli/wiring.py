"""Build collaborators and events from settings for CLI commands."""

from __future__ import annotations

from pathlib import Path

from ..clients.azure import AzureCli
from ..clients.kubectl import KubectlCluster
from ..config import DeploySettings
from ..errors import PreconditionError
from ..events import MANUAL_EVENT, TriggerEvent, load_event
from ..pipeline.run import Collaborators
from ..upstream.artifacts import ArtifactStore, GitHubArtifactStore, LocalArtifactStore
from ..utils.commands import CommandRunner
from ..utils.retry import RetryPolicy


def build_event(settings: DeploySettings, event_name: str | None, event_path: Path | None) -> TriggerEvent:
    """Load the triggering event; with nothing configured, treat the run as manual."""
    name = event_name or settings.github_event_name or MANUAL_EVENT
    path = event_path or settings.github_event_path
    return load_event(name, path)


def build_github_store(settings: DeploySettings) -> GitHubArtifactStore | None:
    if not settings.github_repository:
        return None
    token = settings.github_token.get_secret_value() if settings.github_token else None
    return GitHubArtifactStore(
        repository=settings.github_repository,
        token=token,
        api_url=settings.github_api_url,
        timeout=settings.http_timeout_seconds,
    )


def build_artifact_store(
    settings: DeploySettings,
    artifact_dir: Path | None,
    github: GitHubArtifactStore | None,
) -> ArtifactStore:
    """Prefer a pre-downloaded artifact directory, then the GitHub API.

    Raises:
        PreconditionError: If neither source is configured.
    """
    if artifact_dir is not None:
        return LocalArtifactStore(artifact_dir)
    if github is not None:
        return github
    raise PreconditionError(
        "No artifact source: pass --artifact-dir or set GITHUB_REPOSITORY (and GITHUB_TOKEN)"
    )


def build_cluster(settings: DeploySettings, kubeconfig: Path | None) -> KubectlCluster:
    runner = CommandRunner(timeout=settings.command_timeout_seconds)
    return KubectlCluster(
        runner,
        kubectl=settings.kubectl_bin,
        kubeconfig=kubeconfig,
        namespace=settings.namespace,
        apply_timeout=settings.apply_timeout_seconds,
    )


def build_collaborators(
    settings: DeploySettings,
    *,
    kubeconfig: Path,
    artifact_dir: Path | None = None,
) -> Collaborators:
    github = build_github_store(settings)
    runner = CommandRunner(timeout=settings.command_timeout_seconds)
    return Collaborators(
        artifacts=build_artifact_store(settings, artifact_dir, github),
        cloud=AzureCli(runner, az=settings.az_bin),
        cluster=build_cluster(settings, kubeconfig),
        runs=github,
    )


def build_retry(settings: DeploySettings) -> RetryPolicy:
    return RetryPolicy(attempts=settings.retry_attempts, delay=settings.retry_delay_seconds)
