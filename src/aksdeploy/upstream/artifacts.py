"""Artifact stores for upstream pipeline outputs.

Two implementations share the `ArtifactStore` protocol:
- `GitHubArtifactStore` talks to the GitHub Actions REST API with httpx and
  also answers run-history questions (`RunHistory`).
- `LocalArtifactStore` reads artifacts a previous CI step already
  downloaded into a directory.

An artifact is returned as a mapping of file name to raw bytes.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

from ..errors import ArtifactNotFoundError, MalformedArtifactError

logger = __import__("logging").getLogger(__name__)

ArtifactFiles = dict[str, bytes]


@runtime_checkable
class ArtifactStore(Protocol):
    """Fetches a named artifact produced by a workflow."""

    def fetch(
        self,
        workflow_file: str,
        artifact_name: str,
        *,
        run_id: int | None = None,
    ) -> ArtifactFiles:
        """Return the artifact's files, raising ArtifactNotFoundError if absent."""
        ...


@runtime_checkable
class RunHistory(Protocol):
    """Reports the outcome of a workflow's most recent completed run."""

    def latest_conclusion(self, workflow_file: str, *, branch: str | None = None) -> str | None:
        """Return e.g. "success" or "failure", or None if it never ran."""
        ...


def read_member(files: ArtifactFiles, filename: str, artifact_name: str) -> bytes:
    """Return one file from an artifact.

    Raises:
        ArtifactNotFoundError: If the artifact does not contain `filename`.
    """
    if filename not in files:
        raise ArtifactNotFoundError(
            f"Artifact {artifact_name!r} has no {filename!r} "
            f"(found: {', '.join(sorted(files)) or 'nothing'})"
        )
    return files[filename]


class LocalArtifactStore:
    """Read artifacts from a local directory.

    Looks in `<root>/<artifact_name>/` first and falls back to `<root>/`
    itself, matching how a download step usually lays files out.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def fetch(
        self,
        workflow_file: str,
        artifact_name: str,
        *,
        run_id: int | None = None,
    ) -> ArtifactFiles:
        candidates = [self.root / artifact_name, self.root]
        for directory in candidates:
            if not directory.is_dir():
                continue
            files = {p.name: p.read_bytes() for p in sorted(directory.iterdir()) if p.is_file()}
            if files:
                logger.info("Using local artifact %s from %s", artifact_name, directory)
                return files
        raise ArtifactNotFoundError(f"Artifact {artifact_name!r} not found under {self.root}")


class GitHubArtifactStore:
    """Fetch artifacts and run history from the GitHub Actions API."""

    def __init__(
        self,
        *,
        repository: str,
        token: str | None,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.repository = repository
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = client or httpx.Client(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )

    def close(self) -> None:
        self.client.close()

    def latest_run(
        self,
        workflow_file: str,
        *,
        status: str = "success",
        branch: str | None = None,
    ) -> dict[str, Any] | None:
        """Return the most recent run of a workflow with the given status."""
        params: dict[str, Any] = {"status": status, "per_page": 1}
        if branch:
            params["branch"] = branch
        payload = self._get_json(
            f"/repos/{self.repository}/actions/workflows/{workflow_file}/runs",
            params=params,
        )
        runs = payload.get("workflow_runs") or []
        return runs[0] if runs else None

    def latest_conclusion(self, workflow_file: str, *, branch: str | None = None) -> str | None:
        run = self.latest_run(workflow_file, status="completed", branch=branch)
        return run.get("conclusion") if run else None

    def fetch(
        self,
        workflow_file: str,
        artifact_name: str,
        *,
        run_id: int | None = None,
    ) -> ArtifactFiles:
        """Download an artifact and unpack its zip archive in memory.

        Uses the given run, or the latest successful run of the workflow.

        Raises:
            ArtifactNotFoundError: On missing run/artifact, HTTP or network failure.
            MalformedArtifactError: If the archive is not a valid zip file.
        """
        if run_id is None:
            run = self.latest_run(workflow_file)
            if run is None:
                raise ArtifactNotFoundError(f"No successful run of {workflow_file} found")
            run_id = int(run["id"])

        payload = self._get_json(
            f"/repos/{self.repository}/actions/runs/{run_id}/artifacts",
            params={"name": artifact_name},
        )
        artifacts = [
            a for a in payload.get("artifacts") or []
            if a.get("name") == artifact_name and not a.get("expired")
        ]
        if not artifacts:
            raise ArtifactNotFoundError(f"Artifact {artifact_name!r} not found on run {run_id}")

        url = artifacts[0]["archive_download_url"]
        logger.info("Downloading artifact %s from run %s", artifact_name, run_id)
        archive = self._request("GET", url).content
        try:
            with zipfile.ZipFile(io.BytesIO(archive)) as zf:
                return {
                    Path(info.filename).name: zf.read(info)
                    for info in zf.infolist()
                    if not info.is_dir()
                }
        except zipfile.BadZipFile as exc:
            raise MalformedArtifactError(f"Artifact {artifact_name!r} is not a valid zip archive") from exc

    def _get_json(self, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = self._request("GET", path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise ArtifactNotFoundError(f"Unexpected non-JSON response from {path}") from exc

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ArtifactNotFoundError(
                f"GitHub API {method} {exc.request.url.path} returned {exc.response.status_code}"
            ) from exc
        except httpx.TransportError as exc:
            raise ArtifactNotFoundError(f"GitHub API {method} {url} failed: {exc}") from exc
        return response
