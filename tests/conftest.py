from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from aksdeploy.clients.azure import ServicePrincipal
from aksdeploy.clients.cluster import ApplyResult, ResourceChange
from aksdeploy.errors import ApplyError, ArtifactNotFoundError, TransientApiError
from aksdeploy.utils.retry import RetryPolicy

REPO_K8S_DIR = Path(__file__).resolve().parent.parent / "k8s"

CREDENTIALS_JSON = json.dumps({
    "clientId": "00000000-1111-2222-3333-444444444444",
    "clientSecret": "s3cr3t-value",
    "tenantId": "tenant-1",
    "subscriptionId": "sub-1",
})

TERRAFORM_OUTPUTS = {
    "aks_cluster_name": {"value": "aks-prod"},
    "container_name": {"value": "qr-images"},
    "resource_group_name": {"value": "rg-prod"},
    "storage_account_name": {"value": "qrstorage1"},
}

_ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_REPOSITORY",
    "GITHUB_API_URL",
    "GITHUB_EVENT_NAME",
    "GITHUB_EVENT_PATH",
    "AZURE_CREDENTIALS",
)


@pytest.fixture(autouse=True)
def app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Forces test mode and clears CI variables so settings never pick up a real
    token, credential or event payload from the machine running the tests.
    Automatically applied to all tests.
    """
    monkeypatch.setenv("APP_ENV", "test")
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(f"AKSDEPLOY_{name}", raising=False)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """
    A dedicated temp root directory for each test.
    All filesystem writes in tests should be under this root (or tmp_path directly).
    """
    root = tmp_path / "proj"
    (root / "artifacts").mkdir(parents=True)
    (root / "out").mkdir(parents=True)
    return root


@pytest.fixture(autouse=True)
def chdir_to_project_root(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Automatically change working directory to project_root for all tests.
    This ensures relative-path operations go into the temp directory by default.
    """
    monkeypatch.chdir(project_root)


@pytest.fixture
def k8s_dir(project_root: Path) -> Path:
    """A copy of the repository's manifest templates under project_root."""
    target = project_root / "k8s"
    shutil.copytree(REPO_K8S_DIR, target)
    return target


@pytest.fixture
def no_wait() -> RetryPolicy:
    """Retry policy that records waits instead of sleeping."""
    return RetryPolicy(attempts=3, delay=0.5, sleep=lambda _s: None)


class FakeCluster:
    """In-memory ClusterApi double.

    Applied manifests and secrets are recorded; re-applying identical text
    reports every resource unchanged.
    """

    def __init__(self, *, fail_on: str | None = None, pods: list[str] | None = None) -> None:
        self.fail_on = fail_on
        self.applied: list[str] = []
        self.manifests: dict[str, str] = {}
        self.secrets: dict[str, dict[str, str]] = {}
        self.pods = pods if pods is not None else ["qr-code-api-1", "qr-code-frontend-1"]
        self.calls: list[str] = []
        self.secret_failures = 0

    def apply(self, manifest: str, *, name: str) -> ApplyResult:
        self.calls.append(f"apply {name}")
        if name == self.fail_on:
            raise ApplyError(name, "admission webhook denied the request")
        action = "unchanged" if self.manifests.get(name) == manifest else (
            "configured" if name in self.manifests else "created"
        )
        self.manifests[name] = manifest
        self.applied.append(name)
        return ApplyResult((ResourceChange(f"deployment.apps/{name.split('-')[0]}", action),))

    def get(self, resource: str) -> str:
        self.calls.append(f"get {resource}")
        return f"NAME   STATUS\n{resource}-1   Running\n"

    def pod_names(self) -> list[str]:
        self.calls.append("pod_names")
        return list(self.pods)

    def logs(self, pod: str) -> str:
        self.calls.append(f"logs {pod}")
        return f"log line from {pod}\n"

    def get_secret(self, name: str) -> bool:
        self.calls.append(f"get_secret {name}")
        return name in self.secrets

    def upsert_secret(self, name: str, data: dict[str, str]) -> ApplyResult:
        self.calls.append(f"upsert_secret {name}")
        if self.secret_failures:
            self.secret_failures -= 1
            raise TransientApiError("connection reset by peer")
        action = "unchanged" if self.secrets.get(name) == data else (
            "configured" if name in self.secrets else "created"
        )
        self.secrets[name] = dict(data)
        return ApplyResult((ResourceChange(f"secret/{name}", action),))


class FakeCloud:
    """In-memory CloudApi double."""

    def __init__(self, *, connection_string: str = "DefaultEndpointsProtocol=https;AccountName=qrstorage1") -> None:
        self.connection_string = connection_string
        self.logins: list[ServicePrincipal] = []
        self.contexts: list[tuple[str, str, Path, bool]] = []
        self.login_error: Exception | None = None

    def login(self, credentials: ServicePrincipal) -> None:
        if self.login_error is not None:
            raise self.login_error
        self.logins.append(credentials)

    def get_cluster_credentials(
        self,
        resource_group: str,
        cluster_name: str,
        *,
        kubeconfig: Path,
        admin: bool = True,
    ) -> None:
        self.contexts.append((resource_group, cluster_name, kubeconfig, admin))

    def storage_connection_string(self, account_name: str, resource_group: str) -> str:
        return self.connection_string


class FakeArtifactStore:
    """ArtifactStore double serving artifacts from a dict keyed by artifact name."""

    def __init__(self, artifacts: dict[str, dict[str, bytes]] | None = None) -> None:
        self.artifacts = artifacts or {}
        self.requests: list[tuple[str, str, int | None]] = []

    def fetch(self, workflow_file: str, artifact_name: str, *, run_id: int | None = None) -> dict[str, bytes]:
        self.requests.append((workflow_file, artifact_name, run_id))
        if artifact_name not in self.artifacts:
            raise ArtifactNotFoundError(f"Artifact {artifact_name!r} not found")
        return self.artifacts[artifact_name]


class FakeRunHistory:
    """RunHistory double returning fixed conclusions per workflow file."""

    def __init__(self, conclusions: dict[str, str | None]) -> None:
        self.conclusions = conclusions
        self.queries: list[tuple[str, str | None]] = []

    def latest_conclusion(self, workflow_file: str, *, branch: str | None = None) -> str | None:
        self.queries.append((workflow_file, branch))
        return self.conclusions.get(workflow_file)


def terraform_artifact(outputs: dict | None = None) -> dict[str, bytes]:
    payload = TERRAFORM_OUTPUTS if outputs is None else outputs
    return {"terraform-outputs.json": json.dumps(payload).encode("utf-8")}


def image_artifact(api: str = "registry.example/qr-api:abc123", frontend: str = "registry.example/qr-front:abc123") -> dict[str, bytes]:
    return {"image-references.json": json.dumps({"api": api, "frontend": frontend}).encode("utf-8")}
