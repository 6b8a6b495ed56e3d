"""Tests for secret provisioning, manifest apply and diagnostics."""

from __future__ import annotations

from pathlib import Path

import pytest

from aksdeploy.errors import AuthenticationError, TransientApiError
from aksdeploy.manifests import DeploymentManifest
from aksdeploy.pipeline.context import setup_cluster_context
from aksdeploy.pipeline.deploy import apply_manifests
from aksdeploy.pipeline.diagnostics import collect_pod_logs, verify_deployment
from aksdeploy.pipeline.storage_secret import provision_storage_secret
from aksdeploy.upstream.terraform import UpstreamOutputs

from conftest import CREDENTIALS_JSON, FakeCloud, FakeCluster

OUTPUTS = UpstreamOutputs("aks-prod", "qr-images", "rg-prod", "qrstorage1")
MANIFESTS = [
    DeploymentManifest("backend-deployment.yaml", "kind: Deployment\nmetadata: {name: api}\n"),
    DeploymentManifest("frontend-deployment.yaml", "kind: Deployment\nmetadata: {name: front}\n"),
]


@pytest.mark.unit
class TestApplyManifests:
    """Tests for ordered, stop-on-failure apply."""

    def test_applies_backend_before_frontend(self) -> None:
        cluster = FakeCluster()
        result = apply_manifests(cluster, MANIFESTS)
        assert result["success"]
        assert cluster.applied == ["backend-deployment.yaml", "frontend-deployment.yaml"]
        assert [i["status"] for i in result["items"]] == ["applied", "applied"]

    def test_reapply_is_unchanged(self) -> None:
        cluster = FakeCluster()
        apply_manifests(cluster, MANIFESTS)
        result = apply_manifests(cluster, MANIFESTS)
        assert [i["status"] for i in result["items"]] == ["unchanged", "unchanged"]

    def test_frontend_failure_leaves_backend_applied(self) -> None:
        cluster = FakeCluster(fail_on="frontend-deployment.yaml")
        result = apply_manifests(cluster, MANIFESTS)
        assert result["success"] is False
        assert result["succeeded"] == 1
        assert "partial" in result["message"]
        assert cluster.applied == ["backend-deployment.yaml"]

    def test_backend_failure_skips_frontend(self) -> None:
        cluster = FakeCluster(fail_on="backend-deployment.yaml")
        result = apply_manifests(cluster, MANIFESTS)
        assert [i["status"] for i in result["items"]] == ["failed", "skipped"]
        assert cluster.calls == ["apply backend-deployment.yaml"]

    def test_simulation_makes_no_apply_calls(self) -> None:
        cluster = FakeCluster()
        result = apply_manifests(cluster, MANIFESTS, simulate=True)
        assert result["success"]
        assert cluster.calls == []
        assert result["message"] == "Simulation mode: deployment steps skipped."


@pytest.mark.unit
class TestStorageSecret:
    """Tests for the storage connection-string secret."""

    def test_creates_secret_with_connection_string(self, no_wait) -> None:
        cluster = FakeCluster()
        result = provision_storage_secret(FakeCloud(connection_string="cs-1"), cluster, OUTPUTS, retry=no_wait)
        assert result["changed"]
        assert cluster.secrets == {"azure-storage-secret": {"AZURE_STORAGE_CONNECTION_STRING": "cs-1"}}

    def test_rerun_keeps_single_secret_with_latest_value(self, no_wait) -> None:
        cluster = FakeCluster()
        provision_storage_secret(FakeCloud(connection_string="cs-1"), cluster, OUTPUTS, retry=no_wait)
        provision_storage_secret(FakeCloud(connection_string="cs-2"), cluster, OUTPUTS, retry=no_wait)
        assert cluster.secrets == {"azure-storage-secret": {"AZURE_STORAGE_CONNECTION_STRING": "cs-2"}}

    def test_transient_upsert_failure_is_retried(self, no_wait) -> None:
        cluster = FakeCluster()
        cluster.secret_failures = 2
        provision_storage_secret(FakeCloud(), cluster, OUTPUTS, retry=no_wait)
        assert cluster.calls.count("upsert_secret azure-storage-secret") == 3

    def test_missing_after_upsert_is_an_error(self, no_wait) -> None:
        class LosingCluster(FakeCluster):
            def get_secret(self, name: str) -> bool:
                return False

        with pytest.raises(TransientApiError, match="not found after upsert"):
            provision_storage_secret(FakeCloud(), LosingCluster(), OUTPUTS, retry=no_wait)


@pytest.mark.unit
class TestClusterContext:
    """Tests for login and cluster binding."""

    def test_binds_admin_context_to_kubeconfig(self, tmp_path: Path, no_wait) -> None:
        cloud = FakeCloud()
        kubeconfig = tmp_path / "kube" / "config"
        setup_cluster_context(cloud, CREDENTIALS_JSON, OUTPUTS, kubeconfig, retry=no_wait)
        assert cloud.logins[0].tenant_id == "tenant-1"
        assert cloud.contexts == [("rg-prod", "aks-prod", kubeconfig, True)]

    def test_missing_credentials(self, tmp_path: Path, no_wait) -> None:
        with pytest.raises(AuthenticationError, match="AZURE_CREDENTIALS"):
            setup_cluster_context(FakeCloud(), None, OUTPUTS, tmp_path / "config", retry=no_wait)

    def test_malformed_credentials_do_not_leak(self, tmp_path: Path, no_wait) -> None:
        with pytest.raises(AuthenticationError) as excinfo:
            setup_cluster_context(FakeCloud(), "clientSecret=hunter2", OUTPUTS, tmp_path / "config", retry=no_wait)
        assert "hunter2" not in str(excinfo.value)


@pytest.mark.unit
class TestDiagnostics:
    """Tests for verification and best-effort log collection."""

    def test_verify_lists_pods_and_services(self) -> None:
        cluster = FakeCluster()
        result = verify_deployment(cluster)
        assert [i["item"] for i in result["items"]] == ["pods", "services"]
        assert cluster.calls == ["get pods", "get services"]

    def test_verify_is_observational(self) -> None:
        class Broken(FakeCluster):
            def get(self, resource: str) -> str:
                raise TransientApiError("connection refused")

        result = verify_deployment(Broken())
        assert result["success"]
        assert {i["status"] for i in result["items"]} == {"unavailable"}

    def test_collects_logs_from_every_pod(self) -> None:
        result = collect_pod_logs(FakeCluster(pods=["a", "b"]))
        assert result["succeeded"] == 2
        assert result["items"][0]["output"] == "log line from a\n"

    def test_one_pod_failure_does_not_stop_collection(self) -> None:
        class Flaky(FakeCluster):
            def logs(self, pod: str) -> str:
                if pod == "a":
                    raise TransientApiError("container not ready")
                return super().logs(pod)

        result = collect_pod_logs(Flaky(pods=["a", "b"]))
        assert [i["status"] for i in result["items"]] == ["unavailable", "collected"]

    def test_pod_listing_failure_never_raises(self) -> None:
        class NoPods(FakeCluster):
            def pod_names(self) -> list[str]:
                raise TransientApiError("forbidden")

        result = collect_pod_logs(NoPods())
        assert result["success"] is False
        assert "forbidden" in result["message"]
