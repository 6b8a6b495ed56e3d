"""Full deployment run: verify upstreams, set up context, deploy.

Stage order:
1. verify-terraform and verify-docker (concurrently)
2. credential & cluster-context setup
3. storage secret, manifest apply, then verification; failure diagnostics
   if any stage-3 step fails

Precondition faults (gate failure, empty outputs, unrenderable manifests)
stop the run before anything is mutated.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..clients.azure import CloudApi
from ..clients.cluster import ClusterApi
from ..errors import DeployError
from ..events import TriggerEvent
from ..global_config import K8S_DIR, STORAGE_SECRET_KEY, STORAGE_SECRET_NAME
from ..manifests import render_all
from ..upstream.artifacts import ArtifactStore, RunHistory
from ..utils.retry import RetryPolicy
from .context import setup_cluster_context
from .deploy import apply_manifests
from .diagnostics import collect_pod_logs, verify_deployment
from .storage_secret import provision_storage_secret
from .verify import verify_upstreams

logger = __import__("logging").getLogger(__name__)


@dataclass
class Collaborators:
    """External systems a run talks to, injected so tests can replace them."""

    artifacts: ArtifactStore
    cloud: CloudApi
    cluster: ClusterApi
    runs: RunHistory | None = None

    def close(self) -> None:
        """Release HTTP clients held by the artifact store and run history."""
        closed = set()
        for obj in (self.artifacts, self.runs):
            close = getattr(obj, "close", None)
            if close is not None and id(obj) not in closed:
                close()
                closed.add(id(obj))


def resolve_simulation(event: TriggerEvent, simulate: bool | None, *, default: bool = True) -> bool:
    """Return True if manifest apply must be skipped for this run.

    Only manual runs can simulate; every automatic trigger applies. An
    explicit `simulate` overrides the dispatch input.
    """
    if not event.is_manual:
        return False
    if simulate is not None:
        return simulate
    return event.simulate(default=default)


def run_deployment(
    event: TriggerEvent,
    deps: Collaborators,
    *,
    kubeconfig: Path,
    credentials_blob: str | None,
    k8s_dir: Path = K8S_DIR,
    simulate: bool | None = None,
    simulate_default: bool = True,
    fallback_api: str | None = None,
    fallback_frontend: str | None = None,
    secret_name: str = STORAGE_SECRET_NAME,
    secret_key: str = STORAGE_SECRET_KEY,
    retry: RetryPolicy = RetryPolicy(),
) -> dict[str, Any]:
    """Run every stage for one triggering event.

    Args:
        event: Triggering event.
        deps: Artifact store, cloud, cluster and (optional) run history.
        kubeconfig: Process-scoped kubeconfig the cluster client reads.
        credentials_blob: Service-principal JSON.
        k8s_dir: Directory holding manifest templates.
        simulate: Explicit simulation flag; None reads the dispatch input.
        simulate_default: Simulation flag for manual runs without input.
        fallback_api: Default API image when no artifact is available.
        fallback_frontend: Default frontend image.
        secret_name: Cluster secret holding the connection string.
        secret_key: Key inside the secret.
        retry: Retry policy for transient calls.

    Returns:
        Result dictionary with success, status ("skipped", "failed",
        "simulated", "deployed"), stage, message, items and failures.
    """
    started = time.monotonic()
    items: list[dict[str, Any]] = []
    failures: list[dict[str, str]] = []

    def _finish(status: str, message: str, **extra: Any) -> dict[str, Any]:
        return {
            "success": status != "failed",
            "status": status,
            "message": message,
            "items": items,
            "failures": failures,
            "elapsed_s": time.monotonic() - started,
            **extra,
        }

    def _fail(stage: str, exc: Exception, **extra: Any) -> dict[str, Any]:
        failures.append({"item": stage, "reason": str(exc)})
        items.append({"item": stage, "status": "failed", "success": False, "error": str(exc)})
        return _finish("failed", f"{stage} failed: {exc}", stage=stage, **extra)

    # Stage 1: upstream verification
    terraform, docker = verify_upstreams(
        event,
        deps.artifacts,
        runs=deps.runs,
        fallback_api=fallback_api,
        fallback_frontend=fallback_frontend,
        retry=retry,
    )
    for stage, result in (("verify-terraform", terraform), ("verify-docker", docker)):
        status = "skipped" if result["skipped"] else ("success" if result["success"] else "failed")
        items.append({"item": stage, "status": status, "detail": result["message"]})
        if not result["success"]:
            failures.append({"item": stage, "reason": result["message"]})

    if failures:
        return _finish("failed", "Upstream verification failed", stage="verify")
    if terraform["skipped"] or docker["skipped"]:
        reasons = "; ".join(r["message"] for r in (terraform, docker) if r["skipped"])
        return _finish("skipped", f"Deployment skipped: {reasons}", stage="verify")

    outputs = terraform["outputs"]
    images = docker["images"]
    logger.info("Using Terraform outputs...")
    logger.info("Resource Group: %s", outputs.resource_group_name)
    logger.info("AKS Cluster: %s", outputs.aks_cluster_name)
    logger.info("Storage Account: %s", outputs.storage_account_name)
    logger.info("Docker Images: %s and %s", images.api, images.frontend)
    extra = {"outputs": outputs.as_dict(), "images": images.as_dict()}

    try:
        outputs.require_complete()
        manifests = render_all(k8s_dir, outputs, images)
    except DeployError as exc:
        return _fail("preconditions", exc, **extra)
    items.append({"item": "render", "status": "success", "detail": ", ".join(m.name for m in manifests)})

    simulating = resolve_simulation(event, simulate, default=simulate_default)

    # Stage 2: credentials and cluster context
    try:
        setup_cluster_context(deps.cloud, credentials_blob, outputs, kubeconfig, retry=retry)
    except DeployError as exc:
        return _fail("context", exc, **extra)
    items.append({"item": "context", "status": "success", "detail": outputs.aks_cluster_name})

    # Stage 3: secret, apply, verify (or diagnose)
    stage_failed = False
    try:
        secret = provision_storage_secret(
            deps.cloud,
            deps.cluster,
            outputs,
            secret_name=secret_name,
            secret_key=secret_key,
            retry=retry,
        )
    except DeployError as exc:
        failures.append({"item": "secret", "reason": str(exc)})
        items.append({"item": "secret", "status": "failed", "success": False, "error": str(exc)})
        stage_failed = True
    else:
        items.append({"item": "secret", "status": "success", "detail": secret["message"]})

    if not stage_failed:
        applied = apply_manifests(deps.cluster, manifests, simulate=simulating)
        items.extend(applied["items"])
        failures.extend(applied.get("failures") or [])
        stage_failed = not applied["success"]

    if stage_failed:
        diagnostics = collect_pod_logs(deps.cluster)
        return _finish(
            "failed",
            f"Deployment failed; {diagnostics['message'].lower()}",
            stage="deploy",
            diagnostics=diagnostics,
            **extra,
        )

    verification = verify_deployment(deps.cluster)
    items.extend(verification["items"])
    if simulating:
        return _finish("simulated", "Simulation mode: deployment steps skipped.", stage="deploy", **extra)
    return _finish("deployed", "Deployment applied", stage="deploy", **extra)
