"""Verification verb: gate on the two upstream pipelines.

verify-terraform and verify-docker have no data dependency on each other
and run concurrently; a deployment proceeds only when both gates pass.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ..errors import ArtifactNotFoundError, DeployError
from ..events import WORKFLOW_RUN_EVENT, TriggerEvent
from ..upstream.artifacts import ArtifactStore, RunHistory
from ..upstream.images import ImageReferences, fallback_images, images_from_artifact
from ..upstream.registry import DOCKER, TERRAFORM, UpstreamSpec
from ..upstream.terraform import UpstreamOutputs, outputs_from_artifact
from ..utils.retry import RetryPolicy

logger = __import__("logging").getLogger(__name__)


@dataclass(frozen=True)
class GateDecision:
    """Whether an upstream gate lets the run through, and why."""

    passed: bool
    reason: str


def evaluate_gate(
    event: TriggerEvent,
    upstream: UpstreamSpec,
    runs: RunHistory | None = None,
) -> GateDecision:
    """Decide whether `upstream` is satisfied for this event.

    Manual runs always pass. A completion event from the upstream itself
    passes only on success. Completion of the other upstream, or a
    manifest push/pull request, passes if the upstream's latest completed
    run succeeded. Anything else does not trigger a deployment.
    """
    if event.is_manual:
        return GateDecision(True, "manual run")

    if event.name == WORKFLOW_RUN_EVENT and event.workflow_name == upstream.workflow_name:
        if event.completed_successfully(upstream.workflow_name):
            return GateDecision(True, f"{upstream.workflow_name} completed successfully")
        return GateDecision(False, f"{upstream.workflow_name} concluded {event.conclusion or 'unknown'}")

    if event.name == WORKFLOW_RUN_EVENT or event.is_manifest_change:
        if runs is None:
            return GateDecision(False, f"no run history available for {upstream.workflow_name}")
        conclusion = runs.latest_conclusion(upstream.workflow_file, branch=event.head_branch)
        if conclusion == "success":
            return GateDecision(True, f"latest {upstream.workflow_name} run succeeded")
        return GateDecision(False, f"latest {upstream.workflow_name} run concluded {conclusion or 'never ran'}")

    return GateDecision(False, f"event {event.name!r} does not trigger a deployment")


def fetch_terraform_outputs(
    event: TriggerEvent,
    store: ArtifactStore,
    *,
    retry: RetryPolicy = RetryPolicy(),
) -> UpstreamOutputs:
    """Download and parse the terraform-outputs artifact.

    Uses the triggering run when the event came from the Terraform
    workflow, otherwise its latest successful run.
    """
    run_id = event.run_id if event.completed_successfully(TERRAFORM.workflow_name) else None
    files = retry.call(
        lambda: store.fetch(TERRAFORM.workflow_file, TERRAFORM.artifact_name, run_id=run_id),
        operation=f"download {TERRAFORM.artifact_name}",
    )
    return outputs_from_artifact(files)


def fetch_image_references(
    event: TriggerEvent,
    store: ArtifactStore,
    *,
    fallback_api: str | None = None,
    fallback_frontend: str | None = None,
    retry: RetryPolicy = RetryPolicy(),
) -> ImageReferences:
    """Resolve image references from the publish pipeline's artifact.

    Manual runs, and runs where the artifact cannot be fetched, fall back
    to the configured defaults.
    """
    if event.is_manual:
        return fallback_images(fallback_api, fallback_frontend, reason="manual run")

    run_id = event.run_id if event.completed_successfully(DOCKER.workflow_name) else None
    try:
        files = retry.call(
            lambda: store.fetch(DOCKER.workflow_file, DOCKER.artifact_name, run_id=run_id),
            operation=f"download {DOCKER.artifact_name}",
        )
    except ArtifactNotFoundError as exc:
        return fallback_images(fallback_api, fallback_frontend, reason=str(exc))
    return images_from_artifact(files)


def verify_terraform(
    event: TriggerEvent,
    store: ArtifactStore,
    *,
    runs: RunHistory | None = None,
    retry: RetryPolicy = RetryPolicy(),
) -> dict[str, Any]:
    """Run the infrastructure gate and extract its outputs.

    Returns:
        Result dictionary with:
        - success: bool (True when skipped)
        - skipped: bool (gate did not pass; nothing should be deployed)
        - message: str
        - outputs: UpstreamOutputs | None
    """
    decision = evaluate_gate(event, TERRAFORM, runs)
    if not decision.passed:
        logger.info("verify-terraform skipped: %s", decision.reason)
        return {"success": True, "skipped": True, "message": decision.reason, "outputs": None}

    try:
        outputs = fetch_terraform_outputs(event, store, retry=retry)
    except DeployError as exc:
        logger.error("verify-terraform failed: %s", exc)
        return {"success": False, "skipped": False, "message": str(exc), "outputs": None, "error": exc}

    missing = outputs.missing()
    total = len(UpstreamOutputs.field_names())
    message = f"{decision.reason}; resolved {total - len(missing)}/{total} outputs"
    if missing:
        message += f" (missing: {', '.join(missing)})"
    return {"success": True, "skipped": False, "message": message, "outputs": outputs}


def verify_docker(
    event: TriggerEvent,
    store: ArtifactStore,
    *,
    runs: RunHistory | None = None,
    fallback_api: str | None = None,
    fallback_frontend: str | None = None,
    retry: RetryPolicy = RetryPolicy(),
) -> dict[str, Any]:
    """Run the image gate and resolve image references.

    Returns:
        Result dictionary with success, skipped, message and images
        (ImageReferences | None).
    """
    decision = evaluate_gate(event, DOCKER, runs)
    if not decision.passed:
        logger.info("verify-docker skipped: %s", decision.reason)
        return {"success": True, "skipped": True, "message": decision.reason, "images": None}

    try:
        images = fetch_image_references(
            event,
            store,
            fallback_api=fallback_api,
            fallback_frontend=fallback_frontend,
            retry=retry,
        )
    except DeployError as exc:
        logger.error("verify-docker failed: %s", exc)
        return {"success": False, "skipped": False, "message": str(exc), "images": None, "error": exc}

    logger.info("Docker images are ready for deployment: %s, %s", images.api, images.frontend)
    return {
        "success": True,
        "skipped": False,
        "message": f"{decision.reason}; images from {images.source}",
        "images": images,
    }


def verify_upstreams(
    event: TriggerEvent,
    store: ArtifactStore,
    *,
    runs: RunHistory | None = None,
    fallback_api: str | None = None,
    fallback_frontend: str | None = None,
    retry: RetryPolicy = RetryPolicy(),
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Run both gates concurrently and wait for both."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="verify") as pool:
        terraform = pool.submit(verify_terraform, event, store, runs=runs, retry=retry)
        docker = pool.submit(
            verify_docker,
            event,
            store,
            runs=runs,
            fallback_api=fallback_api,
            fallback_frontend=fallback_frontend,
            retry=retry,
        )
        return terraform.result(), docker.result()
