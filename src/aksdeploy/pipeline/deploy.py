"""Deployment verb: apply rendered manifests in order."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..clients.cluster import ClusterApi
from ..errors import DeployError
from ..manifests import DeploymentManifest

logger = __import__("logging").getLogger(__name__)


def apply_manifests(
    cluster: ClusterApi,
    manifests: Sequence[DeploymentManifest],
    *,
    simulate: bool = False,
) -> dict[str, Any]:
    """Apply manifests one at a time, in the order given.

    Each apply finishes before the next starts. The first failure stops
    the sequence: later manifests are reported as skipped and nothing
    already applied is rolled back, so partial application is visible in
    the result.

    Args:
        cluster: Cluster to apply to.
        manifests: Rendered manifests in apply order (backend first).
        simulate: If True, make no apply calls and only report what would
            be applied.

    Returns:
        Result dictionary with:
        - success: bool
        - total / succeeded / failed / skipped: int
        - message: str
        - items: per-manifest dicts (item, status, detail)
        - failures: per-manifest failure dicts (item, reason)
    """
    items: list[dict[str, Any]] = []
    failures: list[dict[str, str]] = []

    if simulate:
        for manifest in manifests:
            logger.info("Simulation mode: would apply %s", manifest.name)
            items.append({"item": manifest.name, "status": "simulated", "success": True})
        return {
            "success": True,
            "total": len(manifests),
            "succeeded": 0,
            "failed": 0,
            "skipped": len(manifests),
            "message": "Simulation mode: deployment steps skipped.",
            "items": items,
        }

    stopped = False
    for manifest in manifests:
        if stopped:
            items.append({"item": manifest.name, "status": "skipped", "detail": "earlier apply failed"})
            continue
        logger.info("Deploying %s...", manifest.name)
        try:
            result = cluster.apply(manifest.text, name=manifest.name)
        except DeployError as exc:
            logger.error("Apply of %s failed: %s", manifest.name, exc)
            failures.append({"item": manifest.name, "reason": str(exc)})
            items.append({"item": manifest.name, "status": "failed", "success": False, "error": str(exc)})
            stopped = True
            continue
        items.append({
            "item": manifest.name,
            "status": "applied" if result.changed else "unchanged",
            "detail": result.summary(),
        })

    succeeded = sum(1 for i in items if i["status"] in ("applied", "unchanged"))
    skipped = sum(1 for i in items if i["status"] == "skipped")
    message = f"Applied {succeeded}/{len(manifests)} manifests"
    if failures and succeeded:
        message += " (partial: applied resources were left in place)"
    return {
        "success": not failures,
        "total": len(manifests),
        "succeeded": succeeded,
        "failed": len(failures),
        "skipped": skipped,
        "message": message,
        "items": items,
        "failures": failures,
    }
