# src/aksdeploy/upstream/registry.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from ..global_config import (
    DOCKER_ARTIFACT_NAME,
    DOCKER_REFERENCES_FILE,
    DOCKER_WORKFLOW_FILE,
    DOCKER_WORKFLOW_NAME,
    TERRAFORM_ARTIFACT_NAME,
    TERRAFORM_OUTPUTS_FILE,
    TERRAFORM_WORKFLOW_FILE,
    TERRAFORM_WORKFLOW_NAME,
)


@dataclass(frozen=True)
class UpstreamSpec:
    """Description of an upstream pipeline this deployment depends on.

    Attributes:
        code: Short identifier used on the CLI (e.g., "terraform", "docker").
        workflow_name: Display name reported in completion events.
        workflow_file: Workflow file name used for run and artifact lookups.
        artifact_name: Name of the artifact the workflow publishes.
        artifact_file: File inside the artifact holding the outputs.
    """

    code: str
    workflow_name: str
    workflow_file: str
    artifact_name: str
    artifact_file: str


UPSTREAMS: Final[dict[str, UpstreamSpec]] = {
    "terraform": UpstreamSpec(
        code="terraform",
        workflow_name=TERRAFORM_WORKFLOW_NAME,
        workflow_file=TERRAFORM_WORKFLOW_FILE,
        artifact_name=TERRAFORM_ARTIFACT_NAME,
        artifact_file=TERRAFORM_OUTPUTS_FILE,
    ),
    "docker": UpstreamSpec(
        code="docker",
        workflow_name=DOCKER_WORKFLOW_NAME,
        workflow_file=DOCKER_WORKFLOW_FILE,
        artifact_name=DOCKER_ARTIFACT_NAME,
        artifact_file=DOCKER_REFERENCES_FILE,
    ),
}

TERRAFORM: Final[UpstreamSpec] = UPSTREAMS["terraform"]
DOCKER: Final[UpstreamSpec] = UPSTREAMS["docker"]


def get_upstream(code: str) -> UpstreamSpec:
    """Get the registered upstream for a code.

    Args:
        code: Upstream code (e.g., "terraform", "docker").

    Returns:
        The registered UpstreamSpec.

    Raises:
        ValueError: If code is not registered.
    """
    key = code.strip().lower()
    if key not in UPSTREAMS:
        raise ValueError(
            f"Unknown upstream: {code!r}. "
            f"Known upstreams: {', '.join(sorted(UPSTREAMS))}"
        )
    return UPSTREAMS[key]
