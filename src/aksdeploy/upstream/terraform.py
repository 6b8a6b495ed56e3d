"""Terraform outputs published by the infrastructure pipeline."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from typing import Any

from ..errors import MalformedArtifactError, PreconditionError
from .artifacts import ArtifactFiles, read_member
from .registry import TERRAFORM


@dataclass(frozen=True)
class UpstreamOutputs:
    """The four infrastructure values a deployment needs.

    Missing values are kept as empty strings; call `require_complete`
    before any cluster mutation.
    """

    aks_cluster_name: str = ""
    container_name: str = ""
    resource_group_name: str = ""
    storage_account_name: str = ""

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def missing(self) -> list[str]:
        return [name for name, value in asdict(self).items() if not value.strip()]

    def require_complete(self) -> UpstreamOutputs:
        """Return self if every field is set.

        Raises:
            PreconditionError: Naming every empty field.
        """
        missing = self.missing()
        if missing:
            raise PreconditionError(
                f"Terraform outputs missing required values: {', '.join(missing)}"
            )
        return self

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def _lookup(payload: dict[str, Any], key: str) -> str:
    """Resolve `.<key>.value` the way `jq -r` would, with absent values as ""."""
    entry = payload.get(key)
    if isinstance(entry, dict):
        value = entry.get("value")
    else:
        value = None
    if value is None:
        return ""
    return str(value)


def parse_terraform_outputs(text: str | bytes) -> UpstreamOutputs:
    """Parse a `terraform output -json` document.

    Args:
        text: JSON text of the form `{name: {"value": ...}, ...}`.

    Returns:
        UpstreamOutputs, with "" for any key that is absent or null.

    Raises:
        MalformedArtifactError: If the text is not a JSON object.
    """
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedArtifactError(f"{TERRAFORM.artifact_file} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedArtifactError(f"{TERRAFORM.artifact_file} must contain a JSON object")
    return UpstreamOutputs(**{name: _lookup(payload, name) for name in UpstreamOutputs.field_names()})


def outputs_from_artifact(files: ArtifactFiles) -> UpstreamOutputs:
    """Extract UpstreamOutputs from the downloaded terraform-outputs artifact."""
    raw = read_member(files, TERRAFORM.artifact_file, TERRAFORM.artifact_name)
    return parse_terraform_outputs(raw)
