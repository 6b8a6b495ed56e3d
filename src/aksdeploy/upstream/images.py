"""Image references published by the image build pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Literal

from ..errors import MalformedArtifactError, PreconditionError
from .artifacts import ArtifactFiles, read_member
from .registry import DOCKER

logger = __import__("logging").getLogger(__name__)

SERVICES: tuple[str, ...] = ("api", "frontend")

ImageSource = Literal["artifact", "fallback"]


@dataclass(frozen=True)
class ImageReferences:
    """Fully qualified image references per logical service.

    Attributes:
        api: Image for the backend API (registry/repo:tag).
        frontend: Image for the frontend.
        source: Where the references came from; "fallback" means the
            configured defaults were used and may be stale.
    """

    api: str
    frontend: str
    source: ImageSource = "artifact"

    def as_dict(self) -> dict[str, str]:
        return {"api": self.api, "frontend": self.frontend}


def parse_image_references(text: str | bytes) -> ImageReferences:
    """Parse an image-references document (`{"api": ..., "frontend": ...}`).

    Raises:
        MalformedArtifactError: If the JSON is invalid or a service is missing.
    """
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedArtifactError(f"{DOCKER.artifact_file} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedArtifactError(f"{DOCKER.artifact_file} must contain a JSON object")

    missing = [s for s in SERVICES if not str(payload.get(s) or "").strip()]
    if missing:
        raise MalformedArtifactError(
            f"{DOCKER.artifact_file} has no image for: {', '.join(missing)}"
        )
    return ImageReferences(api=str(payload["api"]), frontend=str(payload["frontend"]))


def images_from_artifact(files: ArtifactFiles) -> ImageReferences:
    """Extract ImageReferences from the downloaded image-references artifact."""
    raw = read_member(files, DOCKER.artifact_file, DOCKER.artifact_name)
    return parse_image_references(raw)


def fallback_images(api: str | None, frontend: str | None, *, reason: str) -> ImageReferences:
    """Build ImageReferences from configured defaults.

    Args:
        api: Default API image, or None if not configured.
        frontend: Default frontend image, or None if not configured.
        reason: Why the fallback is used (logged).

    Raises:
        PreconditionError: If either default is missing.
    """
    if not api or not frontend:
        raise PreconditionError(f"No image references available ({reason}) and no fallback images configured")
    logger.warning("Using fallback image references (%s); images may be stale: %s, %s", reason, api, frontend)
    return ImageReferences(api=api, frontend=frontend, source="fallback")
