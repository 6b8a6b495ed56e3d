"""Manifest templates and token substitution.

Templates on disk are never modified: rendering returns a new
`DeploymentManifest` whose text is submitted to the cluster (or written to
an output directory for inspection).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from .errors import PreconditionError
from .global_config import (
    API_IMAGE_TOKEN,
    CONTAINER_NAME_TOKEN,
    FRONTEND_IMAGE_TOKEN,
    MANIFEST_ORDER,
    STORAGE_ACCOUNT_NAME_TOKEN,
)
from .upstream.images import ImageReferences
from .upstream.terraform import UpstreamOutputs

logger = __import__("logging").getLogger(__name__)

ALL_TOKENS: tuple[str, ...] = (
    CONTAINER_NAME_TOKEN,
    STORAGE_ACCOUNT_NAME_TOKEN,
    API_IMAGE_TOKEN,
    FRONTEND_IMAGE_TOKEN,
)


@dataclass(frozen=True)
class DeploymentManifest:
    """A manifest template, or the result of rendering one.

    Attributes:
        name: File name (e.g. "backend-deployment.yaml").
        text: Manifest text.
        path: Template path the text was loaded from, if any.
    """

    name: str
    text: str
    path: Path | None = None

    def tokens_present(self, tokens: Iterable[str] = ALL_TOKENS) -> list[str]:
        return [t for t in tokens if t in self.text]

    def render(self, values: dict[str, str]) -> DeploymentManifest:
        """Replace every occurrence of each token with its value."""
        text = self.text
        for token, value in values.items():
            text = text.replace(token, value)
        return replace(self, text=text)


def substitution_values(
    outputs: UpstreamOutputs,
    images: ImageReferences | None = None,
) -> dict[str, str]:
    """Map placeholder tokens to resolved values."""
    values = {
        CONTAINER_NAME_TOKEN: outputs.container_name,
        STORAGE_ACCOUNT_NAME_TOKEN: outputs.storage_account_name,
    }
    if images is not None:
        values[API_IMAGE_TOKEN] = images.api
        values[FRONTEND_IMAGE_TOKEN] = images.frontend
    return values


def load_templates(k8s_dir: Path, names: Sequence[str] = MANIFEST_ORDER) -> list[DeploymentManifest]:
    """Load manifest templates in apply order.

    Raises:
        PreconditionError: If a template file is missing.
    """
    templates = []
    for name in names:
        path = k8s_dir / name
        if not path.is_file():
            raise PreconditionError(f"Manifest template not found: {path}")
        templates.append(DeploymentManifest(name=name, text=path.read_text(encoding="utf-8"), path=path))
    return templates


def render_manifest(template: DeploymentManifest, values: dict[str, str]) -> DeploymentManifest:
    """Render one template and check the result is complete, valid YAML.

    Raises:
        PreconditionError: If a value is empty, a token is left over, or the
            rendered text does not parse as YAML.
    """
    empty = [token for token, value in values.items() if token in template.text and not value]
    if empty:
        raise PreconditionError(f"{template.name}: no value for {', '.join(empty)}")

    rendered = template.render(values)
    leftover = rendered.tokens_present()
    if leftover:
        raise PreconditionError(f"{template.name}: unresolved placeholders {', '.join(leftover)}")

    try:
        docs = [doc for doc in yaml.safe_load_all(rendered.text) if doc]
    except yaml.YAMLError as exc:
        raise PreconditionError(f"{template.name}: rendered manifest is not valid YAML: {exc}") from exc
    logger.info("Rendered %s (%d documents)", template.name, len(docs))
    return rendered


def render_all(
    k8s_dir: Path,
    outputs: UpstreamOutputs,
    images: ImageReferences | None = None,
    *,
    names: Sequence[str] = MANIFEST_ORDER,
) -> list[DeploymentManifest]:
    """Load and render every manifest in apply order."""
    values = substitution_values(outputs, images)
    return [render_manifest(t, values) for t in load_templates(k8s_dir, names)]


def write_rendered(manifests: Iterable[DeploymentManifest], out_dir: Path) -> list[Path]:
    """Write rendered manifests to `out_dir`, returning the written paths."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for manifest in manifests:
        path = out_dir / manifest.name
        path.write_text(manifest.text, encoding="utf-8")
        written.append(path)
    return written
