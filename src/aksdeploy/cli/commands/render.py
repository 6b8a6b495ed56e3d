"""CLI command for rendering manifests locally."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer

from ...config import load_settings
from ...global_config import RENDERED_DIR
from ...manifests import render_all, write_rendered
from ...upstream.images import ImageReferences
from ...upstream.terraform import UpstreamOutputs, parse_terraform_outputs
from ..base import BaseCLI


def render_command(
    outputs_file: Annotated[
        Path | None,
        typer.Option("--outputs-file", help="terraform-outputs.json to read values from"),
    ] = None,
    container_name: Annotated[
        str | None,
        typer.Option("--container-name", help="Value for <CONTAINER_NAME> (overrides --outputs-file)"),
    ] = None,
    storage_account_name: Annotated[
        str | None,
        typer.Option("--storage-account-name", help="Value for <STORAGE_ACCOUNT_NAME> (overrides --outputs-file)"),
    ] = None,
    api_image: Annotated[
        str | None,
        typer.Option("--api-image", help="Value for <API_IMAGE> (defaults to the configured fallback)"),
    ] = None,
    frontend_image: Annotated[
        str | None,
        typer.Option("--frontend-image", help="Value for <FRONTEND_IMAGE> (defaults to the configured fallback)"),
    ] = None,
    k8s_dir: Annotated[
        Path | None,
        typer.Option("--k8s-dir", help="Directory holding manifest templates"),
    ] = None,
    output_dir: Annotated[
        Path,
        typer.Option("-o", "--output-dir", help="Where to write rendered manifests"),
    ] = RENDERED_DIR,
) -> None:
    """Render manifest templates without touching any cluster.

    Substitutes every placeholder token, validates the result as YAML and
    writes one file per manifest to the output directory. Templates are
    left unchanged.
    """
    cli = BaseCLI("render")

    def _render() -> dict[str, Any]:
        settings = load_settings(k8s_dir=k8s_dir)
        base = UpstreamOutputs()
        if outputs_file is not None:
            base = parse_terraform_outputs(outputs_file.read_text(encoding="utf-8"))
        outputs = UpstreamOutputs(
            aks_cluster_name=base.aks_cluster_name,
            container_name=container_name or base.container_name,
            resource_group_name=base.resource_group_name,
            storage_account_name=storage_account_name or base.storage_account_name,
        )
        images = ImageReferences(
            api=api_image or settings.default_api_image or "",
            frontend=frontend_image or settings.default_frontend_image or "",
        )
        manifests = render_all(settings.k8s_dir, outputs, images)
        written = write_rendered(manifests, output_dir)
        return {
            "success": True,
            "total": len(written),
            "message": f"Rendered manifests written to {output_dir}",
            "items": [{"item": path.name, "status": "rendered", "detail": str(path)} for path in written],
        }

    cli.handle_cli_operation(
        operation="render",
        op_callable=_render,
        pre_message="Rendering manifests...",
    )
