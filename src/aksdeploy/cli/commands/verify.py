"""CLI commands for upstream verification."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer

from ...config import DeploySettings, load_settings
from ...pipeline.verify import verify_docker, verify_terraform
from ..base import BaseCLI
from ..wiring import build_artifact_store, build_event, build_github_store, build_retry

app = typer.Typer(
    name="verify",
    help="Upstream pipeline verification",
)

EventNameOption = Annotated[
    str | None,
    typer.Option("--event-name", help="Triggering event (defaults to GITHUB_EVENT_NAME, else workflow_dispatch)"),
]
EventPathOption = Annotated[
    Path | None,
    typer.Option("--event-path", help="Event payload JSON (defaults to GITHUB_EVENT_PATH)"),
]
ArtifactDirOption = Annotated[
    Path | None,
    typer.Option("--artifact-dir", help="Read upstream artifacts from this directory instead of the GitHub API"),
]


class VerifyCLI(BaseCLI):
    """CLI helpers for the two upstream gates."""

    def __init__(self) -> None:
        super().__init__("verify")

    def run_gate(
        self,
        *,
        upstream: str,
        event_name: str | None,
        event_path: Path | None,
        artifact_dir: Path | None,
    ) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation=f"verify {upstream}",
            op_callable=lambda: self._gate(upstream, event_name, event_path, artifact_dir),
            pre_message=f"Verifying {upstream} pipeline...",
            exit_on_failure=True,
        )

    def _gate(
        self,
        upstream: str,
        event_name: str | None,
        event_path: Path | None,
        artifact_dir: Path | None,
    ) -> dict[str, Any]:
        settings: DeploySettings = load_settings()
        event = build_event(settings, event_name, event_path)
        github = build_github_store(settings)
        try:
            store = build_artifact_store(settings, artifact_dir, github)
            if upstream == "terraform":
                result = verify_terraform(event, store, runs=github, retry=build_retry(settings))
                values = result["outputs"].as_dict() if result["outputs"] else {}
            else:
                result = verify_docker(
                    event,
                    store,
                    runs=github,
                    fallback_api=settings.default_api_image,
                    fallback_frontend=settings.default_frontend_image,
                    retry=build_retry(settings),
                )
                values = result["images"].as_dict() if result["images"] else {}
        finally:
            if github is not None:
                github.close()

        return {
            "success": result["success"],
            "status": "skipped" if result["skipped"] else None,
            "message": result["message"],
            "items": [
                {"item": key, "status": value or "<empty>"} for key, value in values.items()
            ],
        }


@app.command("terraform")
def verify_terraform_command(
    event_name: EventNameOption = None,
    event_path: EventPathOption = None,
    artifact_dir: ArtifactDirOption = None,
) -> None:
    """Check the Terraform Infrastructure gate and print its outputs.

    Downloads the terraform-outputs artifact and shows the cluster,
    container, resource group and storage account names.
    """
    VerifyCLI().run_gate(
        upstream="terraform",
        event_name=event_name,
        event_path=event_path,
        artifact_dir=artifact_dir,
    )


@app.command("docker")
def verify_docker_command(
    event_name: EventNameOption = None,
    event_path: EventPathOption = None,
    artifact_dir: ArtifactDirOption = None,
) -> None:
    """Check the image publish gate and print the image references."""
    VerifyCLI().run_gate(
        upstream="docker",
        event_name=event_name,
        event_path=event_path,
        artifact_dir=artifact_dir,
    )
