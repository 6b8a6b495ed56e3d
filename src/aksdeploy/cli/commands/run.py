"""CLI command for a full deployment run."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Annotated, Any

import typer

from ...config import load_settings
from ...pipeline.run import resolve_simulation, run_deployment
from ..base import BaseCLI, handle_errors
from ..wiring import build_collaborators, build_event, build_retry


def run_command(
    event_name: Annotated[
        str | None,
        typer.Option("--event-name", help="Triggering event (defaults to GITHUB_EVENT_NAME, else workflow_dispatch)"),
    ] = None,
    event_path: Annotated[
        Path | None,
        typer.Option("--event-path", help="Event payload JSON (defaults to GITHUB_EVENT_PATH)"),
    ] = None,
    simulate: Annotated[
        bool | None,
        typer.Option(
            "--simulate/--no-simulate",
            help="Manual runs only: skip (or force) manifest apply. Defaults to the dispatch input.",
        ),
    ] = None,
    artifact_dir: Annotated[
        Path | None,
        typer.Option("--artifact-dir", help="Read upstream artifacts from this directory instead of the GitHub API"),
    ] = None,
    k8s_dir: Annotated[
        Path | None,
        typer.Option("--k8s-dir", help="Directory holding manifest templates"),
    ] = None,
    namespace: Annotated[
        str | None,
        typer.Option("-n", "--namespace", help="Target namespace"),
    ] = None,
    kubeconfig: Annotated[
        Path | None,
        typer.Option("--kubeconfig", help="Kubeconfig file to write the cluster context to (default: temporary)"),
    ] = None,
) -> None:
    """Verify upstream pipelines, then deploy the manifests to AKS.

    Runs verify-terraform and verify-docker, logs in to Azure, binds the
    cluster context, upserts the storage secret, applies the backend and
    frontend manifests in order and reports pod/service state. Pod logs are
    dumped if a deployment step fails.
    """
    cli = BaseCLI("run")
    with handle_errors("load settings", logger=cli.logger):
        settings = load_settings(namespace=namespace, k8s_dir=k8s_dir)
        event = build_event(settings, event_name, event_path)
        simulating = resolve_simulation(event, simulate, default=settings.simulate_default)

    def _run() -> dict[str, Any]:
        with tempfile.TemporaryDirectory(prefix="aksdeploy-") as tmp:
            kubeconfig_path = kubeconfig or Path(tmp) / "kubeconfig"
            deps = build_collaborators(
                settings,
                kubeconfig=kubeconfig_path,
                artifact_dir=artifact_dir,
            )
            try:
                credentials = settings.azure_credentials
                return run_deployment(
                    event,
                    deps,
                    kubeconfig=kubeconfig_path,
                    credentials_blob=credentials.get_secret_value() if credentials else None,
                    k8s_dir=settings.k8s_dir,
                    simulate=simulate,
                    simulate_default=settings.simulate_default,
                    fallback_api=settings.default_api_image,
                    fallback_frontend=settings.default_frontend_image,
                    retry=build_retry(settings),
                )
            finally:
                deps.close()

    cli.handle_cli_operation(
        operation="deploy",
        op_callable=_run,
        pre_message="Deploying to Azure Kubernetes Service...",
        log_module="run",
        log_dry_run=simulating,
        log_context={
            "event": event.name,
            "trigger_workflow": event.workflow_name or "-",
            "simulate": simulating,
            "namespace": settings.namespace,
            "k8s_dir": settings.k8s_dir,
        },
        exit_on_failure=True,
    )
