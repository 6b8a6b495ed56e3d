"""CLI commands that inspect the current cluster context."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer

from ...config import load_settings
from ...pipeline.diagnostics import collect_pod_logs, verify_deployment
from ..base import BaseCLI
from ..wiring import build_cluster

NamespaceOption = Annotated[
    str | None,
    typer.Option("-n", "--namespace", help="Namespace to inspect"),
]
KubeconfigOption = Annotated[
    Path | None,
    typer.Option("--kubeconfig", help="Kubeconfig file (default: kubectl's own)"),
]


class ClusterCLI(BaseCLI):
    """CLI helpers for read-only cluster inspection."""

    def __init__(self) -> None:
        super().__init__("cluster")

    def status(self, *, namespace: str | None, kubeconfig: Path | None) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation="status",
            op_callable=lambda: self._with_outputs(verify_deployment, namespace, kubeconfig),
            pre_message="Checking pod and service status...",
        )

    def logs(self, *, namespace: str | None, kubeconfig: Path | None) -> dict[str, Any]:
        return self.handle_cli_operation(
            operation="pod logs",
            op_callable=lambda: self._with_outputs(collect_pod_logs, namespace, kubeconfig),
            pre_message="Fetching pod logs...",
            log_module="logs",
        )

    def _with_outputs(self, func: Any, namespace: str | None, kubeconfig: Path | None) -> dict[str, Any]:
        settings = load_settings(namespace=namespace)
        result = func(build_cluster(settings, kubeconfig))
        for item in result.get("items") or []:
            output = item.pop("output", None)
            if output:
                typer.echo(f"=== {item['item']} ===")
                typer.echo(output.rstrip())
        return result


def status_command(
    namespace: NamespaceOption = None,
    kubeconfig: KubeconfigOption = None,
) -> None:
    """Show pods and services in the target namespace."""
    ClusterCLI().status(namespace=namespace, kubeconfig=kubeconfig)


def logs_command(
    namespace: NamespaceOption = None,
    kubeconfig: KubeconfigOption = None,
) -> None:
    """Dump logs for every pod in the namespace (best effort)."""
    ClusterCLI().logs(namespace=namespace, kubeconfig=kubeconfig)
