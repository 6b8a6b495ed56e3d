"""`ClusterApi` implementation backed by the kubectl CLI."""

from __future__ import annotations

import base64
from pathlib import Path

import yaml

from ..errors import ApplyError, TransientApiError
from ..utils.commands import CommandResult, CommandRunner
from .cluster import ApplyResult, parse_apply_output


def build_secret_manifest(name: str, data: dict[str, str]) -> str:
    """Render a generic (Opaque) Secret manifest with base64-encoded data."""
    doc = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name},
        "type": "Opaque",
        "data": {
            key: base64.b64encode(value.encode("utf-8")).decode("ascii")
            for key, value in data.items()
        },
    }
    return yaml.safe_dump(doc, sort_keys=False)


class KubectlCluster:
    """Talk to one cluster/namespace through kubectl.

    Args:
        runner: Command runner used for every call.
        kubectl: kubectl executable.
        kubeconfig: Process-scoped kubeconfig file; None uses kubectl's default.
        namespace: Namespace every call is scoped to.
        apply_timeout: Timeout for apply calls (seconds).
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        kubectl: str = "kubectl",
        kubeconfig: Path | None = None,
        namespace: str = "default",
        apply_timeout: float | None = None,
    ) -> None:
        self.runner = runner
        self.kubectl = kubectl
        self.kubeconfig = kubeconfig
        self.namespace = namespace
        self.apply_timeout = apply_timeout

    def _base(self) -> list[str]:
        args = [self.kubectl]
        if self.kubeconfig is not None:
            args += ["--kubeconfig", str(self.kubeconfig)]
        return args + ["--namespace", self.namespace]

    def _checked(self, result: CommandResult, what: str) -> CommandResult:
        if not result.ok:
            raise TransientApiError(f"{what} failed: {result.stderr.strip() or result.returncode}")
        return result

    def apply(self, manifest: str, *, name: str) -> ApplyResult:
        result = self.runner.run(
            self._base() + ["apply", "-f", "-"],
            input_text=manifest,
            timeout=self.apply_timeout,
        )
        if not result.ok:
            raise ApplyError(name, result.stderr.strip() or f"kubectl exited with {result.returncode}")
        return parse_apply_output(result.stdout)

    def get(self, resource: str) -> str:
        result = self._checked(self.runner.run(self._base() + ["get", resource]), f"get {resource}")
        return result.stdout

    def pod_names(self) -> list[str]:
        result = self._checked(
            self.runner.run(self._base() + ["get", "pods", "-o", "jsonpath={.items[*].metadata.name}"]),
            "list pods",
        )
        return result.stdout.split()

    def logs(self, pod: str) -> str:
        return self._checked(self.runner.run(self._base() + ["logs", pod]), f"logs {pod}").stdout

    def get_secret(self, name: str) -> bool:
        result = self.runner.run(self._base() + ["get", "secret", name, "-o", "name"])
        if result.ok:
            return bool(result.stdout.strip())
        if "NotFound" in result.stderr or "not found" in result.stderr:
            return False
        raise TransientApiError(f"get secret {name} failed: {result.stderr.strip()}")

    def upsert_secret(self, name: str, data: dict[str, str]) -> ApplyResult:
        manifest = build_secret_manifest(name, data)
        encoded = list(yaml.safe_load(manifest)["data"].values())
        result = self.runner.run(
            self._base() + ["apply", "-f", "-"],
            input_text=manifest,
            timeout=self.apply_timeout,
            secrets=[*data.values(), *encoded],
        )
        if not result.ok:
            raise TransientApiError(f"apply secret {name} failed: {result.stderr.strip()}")
        return parse_apply_output(result.stdout)
