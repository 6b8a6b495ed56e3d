"""Cluster control-plane contract.

The deployment stage only talks to the cluster through `ClusterApi`, so the
shared cluster/secret store is an injected dependency rather than ambient
state. `KubectlCluster` is the production implementation; tests pass an
in-memory double.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

# e.g. "deployment.apps/qr-api created", "service/qr-api unchanged"
_APPLY_LINE = re.compile(r"^(?P<resource>\S+/\S+)\s+(?P<action>[a-z][a-z ()-]*)$")


@dataclass(frozen=True)
class ResourceChange:
    """One resource reported by an apply call."""

    resource: str
    action: str


@dataclass(frozen=True)
class ApplyResult:
    """Reconciliation result of a declarative apply."""

    changes: tuple[ResourceChange, ...] = ()

    @property
    def changed(self) -> bool:
        return any(c.action != "unchanged" for c in self.changes)

    def summary(self) -> str:
        if not self.changes:
            return "no resources reported"
        return ", ".join(f"{c.resource} {c.action}" for c in self.changes)


def parse_apply_output(text: str) -> ApplyResult:
    """Parse `kubectl apply` output into an ApplyResult.

    Lines that do not look like `<kind>/<name> <action>` are ignored.
    """
    changes = []
    for line in text.splitlines():
        match = _APPLY_LINE.match(line.strip())
        if match:
            changes.append(ResourceChange(match["resource"], match["action"].strip()))
    return ApplyResult(tuple(changes))


@runtime_checkable
class ClusterApi(Protocol):
    """Operations the deployment stage needs from the cluster."""

    def apply(self, manifest: str, *, name: str) -> ApplyResult:
        """Declaratively apply a manifest (create if absent, else patch)."""
        ...

    def get(self, resource: str) -> str:
        """Return a human-readable listing of a resource kind (e.g. "pods")."""
        ...

    def pod_names(self) -> list[str]:
        """Return the names of all pods in the namespace."""
        ...

    def logs(self, pod: str) -> str:
        """Return the logs of one pod."""
        ...

    def get_secret(self, name: str) -> bool:
        """Return True if a secret with this name exists."""
        ...

    def upsert_secret(self, name: str, data: dict[str, str]) -> ApplyResult:
        """Create or replace a generic secret holding `data`."""
        ...
