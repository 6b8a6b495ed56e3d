"""Azure identity and resource calls through the az CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..errors import AuthenticationError, PreconditionError, TransientApiError
from ..utils.commands import CommandResult, CommandRunner

_AUTH_MARKERS = ("AuthorizationFailed", "AADSTS", "az login", "InvalidAuthenticationToken")
_NOT_FOUND_MARKERS = ("ResourceNotFound", "ResourceGroupNotFound", "could not be found", "was not found")


@dataclass(frozen=True)
class ServicePrincipal:
    """Service-principal credential for non-interactive login."""

    client_id: str
    tenant_id: str
    client_secret: str = field(repr=False)
    subscription_id: str | None = None


def parse_credentials(blob: str) -> ServicePrincipal:
    """Parse the `AZURE_CREDENTIALS` JSON blob.

    Accepts the `az ad sp create-for-rbac --sdk-auth` shape
    (clientId, clientSecret, tenantId, subscriptionId).

    Raises:
        AuthenticationError: If the blob is not JSON or a required key is missing.
    """
    try:
        payload = json.loads(blob)
    except json.JSONDecodeError as exc:
        # Never include the blob itself in the message.
        raise AuthenticationError("Azure credentials are not valid JSON") from exc
    if not isinstance(payload, dict):
        raise AuthenticationError("Azure credentials must be a JSON object")
    missing = [k for k in ("clientId", "clientSecret", "tenantId") if not payload.get(k)]
    if missing:
        raise AuthenticationError(f"Azure credentials missing: {', '.join(missing)}")
    return ServicePrincipal(
        client_id=payload["clientId"],
        tenant_id=payload["tenantId"],
        client_secret=payload["clientSecret"],
        subscription_id=payload.get("subscriptionId") or None,
    )


@runtime_checkable
class CloudApi(Protocol):
    """Cloud provider operations used by context setup and secret provisioning."""

    def login(self, credentials: ServicePrincipal) -> None:
        ...

    def get_cluster_credentials(
        self,
        resource_group: str,
        cluster_name: str,
        *,
        kubeconfig: Path,
        admin: bool = True,
    ) -> None:
        ...

    def storage_connection_string(self, account_name: str, resource_group: str) -> str:
        ...


def _classify(result: CommandResult, what: str) -> Exception:
    stderr = result.stderr.strip()
    if any(marker in stderr for marker in _AUTH_MARKERS):
        return AuthenticationError(f"{what} was not authorized: {stderr}")
    if any(marker in stderr for marker in _NOT_FOUND_MARKERS):
        return PreconditionError(f"{what}: {stderr}")
    return TransientApiError(f"{what} failed: {stderr or result.returncode}")


class AzureCli:
    """`CloudApi` implementation backed by the az CLI."""

    def __init__(self, runner: CommandRunner, *, az: str = "az") -> None:
        self.runner = runner
        self.az = az

    def login(self, credentials: ServicePrincipal) -> None:
        result = self.runner.run(
            [
                self.az, "login", "--service-principal",
                "--username", credentials.client_id,
                "--password", credentials.client_secret,
                "--tenant", credentials.tenant_id,
                "--output", "none",
            ],
            secrets=[credentials.client_secret],
        )
        if not result.ok:
            raise AuthenticationError(f"Azure login failed: {result.stderr.strip() or result.returncode}")

        if credentials.subscription_id:
            result = self.runner.run(
                [self.az, "account", "set", "--subscription", credentials.subscription_id]
            )
            if not result.ok:
                raise AuthenticationError(f"Selecting subscription failed: {result.stderr.strip()}")

    def get_cluster_credentials(
        self,
        resource_group: str,
        cluster_name: str,
        *,
        kubeconfig: Path,
        admin: bool = True,
    ) -> None:
        args = [
            self.az, "aks", "get-credentials",
            "--resource-group", resource_group,
            "--name", cluster_name,
            "--file", str(kubeconfig),
            "--overwrite-existing",
        ]
        if admin:
            args.append("--admin")
        result = self.runner.run(args)
        if not result.ok:
            raise _classify(result, f"get-credentials for {resource_group}/{cluster_name}")

    def storage_connection_string(self, account_name: str, resource_group: str) -> str:
        result = self.runner.run(
            [
                self.az, "storage", "account", "show-connection-string",
                "--name", account_name,
                "--resource-group", resource_group,
                "--query", "connectionString",
                "--output", "tsv",
            ]
        )
        if not result.ok:
            raise _classify(result, f"show-connection-string for {account_name}")
        value = result.stdout.strip()
        if not value:
            raise PreconditionError(f"Storage account {account_name} returned an empty connection string")
        return value
