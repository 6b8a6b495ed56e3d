"""Credential and cluster-context setup."""

from __future__ import annotations

from pathlib import Path

from ..clients.azure import CloudApi, parse_credentials
from ..errors import AuthenticationError
from ..upstream.terraform import UpstreamOutputs
from ..utils.retry import RetryPolicy

logger = __import__("logging").getLogger(__name__)


def setup_cluster_context(
    cloud: CloudApi,
    credentials_blob: str | None,
    outputs: UpstreamOutputs,
    kubeconfig: Path,
    *,
    retry: RetryPolicy = RetryPolicy(),
) -> None:
    """Log in to Azure and bind a process-scoped kubeconfig to the cluster.

    Login is attempted once; fetching cluster credentials is retried on
    transient failures.

    Args:
        cloud: Cloud provider client.
        credentials_blob: Service-principal JSON from the secret store.
        outputs: Complete infrastructure outputs.
        kubeconfig: File the cluster context is written to.
        retry: Retry policy for the credential fetch.

    Raises:
        AuthenticationError: If credentials are absent, malformed or rejected.
    """
    if not credentials_blob:
        raise AuthenticationError("AZURE_CREDENTIALS is not set")
    credentials = parse_credentials(credentials_blob)

    logger.info("Logging in to Azure as service principal %s", credentials.client_id)
    cloud.login(credentials)

    logger.info(
        "Binding cluster context: resource group %s, cluster %s",
        outputs.resource_group_name,
        outputs.aks_cluster_name,
    )
    kubeconfig.parent.mkdir(parents=True, exist_ok=True)
    retry.call(
        lambda: cloud.get_cluster_credentials(
            outputs.resource_group_name,
            outputs.aks_cluster_name,
            kubeconfig=kubeconfig,
            admin=True,
        ),
        operation="get cluster credentials",
    )
