"""Storage connection-string secret provisioning."""

from __future__ import annotations

from typing import Any

from ..clients.azure import CloudApi
from ..clients.cluster import ClusterApi
from ..errors import TransientApiError
from ..global_config import STORAGE_SECRET_KEY, STORAGE_SECRET_NAME
from ..upstream.terraform import UpstreamOutputs
from ..utils.retry import RetryPolicy

logger = __import__("logging").getLogger(__name__)


def provision_storage_secret(
    cloud: CloudApi,
    cluster: ClusterApi,
    outputs: UpstreamOutputs,
    *,
    secret_name: str = STORAGE_SECRET_NAME,
    secret_key: str = STORAGE_SECRET_KEY,
    retry: RetryPolicy = RetryPolicy(),
) -> dict[str, Any]:
    """Upsert the cluster secret holding the storage connection string.

    The connection string is fetched from the storage account and written
    under a fixed key; re-running overwrites the previous value. The secret
    is then re-read to confirm it exists (its value is never read back or
    logged).

    Returns:
        Result dictionary with success, secret, changed and message.

    Raises:
        TransientApiError: If the secret is missing after the upsert, or a
            call keeps failing after retries.
    """
    connection_string = retry.call(
        lambda: cloud.storage_connection_string(
            outputs.storage_account_name, outputs.resource_group_name
        ),
        operation="show storage connection string",
    )
    applied = retry.call(
        lambda: cluster.upsert_secret(secret_name, {secret_key: connection_string}),
        operation=f"upsert secret {secret_name}",
    )

    logger.info("Verifying secret exists...")
    if not cluster.get_secret(secret_name):
        raise TransientApiError(f"Secret {secret_name} not found after upsert")

    return {
        "success": True,
        "secret": secret_name,
        "changed": applied.changed,
        "message": f"secret {secret_name}: {applied.summary()}",
    }
