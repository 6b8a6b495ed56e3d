"""Collaborator clients: the cloud provider and the cluster control plane."""

from .azure import AzureCli, CloudApi, ServicePrincipal, parse_credentials
from .cluster import ApplyResult, ClusterApi, ResourceChange, parse_apply_output
from .kubectl import KubectlCluster, build_secret_manifest

__all__ = [
    "ApplyResult",
    "AzureCli",
    "CloudApi",
    "ClusterApi",
    "KubectlCluster",
    "ResourceChange",
    "ServicePrincipal",
    "build_secret_manifest",
    "parse_apply_output",
    "parse_credentials",
]
