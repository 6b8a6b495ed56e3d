"""Upstream pipelines and their published outputs.

Import policy:
- `pipeline.*` may call `upstream.*` as helpers/adapters.
- `upstream.*` must not call `pipeline.*`.
"""

from .artifacts import ArtifactStore, GitHubArtifactStore, LocalArtifactStore, RunHistory
from .images import ImageReferences
from .registry import DOCKER, TERRAFORM, UPSTREAMS, UpstreamSpec, get_upstream
from .terraform import UpstreamOutputs

__all__ = [
    "DOCKER",
    "TERRAFORM",
    "UPSTREAMS",
    "ArtifactStore",
    "GitHubArtifactStore",
    "ImageReferences",
    "LocalArtifactStore",
    "RunHistory",
    "UpstreamOutputs",
    "UpstreamSpec",
    "get_upstream",
]
