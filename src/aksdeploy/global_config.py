"""Global, project-wide configuration constants.

This module intentionally contains **no business logic** – only simple,
shared filesystem anchors and cross-cutting constants that many modules
can import.

Environment-driven settings (timeouts, retries, credentials, tool paths)
live in `aksdeploy.config` and build on top of these anchors.
"""

from pathlib import Path
from typing import Final

# Core roots
PACKAGE_ROOT: Path = Path(__file__).resolve().parent
# PROJECT_ROOT is the repo root (where pyproject.toml and k8s/ live)
# From src/aksdeploy/global_config.py, go up two levels: src/aksdeploy -> src -> repo root
PROJECT_ROOT: Path = PACKAGE_ROOT.parent.parent

# Core Names
PROJECT_NAME = "aksdeploy"
PACKAGE_NAME = "aksdeploy"

# Manifest templates
K8S_DIR: Path = PROJECT_ROOT / "k8s"
BACKEND_MANIFEST = "backend-deployment.yaml"
FRONTEND_MANIFEST = "frontend-deployment.yaml"
# Apply order matters: the frontend resolves the backend's service endpoint.
MANIFEST_ORDER: Final[tuple[str, ...]] = (BACKEND_MANIFEST, FRONTEND_MANIFEST)

# Placeholder tokens
CONTAINER_NAME_TOKEN = "<CONTAINER_NAME>"
STORAGE_ACCOUNT_NAME_TOKEN = "<STORAGE_ACCOUNT_NAME>"
API_IMAGE_TOKEN = "<API_IMAGE>"
FRONTEND_IMAGE_TOKEN = "<FRONTEND_IMAGE>"
REQUIRED_TOKENS: Final[tuple[str, ...]] = (CONTAINER_NAME_TOKEN, STORAGE_ACCOUNT_NAME_TOKEN)

# Upstream workflows
TERRAFORM_WORKFLOW_NAME = "Terraform Infrastructure"
TERRAFORM_WORKFLOW_FILE = "terraform-infrastructure.yaml"
TERRAFORM_ARTIFACT_NAME = "terraform-outputs"
TERRAFORM_OUTPUTS_FILE = "terraform-outputs.json"

DOCKER_WORKFLOW_NAME = "Build and publish image to Docker Hub"
DOCKER_WORKFLOW_FILE = "docker-publish.yaml"
DOCKER_ARTIFACT_NAME = "image-references"
DOCKER_REFERENCES_FILE = "image-references.json"

# Cluster secret
STORAGE_SECRET_NAME = "azure-storage-secret"
STORAGE_SECRET_KEY = "AZURE_STORAGE_CONNECTION_STRING"

# Logs directories
LOGS_DIR: Path = PROJECT_ROOT / "logs"
DERIVED_LOGS_DIR: Path = LOGS_DIR / "runs"
RENDERED_DIR: Path = PROJECT_ROOT / "build" / "rendered"
