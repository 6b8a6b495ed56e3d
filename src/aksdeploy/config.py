"""Environment-driven settings for deployment runs.

Builds on `aksdeploy.global_config` anchors. Values come from `AKSDEPLOY_*`
environment variables or a local `.env`; the CI provider's own variables
(`GITHUB_*`, `AZURE_CREDENTIALS`) are accepted under their native names.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .global_config import K8S_DIR


def _env(name: str) -> AliasChoices:
    return AliasChoices(f"AKSDEPLOY_{name}", name)


class DeploySettings(BaseSettings):
    """Central settings for one deployment run."""

    model_config = SettingsConfigDict(
        env_prefix="AKSDEPLOY_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    namespace: str = Field(default="default", min_length=1)
    k8s_dir: Path = Field(default=K8S_DIR, description="Directory holding manifest templates.")
    kubectl_bin: str = Field(default="kubectl", min_length=1)
    az_bin: str = Field(default="az", min_length=1)

    command_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout for az/kubectl calls other than apply (seconds).",
    )
    apply_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Timeout for each manifest apply (seconds).",
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for transient cloud/cluster calls.",
    )
    retry_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Base delay for exponential backoff between attempts.",
    )

    simulate_default: bool = Field(
        default=True,
        description="Simulation flag used for manual runs when no input is given.",
    )

    default_api_image: str | None = Field(default="chenkonsam/devops-qr-code-api:latest")
    default_frontend_image: str | None = Field(default="chenkonsam/devops-qr-code-front-end:v3")

    github_token: SecretStr | None = Field(default=None, validation_alias=_env("GITHUB_TOKEN"))
    github_repository: str | None = Field(
        default=None,
        validation_alias=_env("GITHUB_REPOSITORY"),
        description="owner/repo used for artifact lookups.",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        validation_alias=_env("GITHUB_API_URL"),
    )
    github_event_name: str | None = Field(default=None, validation_alias=_env("GITHUB_EVENT_NAME"))
    github_event_path: Path | None = Field(default=None, validation_alias=_env("GITHUB_EVENT_PATH"))
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    azure_credentials: SecretStr | None = Field(
        default=None,
        validation_alias=_env("AZURE_CREDENTIALS"),
        description="Service-principal JSON blob (clientId, clientSecret, tenantId, subscriptionId).",
    )


def load_settings(**overrides: object) -> DeploySettings:
    """Build settings from the environment, applying non-None overrides."""
    cleaned = {k: v for k, v in overrides.items() if v is not None}
    return DeploySettings(**cleaned)
