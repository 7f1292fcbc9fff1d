"""
Client configuration.

Settings can be given explicitly or read from ``SCM_*`` environment
variables; ``create_client`` selects the matching driver.
"""

import logging
import os

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import gitea_client, github_client, stash_client
from .exceptions import ConfigError
from .provider import Client, ProviderType

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60  # seconds

# Provider-specific token variables consulted when SCM_TOKEN is unset.
TOKEN_FALLBACKS = {
    ProviderType.GITEA: "GITEA_TOKEN",
    ProviderType.GITHUB: "GITHUB_TOKEN",
    ProviderType.STASH: "STASH_TOKEN",
}


class ClientConfig(BaseModel):
    """Configuration for one SCM client."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderType
    base_url: str = ""
    token: str = ""
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @classmethod
    def from_env(cls, prefix: str = "SCM") -> "ClientConfig":
        """
        Load configuration from environment variables.

        Checks for:
        - {prefix}_PROVIDER: gitea, stash or github (default github)
        - {prefix}_URL: Base URL of the server
        - {prefix}_TOKEN: API token (falls back to GITEA_TOKEN etc.)
        - {prefix}_TIMEOUT: Request timeout in seconds

        Raises:
            ConfigError: If a value is invalid
        """
        provider_name = os.environ.get(f"{prefix}_PROVIDER", ProviderType.GITHUB.value).lower()
        try:
            provider = ProviderType(provider_name)
        except ValueError:
            choices = ", ".join(p.value for p in ProviderType)
            raise ConfigError(
                f"Unknown SCM provider: '{provider_name}'",
                f"Set {prefix}_PROVIDER to one of: {choices}",
            ) from None

        token = os.environ.get(f"{prefix}_TOKEN", "")
        if not token:
            token = os.environ.get(TOKEN_FALLBACKS[provider], "")

        values: dict[str, object] = {
            "provider": provider,
            "base_url": os.environ.get(f"{prefix}_URL", ""),
            "token": token,
        }
        timeout = os.environ.get(f"{prefix}_TIMEOUT")
        if timeout:
            values["timeout"] = timeout

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid SCM configuration: {e.errors()[0]['msg']}") from e

    def validate_for_use(self) -> None:
        """
        Check that the configuration can build a client.

        Raises:
            ConfigError: If a self-hosted provider has no base URL
        """
        if self.provider != ProviderType.GITHUB and not self.base_url:
            raise ConfigError(
                f"A base URL is required for {self.provider.value}",
                "Set SCM_URL, e.g. https://gitea.example.com",
            )
        if not self.token:
            logger.warning(f"No API token configured for {self.provider.value}; requests are anonymous")


def create_client(
    config: ClientConfig,
    http_client: httpx.AsyncClient | None = None,
) -> Client:
    """
    Create the client for the configured provider.

    Args:
        config: Client configuration
        http_client: Pre-configured httpx client (e.g. for tests)

    Raises:
        ConfigError: If the configuration is incomplete
    """
    config.validate_for_use()

    if config.provider == ProviderType.GITEA:
        return gitea_client.new_client(
            config.base_url,
            token=config.token,
            timeout=config.timeout,
            http_client=http_client,
        )
    if config.provider == ProviderType.STASH:
        return stash_client.new_client(
            config.base_url,
            token=config.token,
            timeout=config.timeout,
            http_client=http_client,
        )
    return github_client.new_client(
        config.base_url or github_client.DEFAULT_URL,
        token=config.token,
        timeout=config.timeout,
        http_client=http_client,
    )
