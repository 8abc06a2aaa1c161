"""Configuration options for the SDK."""

import os
from dataclasses import dataclass, field
from typing import Optional

from .constants import ENVIRONMENT_BASE_URLS, SDKEnvironment

DEFAULT_TIMEOUT_SECONDS = 30.0

_ENV_API_KEY = "SOULCYPHER_API_KEY"
_ENV_BASE_URL = "SOULCYPHER_BASE_URL"
_ENV_ENVIRONMENT = "SOULCYPHER_ENVIRONMENT"
_ENV_TIMEOUT = "SOULCYPHER_TIMEOUT"


@dataclass
class SDKConfig:
    """
    Configuration for a SoulCypherSDK instance.

    Attributes:
        api_key: The API key sent with every authenticated backend call.
        base_url: Explicit backend root (e.g., https://api.example.com). When empty,
            the production URL is used; other environments require it.
        environment: Deployment environment used to pick the default base URL.
        timeout_seconds: Total timeout applied to each backend HTTP call.
    """

    api_key: str = field(default="", repr=False)
    base_url: str = ""
    environment: SDKEnvironment = SDKEnvironment.PRODUCTION
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def resolved_base_url(self) -> str:
        """
        Backend root without a trailing slash.

        Raises:
            ValueError: If no base_url is set for an environment without a
                published address.
        """
        if self.base_url:
            return self.base_url.rstrip("/")

        environment = SDKEnvironment(self.environment)
        url = ENVIRONMENT_BASE_URLS.get(environment)
        if url is None:
            raise ValueError(f"base_url is required for the {environment.value} environment")
        return url.rstrip("/")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "SDKConfig":
        """
        Load configuration from ``SOULCYPHER_*`` environment variables.

        Raises:
            ValueError: If the environment or timeout value cannot be parsed, or
                a non-production environment is selected without a base URL.
        """
        env = os.environ if environ is None else environ
        builder = SDKConfigBuilder().with_api_key(env.get(_ENV_API_KEY, "").strip())

        base_url = env.get(_ENV_BASE_URL, "").strip()
        if base_url:
            builder.with_base_url(base_url)

        environment = env.get(_ENV_ENVIRONMENT, "").strip().lower()
        if environment:
            try:
                builder.with_environment(SDKEnvironment(environment))
            except ValueError:
                raise ValueError(f"Unsupported {_ENV_ENVIRONMENT}: {environment}")

        timeout = env.get(_ENV_TIMEOUT, "").strip()
        if timeout:
            builder.with_timeout(float(timeout))

        return builder.build()


class SDKConfigBuilder:
    """Builder for constructing SDKConfig with fluent interface."""

    def __init__(self):
        self._config = SDKConfig()

    def with_api_key(self, api_key: str) -> "SDKConfigBuilder":
        """Set the API key."""
        self._config.api_key = api_key
        return self

    def with_base_url(self, base_url: str) -> "SDKConfigBuilder":
        """Override the backend root URL."""
        self._config.base_url = base_url
        return self

    def with_environment(self, environment: SDKEnvironment) -> "SDKConfigBuilder":
        self._config.environment = SDKEnvironment(environment)
        return self

    def with_timeout(self, timeout_seconds: float) -> "SDKConfigBuilder":
        """Set the per-request timeout in seconds."""
        if timeout_seconds <= 0:
            raise ValueError("Timeout must be positive")
        self._config.timeout_seconds = timeout_seconds
        return self

    def build(self) -> SDKConfig:
        """
        Build and return the configured SDKConfig.

        Raises:
            ValueError: If a non-production environment has no base_url.
        """
        config = self._config
        if not config.base_url and config.environment not in ENVIRONMENT_BASE_URLS:
            raise ValueError(
                f"base_url is required for the {SDKEnvironment(config.environment).value} environment"
            )
        return config
