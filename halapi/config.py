"""
Halapi SDK - Configuration

The client never reads configuration on its own. It is handed a
config provider, a zero-argument callable returning a HalapiConfig
(or an awaitable of one), and asks it for fresh values on every call.

Usage:
    from halapi import AsyncHalapi, HalapiConfig, static_config, env_config

    client = AsyncHalapi(static_config(HalapiConfig(
        api_url="https://api.example.com",
        api_token="your-token",
    )))

    # Reads HALAPI_URL and HALAPI_TOKEN on each request
    client = AsyncHalapi(env_config())
"""

from __future__ import annotations

import inspect
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from .errors import ConfigurationError


@dataclass(frozen=True)
class HalapiConfig:
    """API configuration required to connect to Halapi."""
    api_url: str  # empty string means relative URLs (behind a proxy)
    api_token: str


ConfigProvider = Callable[[], Union[HalapiConfig, Awaitable[HalapiConfig]]]


def static_config(config: HalapiConfig) -> ConfigProvider:
    """Provider that always returns the given configuration."""
    def provider() -> HalapiConfig:
        return config
    return provider


def env_config(
    url_var: str = "HALAPI_URL",
    token_var: str = "HALAPI_TOKEN"
) -> ConfigProvider:
    """
    Provider backed by environment variables.

    Variables are read on every call, so rotating a token in the
    environment takes effect without rebuilding the client.

    Args:
        url_var: Environment variable holding the API URL.
        token_var: Environment variable holding the API token.
    """
    def provider() -> HalapiConfig:
        return HalapiConfig(
            api_url=os.getenv(url_var) or "",
            api_token=os.getenv(token_var) or "",
        )
    return provider


def is_config_valid(config: HalapiConfig) -> bool:
    """Check if the provided configuration is valid (has a token)."""
    return bool(config.api_token)


async def resolve_config(provider: ConfigProvider) -> HalapiConfig:
    """
    Call the provider and validate what it returns.

    Raises:
        ConfigurationError: If no API token is configured.
    """
    config = provider()
    if inspect.isawaitable(config):
        config = await config

    if not is_config_valid(config):
        raise ConfigurationError("API token not configured")

    return HalapiConfig(
        api_url=(config.api_url or "").rstrip("/"),
        api_token=config.api_token,
    )
