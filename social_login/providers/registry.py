"""
Provider registry.

Providers without credentials are skipped (allows partial configuration).
"""

import logging
from typing import Optional

import httpx

from social_login.oauth.config import OAuthConfig, SUPPORTED_PROVIDERS
from social_login.providers.base import OAuthProvider
from social_login.providers.huawei import HuaweiProvider
from social_login.providers.qq import QQProvider
from social_login.providers.twitter import TwitterProvider


logger = logging.getLogger(__name__)


PROVIDER_CLASSES: dict[str, type[OAuthProvider]] = {
    "huawei": HuaweiProvider,
    "qq": QQProvider,
    "twitter": TwitterProvider,
}


def create_provider(
    name: str,
    config: OAuthConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> OAuthProvider:
    """
    Create a provider adapter with credentials from config.

    Raises:
        KeyError: If the provider is not supported
    """
    provider_class = PROVIDER_CLASSES[name]
    return provider_class(
        config.credentials_for(name),
        timeout=config.http_timeout,
        http_client=http_client,
    )


def create_provider_registry(
    config: OAuthConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> dict[str, OAuthProvider]:
    """
    Create adapters for every configured provider.

    Args:
        config: OAuth configuration
        http_client: Shared HTTP client (one per request otherwise)

    Returns:
        Mapping of provider name to adapter, configured providers only
    """
    registry: dict[str, OAuthProvider] = {}
    for name in SUPPORTED_PROVIDERS:
        provider = create_provider(name, config, http_client)
        if provider.check():
            registry[name] = provider
            logger.info(f"Registered {provider.display_name} OAuth provider")
        else:
            logger.warning(
                f"{provider.display_name} OAuth not configured (missing credentials)"
            )
    return registry
