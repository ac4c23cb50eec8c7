"""
FastAPI dependencies for OAuth endpoints.

Provides dependency injection for configuration, state handling and
the per-provider login flow.
"""

import logging
from typing import Annotated

from fastapi import Depends

from social_login.core.exceptions import ConfigMissingError, UnknownProviderError
from social_login.core.login_flow import LoginFlow
from social_login.core.ports import StateStore, StateStrategy
from social_login.core.state import SERVER_HELD, build_state_strategy
from social_login.infrastructure.state_store import get_state_store
from social_login.oauth.config import (
    get_oauth_config,
    OAuthConfig,
    SUPPORTED_PROVIDERS,
)
from social_login.providers.registry import create_provider


logger = logging.getLogger(__name__)


Config = Annotated[OAuthConfig, Depends(get_oauth_config)]


def get_store() -> StateStore:
    """Provide StateStore dependency."""
    return get_state_store()


def get_state_strategy(config: Config) -> StateStrategy:
    """
    Provide the configured state strategy.

    The store is only resolved for the server-held strategy.
    """
    store = get_store() if config.state_strategy == SERVER_HELD else None
    return build_state_strategy(config.state_strategy, store, config.state_ttl)


async def validate_provider(provider: str, config: Config) -> str:
    """
    Validate that the provider is supported and configured.

    Raises:
        UnknownProviderError: 404 if the provider is unknown
        ConfigMissingError: 503 if its credentials are not configured
    """
    if provider not in SUPPORTED_PROVIDERS:
        raise UnknownProviderError(
            f"Unknown provider: {provider}. Supported: {SUPPORTED_PROVIDERS}"
        )

    if not config.is_provider_configured(provider):
        raise ConfigMissingError(f"Provider '{provider}' is not configured")

    return provider


ValidProvider = Annotated[str, Depends(validate_provider)]


def get_login_flow(
    provider: ValidProvider,
    config: Config,
    strategy: Annotated[StateStrategy, Depends(get_state_strategy)],
) -> LoginFlow:
    """Provide the login flow for the requested provider."""
    return LoginFlow(
        provider=create_provider(provider, config),
        strategy=strategy,
        callback_url=config.get_callback_url(provider),
        relay_user_agent=config.relay_user_agent,
        allowed_redirect_hosts=config.allowed_redirect_hosts,
    )


# Type aliases for cleaner dependency injection
Flow = Annotated[LoginFlow, Depends(get_login_flow)]
