"""
OAuth2 configuration for the social login providers.

Loaded from environment variables once and injected through FastAPI
dependencies, so tests can substitute their own OAuthConfig.
"""

import os
import logging
from dataclasses import dataclass, field
from functools import lru_cache

from social_login.core.domain import ProviderCredentials
from social_login.core.login_flow import DEFAULT_RELAY_USER_AGENT
from social_login.core.state import DEFAULT_STATE_TTL, STATE_STRATEGIES, STATELESS


logger = logging.getLogger(__name__)


# List of supported providers (for validation)
SUPPORTED_PROVIDERS = ["huawei", "qq", "twitter"]


@dataclass
class OAuthConfig:
    """
    OAuth configuration settings.

    Provider credentials use the variable names existing deployments
    already set (HUAWEI_ID, QQ_SECRET, ...).
    """

    base_url: str
    huawei_client_id: str | None = None
    huawei_client_secret: str | None = None
    qq_client_id: str | None = None
    qq_client_secret: str | None = None
    twitter_client_id: str | None = None
    twitter_client_secret: str | None = None

    # "stateless" or "server"
    state_strategy: str = STATELESS
    state_ttl: int = DEFAULT_STATE_TTL
    http_timeout: float = 10.0
    relay_user_agent: str = DEFAULT_RELAY_USER_AGENT

    # Hosts the relay step may redirect to; empty allows any host
    allowed_redirect_hosts: list[str] = field(default_factory=list)

    def __post_init__(self):
        """
        Reject settings that would otherwise fail on every login request.

        Raises:
            ValueError: On an unknown state strategy or a non-positive TTL
        """
        if self.state_strategy not in STATE_STRATEGIES:
            raise ValueError(
                f"Unknown OAUTH_STATE_STRATEGY: {self.state_strategy}. "
                f"Supported: {STATE_STRATEGIES}"
            )
        if self.state_ttl <= 0:
            raise ValueError(f"OAUTH_STATE_TTL must be positive, got {self.state_ttl}")

    @classmethod
    def from_env(cls) -> "OAuthConfig":
        """Load configuration from environment variables."""
        return cls(
            base_url=os.getenv("BASE_URL", "").rstrip("/"),
            huawei_client_id=os.getenv("HUAWEI_ID"),
            huawei_client_secret=os.getenv("HUAWEI_SECRET"),
            qq_client_id=os.getenv("QQ_ID"),
            qq_client_secret=os.getenv("QQ_SECRET"),
            twitter_client_id=os.getenv("TWITTER_ID"),
            twitter_client_secret=os.getenv("TWITTER_SECRET"),
            state_strategy=os.getenv("OAUTH_STATE_STRATEGY", STATELESS).lower(),
            state_ttl=int(os.getenv("OAUTH_STATE_TTL", DEFAULT_STATE_TTL)),
            http_timeout=float(os.getenv("OAUTH_HTTP_TIMEOUT", "10.0")),
            relay_user_agent=os.getenv(
                "OAUTH_RELAY_USER_AGENT", DEFAULT_RELAY_USER_AGENT
            ),
            allowed_redirect_hosts=[
                host.strip().lower()
                for host in os.getenv("OAUTH_ALLOWED_REDIRECT_HOSTS", "").split(",")
                if host.strip()
            ],
        )

    def get_callback_url(self, provider: str) -> str:
        """
        Callback URL registered with the provider.

        Carries no query string: some providers reject redirect URIs that
        differ from the registered one in any way.
        """
        return f"{self.base_url}/oauth/{provider}"

    def credentials_for(self, provider: str) -> ProviderCredentials:
        """Client credentials for a provider (empty if unsupported)."""
        if provider not in SUPPORTED_PROVIDERS:
            return ProviderCredentials()
        return ProviderCredentials(
            client_id=getattr(self, f"{provider}_client_id"),
            client_secret=getattr(self, f"{provider}_client_secret"),
        )

    def is_provider_configured(self, provider: str) -> bool:
        """Check if a provider has valid credentials configured."""
        return self.credentials_for(provider).is_complete()

    def get_configured_providers(self) -> list[str]:
        """List all providers with valid configuration."""
        return [p for p in SUPPORTED_PROVIDERS if self.is_provider_configured(p)]


@lru_cache()
def get_oauth_config() -> OAuthConfig:
    """Get OAuth configuration singleton."""
    return OAuthConfig.from_env()
