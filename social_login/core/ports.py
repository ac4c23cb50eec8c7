"""
Port definitions (interfaces) for the core domain.

Ports define the contracts between the login flow and external systems.
Infrastructure adapters implement these ports.
"""

from typing import Optional, Protocol

from social_login.core.domain import (
    LoginState,
    NormalizedIdentity,
    ProviderInfo,
    TokenResponse,
)


class StateStore(Protocol):
    """
    Port (interface) for the short-lived key-value store.

    Holds server-side login state between the authorize redirect and
    the callback. Implemented by InMemoryStateStore and FirestoreStateStore.
    """

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """
        Store a value.

        Args:
            key: Namespaced key (e.g. "pkce:<oauth_state>")
            value: Serialized value
            ttl: Lifetime in seconds (None means no expiry)
        """
        ...

    async def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Returns:
            The stored value, or None if missing or expired
        """
        ...

    async def delete(self, key: str) -> bool:
        """
        Delete a value.

        Returns:
            True if a live value was deleted, False otherwise
        """
        ...


class StateStrategy(Protocol):
    """How login state crosses the provider round-trip."""

    async def issue(self, state: LoginState) -> str:
        """Return the value to send as the `state` query parameter."""
        ...

    async def recover(self, token: str, consume: bool = True) -> Optional[LoginState]:
        """
        Recover login state from the returned `state` parameter.

        Args:
            token: The `state` value the provider sent back
            consume: Mark the state as used (server-held strategies only)

        Returns:
            LoginState, or None if the token is invalid, unknown or used
        """
        ...


class IdentityProvider(Protocol):
    """Port for a third-party OAuth2 provider."""

    name: str

    def check(self) -> bool:
        """True iff the provider's client id and secret are configured."""
        ...

    def info(self) -> ProviderInfo:
        """Provider hostname for display/allowlisting."""
        ...

    def build_authorize_url(
        self, callback_url: str, state: str, code_challenge: str
    ) -> str:
        """Authorize endpoint URL with query string."""
        ...

    async def exchange_code(self, code: str, login_state: LoginState) -> TokenResponse:
        """Exchange an authorization code for an access token."""
        ...

    async def fetch_profile(self, token: TokenResponse) -> dict:
        """Fetch the raw provider profile."""
        ...

    def normalize(self, profile: dict) -> NormalizedIdentity:
        """Map the raw profile into a NormalizedIdentity."""
        ...
