"""
Core service for the OAuth2 authorization-code-with-PKCE login flow.

BeginLogin builds the provider authorize URL; CompleteLogin recovers the
login state, exchanges the code, fetches and normalizes the profile:

    AWAITING_CODE -> STATE_RECOVERED -> TOKEN_EXCHANGED
        -> PROFILE_FETCHED -> NORMALIZED
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlencode, urlparse

from social_login.core.domain import LoginState, NormalizedIdentity
from social_login.core.exceptions import InvalidStateError, RedirectNotAllowedError
from social_login.core.pkce import generate_pkce
from social_login.core.ports import IdentityProvider, StateStrategy


logger = logging.getLogger(__name__)

DEFAULT_RELAY_USER_AGENT = "@waline"


class FlowStage(str, Enum):
    """Stages of a login attempt."""

    AWAITING_CODE = "awaiting_code"
    STATE_RECOVERED = "state_recovered"
    TOKEN_EXCHANGED = "token_exchanged"
    PROFILE_FETCHED = "profile_fetched"
    NORMALIZED = "normalized"


@dataclass
class LoginOutcome:
    """
    Result of handling a login request.

    Either a redirect (to the provider, or back to the requesting
    application) or a normalized identity.
    """

    redirect_url: Optional[str] = None
    identity: Optional[NormalizedIdentity] = None

    @property
    def is_redirect(self) -> bool:
        return self.redirect_url is not None

    @classmethod
    def redirect(cls, url: str) -> "LoginOutcome":
        return cls(redirect_url=url)


def append_query(url: str, params: dict[str, str]) -> str:
    """Append params to a URL that may already carry a query string."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


class LoginFlow:
    """
    Drives one provider's login flow.

    The flow holds no per-attempt state: everything needed to finish an
    attempt travels through the state strategy.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        strategy: StateStrategy,
        callback_url: str,
        relay_user_agent: str = DEFAULT_RELAY_USER_AGENT,
        allowed_redirect_hosts: Optional[list[str]] = None,
    ):
        self.provider = provider
        self.strategy = strategy
        self.callback_url = callback_url
        self.relay_user_agent = relay_user_agent
        self.allowed_redirect_hosts = [h.lower() for h in allowed_redirect_hosts or []]

    def _check_redirect(self, redirect: Optional[str]) -> None:
        """
        Reject caller redirects to hosts outside the allowlist.

        The relay step sends the authorization code to this URL, so an
        unchecked redirect would hand codes to any site. An empty
        allowlist accepts every host.

        Raises:
            RedirectNotAllowedError: If the redirect host is not allowed
        """
        if not redirect or not self.allowed_redirect_hosts:
            return
        parsed = urlparse(redirect)
        host = (parsed.hostname or "").lower()
        allowed = host in self.allowed_redirect_hosts
        if parsed.scheme not in ("http", "https") or not allowed:
            logger.warning(
                "Rejected caller redirect",
                extra={"provider": self.provider.name, "redirect_host": host},
            )
            raise RedirectNotAllowedError()

    def _log_stage(self, stage: FlowStage, message: str) -> None:
        logger.info(
            message,
            extra={"provider": self.provider.name, "stage": stage.value},
        )

    async def begin(
        self, redirect: Optional[str] = None, state: Optional[str] = None
    ) -> str:
        """
        Build the provider authorize URL for a new login attempt.

        Args:
            redirect: Where the requesting application wants the code sent
            state: The requesting application's own state value

        Returns:
            Authorize URL to redirect the browser to

        Raises:
            RedirectNotAllowedError: If redirect is outside the allowlist
        """
        self._check_redirect(redirect)
        pkce = generate_pkce()
        login_state = LoginState(
            verifier=pkce.verifier,
            redirect_target=redirect or None,
            caller_state=state or None,
            callback_url=self.callback_url,
        )
        oauth_state = await self.strategy.issue(login_state)

        self._log_stage(
            FlowStage.AWAITING_CODE,
            f"Starting {self.provider.name} login",
        )
        return self.provider.build_authorize_url(
            self.callback_url, oauth_state, pkce.challenge
        )

    def _should_relay(self, login_state: LoginState, user_agent: Optional[str]) -> bool:
        """
        Whether the callback must be forwarded to the requesting application.

        The requesting application replays the callback with the relay
        user agent; only then is the code exchanged here.
        """
        return bool(login_state.redirect_target) and user_agent != self.relay_user_agent

    async def complete(
        self,
        code: Optional[str],
        state: Optional[str],
        user_agent: Optional[str] = None,
        redirect: Optional[str] = None,
    ) -> LoginOutcome:
        """
        Handle a request to the provider endpoint.

        Without code or state the flow restarts from the authorize step.

        Args:
            code: Authorization code from the provider
            state: The `state` value the provider sent back
            user_agent: Caller's User-Agent header
            redirect: Caller redirect, only used when restarting

        Returns:
            LoginOutcome with a redirect URL or a NormalizedIdentity

        Raises:
            InvalidStateError: State is malformed, unknown or already used
            RedirectNotAllowedError: The relay target is outside the allowlist
            TokenExchangeError: The provider did not issue an access token
            ProfileFetchError: The profile call failed
        """
        if not code or not state:
            return LoginOutcome.redirect(await self.begin(redirect, state))

        login_state = await self.strategy.recover(state, consume=False)
        if login_state is None:
            logger.warning(
                "Invalid OAuth state on callback",
                extra={"provider": self.provider.name},
            )
            raise InvalidStateError()

        if self._should_relay(login_state, user_agent):
            self._check_redirect(login_state.redirect_target)
            self._log_stage(
                FlowStage.STATE_RECOVERED,
                f"Relaying {self.provider.name} callback to requesting application",
            )
            return LoginOutcome.redirect(
                append_query(
                    login_state.redirect_target, {"code": code, "state": state}
                )
            )

        login_state = await self.strategy.recover(state, consume=True)
        if login_state is None:
            raise InvalidStateError()
        self._log_stage(FlowStage.STATE_RECOVERED, "Login state recovered")

        token = await self.provider.exchange_code(code, login_state)
        self._log_stage(FlowStage.TOKEN_EXCHANGED, "Access token obtained")

        profile = await self.provider.fetch_profile(token)
        self._log_stage(FlowStage.PROFILE_FETCHED, "Profile fetched")

        identity = self.provider.normalize(profile)
        logger.info(
            f"{self.provider.name} login completed",
            extra={
                "provider": self.provider.name,
                "stage": FlowStage.NORMALIZED.value,
                "identity_id": identity.id,
            },
        )
        return LoginOutcome(identity=identity)
