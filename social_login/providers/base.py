"""
Base OAuth2 provider adapter.

Implements the generic token exchange and profile fetch over httpx.
Concrete providers supply endpoint URLs, scopes and the field mapping,
and override the hooks where their API differs.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Optional
from urllib.parse import urlencode, urlparse

import httpx
from pydantic import ValidationError

from social_login.core.domain import (
    LoginState,
    NormalizedIdentity,
    ProviderCredentials,
    ProviderInfo,
    TokenResponse,
)
from social_login.core.exceptions import ProfileFetchError, TokenExchangeError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class OAuthProvider:
    """
    OAuth2 authorization-code-with-PKCE provider.

    Class attributes describe the provider; instances carry credentials
    and an optional shared httpx.AsyncClient (one is created per call
    otherwise).
    """

    name: str = ""
    display_name: str = ""
    authorize_url: str = ""
    token_url: str = ""
    profile_url: str = ""
    scopes: tuple[str, ...] = ()
    send_client_secret: bool = True
    extra_token_params: Mapping[str, str] = MappingProxyType({})

    def __init__(
        self,
        credentials: ProviderCredentials,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self._http_client = http_client

    # ------------------------------------------------------------------
    # Capability
    # ------------------------------------------------------------------

    def check(self) -> bool:
        return self.credentials.is_complete()

    def info(self) -> ProviderInfo:
        return ProviderInfo(origin=urlparse(self.authorize_url).hostname or "")

    # ------------------------------------------------------------------
    # Authorize redirect
    # ------------------------------------------------------------------

    def authorize_params(
        self, callback_url: str, state: str, code_challenge: str
    ) -> dict[str, str]:
        return {
            "response_type": "code",
            "client_id": self.credentials.client_id or "",
            "redirect_uri": callback_url,
            "scope": " ".join(self.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }

    def build_authorize_url(
        self, callback_url: str, state: str, code_challenge: str
    ) -> str:
        params = self.authorize_params(callback_url, state, code_challenge)
        return f"{self.authorize_url}?{urlencode(params)}"

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(
                method, url, timeout=self.timeout, **kwargs
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, **kwargs)

    @staticmethod
    def _json_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    async def get_json(self, url: str, **kwargs) -> dict:
        """
        GET a JSON document from the provider.

        Raises:
            ProfileFetchError: On network errors, timeouts, HTTP errors or
                a body that is not a JSON object
        """
        try:
            response = await self._send("GET", url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProfileFetchError(
                f"{self.display_name} profile request timed out"
            ) from e
        except httpx.RequestError as e:
            raise ProfileFetchError(
                f"Network error while fetching {self.display_name} profile: {e}"
            ) from e

        body = self._json_body(response)
        if response.is_error:
            code, message = self.extract_error(body)
            logger.error(
                f"{self.display_name} profile request failed: {response.status_code}",
                extra={"provider": self.name, "provider_code": code},
            )
            raise ProfileFetchError(
                f"Failed to fetch {self.display_name} profile: "
                f"{message or response.status_code}",
                provider_code=code if code is not None else response.status_code,
                provider_message=message,
            )

        if not isinstance(body, dict):
            raise ProfileFetchError(
                f"Invalid {self.display_name} profile response"
            )
        return body

    # ------------------------------------------------------------------
    # Error extraction hooks
    # ------------------------------------------------------------------

    def extract_error(self, body: Any) -> tuple[Optional[Any], Optional[str]]:
        """
        Pull the provider's error code and message out of a response body.

        Returns:
            (code, message), both None when the body carries no error
        """
        if not isinstance(body, dict):
            return None, None
        code = body.get("error")
        if not code:
            return None, None
        message = body.get("error_description") or str(code)
        return code, message

    def check_profile_errors(self, body: dict) -> None:
        """
        Raise ProfileFetchError for body-level errors on HTTP 200.

        Providers override this where their error fields differ.
        """
        code, message = self.extract_error(body)
        if code is not None:
            raise ProfileFetchError(
                f"[{self.display_name} API Error] {message}",
                provider_code=code,
                provider_message=message,
            )

    # ------------------------------------------------------------------
    # Token exchange
    # ------------------------------------------------------------------

    def token_params(self, code: str, login_state: LoginState) -> dict[str, str]:
        params = {
            "grant_type": "authorization_code",
            "client_id": self.credentials.client_id or "",
            "code": code,
            "redirect_uri": login_state.callback_url,
            "code_verifier": login_state.verifier,
        }
        if self.send_client_secret:
            params["client_secret"] = self.credentials.client_secret or ""
        params.update(self.extra_token_params)
        return params

    async def exchange_code(self, code: str, login_state: LoginState) -> TokenResponse:
        """
        Exchange an authorization code for an access token.

        Raises:
            TokenExchangeError: On network errors, timeouts, provider errors
                or a response without access_token
        """
        try:
            response = await self._send(
                "POST",
                self.token_url,
                data=self.token_params(code, login_state),
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as e:
            raise TokenExchangeError(
                f"{self.display_name} token request timed out"
            ) from e
        except httpx.RequestError as e:
            raise TokenExchangeError(
                f"Network error during {self.display_name} token exchange: {e}"
            ) from e

        body = self._json_body(response)
        code_, message = self.extract_error(body)
        if code_ is not None:
            logger.error(
                f"{self.display_name} token exchange rejected",
                extra={"provider": self.name, "provider_code": code_},
            )
            raise TokenExchangeError(
                f"[{self.display_name} API Error] {message}",
                provider_code=code_,
                provider_message=message,
            )

        if response.is_error or not isinstance(body, dict):
            logger.error(
                f"{self.display_name} token exchange failed: {response.status_code}",
                extra={"provider": self.name},
            )
            raise TokenExchangeError(
                f"Failed to obtain access token from {self.display_name}",
                provider_code=response.status_code if response.is_error else None,
            )

        try:
            return TokenResponse.model_validate(body)
        except ValidationError as e:
            raise TokenExchangeError(
                f"Failed to obtain access token from {self.display_name}"
            ) from e

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def fetch_profile(self, token: TokenResponse) -> dict:
        body = await self.get_json(
            self.profile_url,
            headers={"Authorization": f"Bearer {token.access_token}"},
        )
        self.check_profile_errors(body)
        return body

    def map_profile(self, profile: dict) -> dict[str, Any]:
        """Map provider fields onto NormalizedIdentity fields."""
        raise NotImplementedError

    def normalize(self, profile: dict) -> NormalizedIdentity:
        """
        Build the NormalizedIdentity for a raw profile.

        Raises:
            ProfileFetchError: If the profile lacks the required fields
        """
        try:
            return NormalizedIdentity(type=self.name, **self.map_profile(profile))
        except ValidationError as e:
            raise ProfileFetchError(
                f"Incomplete {self.display_name} profile", status_code=400
            ) from e
