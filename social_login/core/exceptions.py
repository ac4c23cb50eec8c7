"""
Domain exceptions for the login flow.

Every failure carries an ErrorKind plus the provider's own error code
and message where one was returned. These exceptions are caught by the
centralized exception handler in main.py and turned into a JSON
{"error": ...} body with the matching status code.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Categories of login failure."""

    CONFIG_MISSING = "config_missing"
    UNKNOWN_PROVIDER = "unknown_provider"
    INVALID_STATE = "invalid_state"
    REDIRECT_NOT_ALLOWED = "redirect_not_allowed"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    PROFILE_FETCH_FAILED = "profile_fetch_failed"
    RANDOMNESS_FAILURE = "randomness_failure"


class LoginError(Exception):
    """
    Base exception for login flow failures.

    Attributes:
        kind: Failure category
        message: User-facing message
        status_code: HTTP status for the JSON error response
        provider_code: Error code reported by the provider, if any
        provider_message: Error message reported by the provider, if any
    """

    kind: ErrorKind = ErrorKind.TOKEN_EXCHANGE_FAILED
    default_status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        provider_code: Optional[Any] = None,
        provider_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status_code
        self.provider_code = provider_code
        self.provider_message = provider_message

    def to_dict(self) -> dict[str, Any]:
        """Body for the JSON error response."""
        body: dict[str, Any] = {"error": self.message}
        if self.provider_code is not None:
            body["code"] = self.provider_code
        return body


class ConfigMissingError(LoginError):
    """
    Raised when a provider is requested but its credentials are not set.

    Normally caught at startup: unconfigured providers are not registered.
    """

    kind = ErrorKind.CONFIG_MISSING
    default_status_code = 503


class UnknownProviderError(LoginError):
    """Raised when the requested provider is not supported."""

    kind = ErrorKind.UNKNOWN_PROVIDER
    default_status_code = 404


class InvalidStateError(LoginError):
    """Raised when the state parameter is malformed, unknown or expired."""

    kind = ErrorKind.INVALID_STATE
    default_status_code = 400

    def __init__(self, message: str = "Invalid OAuth state", **kwargs):
        super().__init__(message, **kwargs)


class RedirectNotAllowedError(LoginError):
    """
    Raised when a caller redirect points at a host outside the allowlist.

    Checked both when the login starts and before relaying a callback,
    since a stateless state can be forged with any redirect.
    """

    kind = ErrorKind.REDIRECT_NOT_ALLOWED
    default_status_code = 400

    def __init__(self, message: str = "Redirect URL not allowed", **kwargs):
        super().__init__(message, **kwargs)


class TokenExchangeError(LoginError):
    """Raised when the provider rejects the code or the exchange fails."""

    kind = ErrorKind.TOKEN_EXCHANGE_FAILED
    default_status_code = 401


class ProfileFetchError(LoginError):
    """
    Raised when the profile call fails.

    Includes body-level provider errors returned with HTTP 200.
    """

    kind = ErrorKind.PROFILE_FETCH_FAILED
    default_status_code = 401


class EntropyError(LoginError):
    """Raised when the random source cannot supply bytes."""

    kind = ErrorKind.RANDOMNESS_FAILURE
    default_status_code = 500
