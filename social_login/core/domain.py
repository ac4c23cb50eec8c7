"""
Core domain models for the social login flow.

These models represent the login flow data and are independent of
any provider, transport or storage mechanism.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def first_non_empty(*values: Any) -> Optional[Any]:
    """
    Return the first value that is not None or an empty string.

    Provider field mappings list candidate fields in priority order
    (e.g. several avatar URLs); the first non-empty one wins.
    """
    for value in values:
        if value is not None and value != "":
            return value
    return None


class PKCEPair(BaseModel):
    """
    PKCE verifier/challenge pair for a single login attempt.

    Only the challenge is sent to the authorize endpoint. The verifier
    is sent once, during token exchange.
    """

    model_config = ConfigDict(frozen=True)

    verifier: str
    challenge: str


class LoginState(BaseModel):
    """
    Everything needed to complete a login begun earlier.

    Serialized with the short wire names (redirect, state, callbackUrl)
    so that states issued by existing deployments still decode.
    """

    model_config = ConfigDict(populate_by_name=True)

    verifier: str = Field(min_length=1)
    redirect_target: Optional[str] = Field(default=None, alias="redirect")
    caller_state: Optional[str] = Field(default=None, alias="state")
    callback_url: str = Field(alias="callbackUrl")

    def to_wire(self) -> dict[str, Any]:
        """Dictionary using wire aliases, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ProviderCredentials(BaseModel):
    """Client credentials for one provider."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    def is_complete(self) -> bool:
        """Both id and secret are required for the provider to be enabled."""
        return bool(self.client_id and self.client_secret)


class ProviderInfo(BaseModel):
    """Public provider details used for display and allowlisting."""

    origin: str


class TokenResponse(BaseModel):
    """Access token response from a provider token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(min_length=1)
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class NormalizedIdentity(BaseModel):
    """
    Provider-agnostic user profile consumed by the host application.

    Every provider adapter produces this shape regardless of upstream
    field names. Empty optional fields are normalized to None.
    """

    id: str = Field(min_length=1)
    name: str
    email: Optional[str] = None
    url: Optional[str] = None
    avatar: Optional[str] = None
    type: str = Field(description="Provider name (huawei, qq, twitter)")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Some providers return numeric ids."""
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("email", "url", "avatar", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        if v == "":
            return None
        return v
