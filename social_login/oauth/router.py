"""
OAuth2 social login endpoints.

- GET /oauth/providers - Configured providers and their origins
- GET /oauth/{provider} - Start the login flow, or complete it when the
  provider redirects back with code and state
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Header, status
from fastapi.responses import RedirectResponse

from social_login.core.domain import NormalizedIdentity
from social_login.oauth.dependencies import Config, Flow
from social_login.providers.registry import create_provider


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth"])


@router.get("/providers")
async def list_providers(config: Config):
    """
    List configured providers.

    Used by clients to decide which login buttons to show and which
    origins to allow. Reads the configuration only; the startup
    registry logs which providers are missing credentials.
    """
    return {
        "providers": [
            {"name": name, "origin": create_provider(name, config).info().origin}
            for name in config.get_configured_providers()
        ]
    }


@router.get("/{provider}", response_model=NormalizedIdentity)
async def login(
    flow: Flow,
    user_agent: Annotated[str | None, Header()] = None,
    code: str | None = None,
    state: str | None = None,
    redirect: str | None = None,
):
    """
    Provider entry point and callback.

    Without code/state, redirects to the provider's authorization page.
    With code and state, either relays them to the requesting application
    or exchanges the code and returns the normalized identity.

    Args:
        flow: Login flow for the provider in the path
        user_agent: Identifies replays from the requesting application
        code: Authorization code from the provider
        state: State value round-tripped through the provider
        redirect: Requesting application's callback, on the first call

    Returns:
        302 redirect, or the NormalizedIdentity as JSON

    Raises:
        LoginError: Handled centrally and returned as {"error": ...}
    """
    outcome = await flow.complete(code, state, user_agent=user_agent, redirect=redirect)

    if outcome.is_redirect:
        return RedirectResponse(
            url=outcome.redirect_url,
            status_code=status.HTTP_302_FOUND,
        )

    return outcome.identity
