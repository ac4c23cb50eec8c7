"""
Twitter / X login (OAuth 2.0 with PKCE, public client).
"""

from typing import Any, Optional

from social_login.core.domain import first_non_empty
from social_login.providers.base import OAuthProvider


class TwitterProvider(OAuthProvider):
    """OAuth provider for Twitter / X."""

    name = "twitter"
    display_name = "Twitter"
    authorize_url = "https://x.com/i/oauth2/authorize"
    token_url = "https://api.x.com/2/oauth2/token"
    profile_url = (
        "https://api.x.com/2/users/me"
        "?user.fields=name,username,profile_image_url,url,email"
    )
    scopes = ("tweet.read", "users.read", "offline.access", "users.email")
    send_client_secret = False

    def extract_error(self, body: Any) -> tuple[Optional[Any], Optional[str]]:
        code, message = super().extract_error(body)
        if code is not None:
            return code, message

        # API v2 errors: {"errors": [{"title", "detail", "type"}], ...}
        if isinstance(body, dict) and body.get("errors") and not body.get("data"):
            first = body["errors"][0] if isinstance(body["errors"], list) else {}
            if not isinstance(first, dict):
                first = {}
            code = first.get("type") or first.get("title") or "error"
            return code, first.get("detail") or first.get("message") or str(code)

        # Auth failures: {"title": "Unauthorized", "status": 401, "detail": ...}
        if isinstance(body, dict) and body.get("status") and body.get("title"):
            return body["status"], body.get("detail") or body["title"]
        return None, None

    def map_profile(self, profile: dict) -> dict[str, Any]:
        user = profile.get("data") or {}
        username = user.get("username")
        return {
            "id": user.get("id"),
            "name": first_non_empty(user.get("name"), username),
            "email": user.get("email"),
            "url": first_non_empty(
                user.get("url"),
                f"https://twitter.com/{username}" if username else None,
            ),
            "avatar": user.get("profile_image_url"),
        }
