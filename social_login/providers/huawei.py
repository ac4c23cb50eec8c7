"""
Huawei ID login.
"""

from typing import Any, Optional

from social_login.core.domain import first_non_empty
from social_login.providers.base import OAuthProvider


class HuaweiProvider(OAuthProvider):
    """OAuth provider for Huawei ID."""

    name = "huawei"
    display_name = "Huawei"
    authorize_url = "https://oauth-login.cloud.huawei.com/oauth2/v3/authorize"
    token_url = "https://oauth-login.cloud.huawei.com/oauth2/v3/token"
    profile_url = "https://account.cloud.huawei.com/user/getUserInfo"
    scopes = ("openid", "profile", "email")

    def extract_error(self, body: Any) -> tuple[Optional[Any], Optional[str]]:
        code, message = super().extract_error(body)
        if code is not None:
            return code, message

        # Account APIs report failures as errCode/errMsg
        if isinstance(body, dict) and body.get("errCode") not in (None, 0, "0"):
            code = body["errCode"]
            return code, body.get("errMsg") or f"errCode: {code}"
        return None, None

    def map_profile(self, profile: dict) -> dict[str, Any]:
        return {
            "id": profile.get("userId") or profile.get("openID"),
            "name": first_non_empty(profile.get("displayName"), profile.get("userId")),
            "email": profile.get("email"),
            "url": None,
            "avatar": first_non_empty(
                profile.get("photoURL"), profile.get("headPictureURL")
            ),
        }
