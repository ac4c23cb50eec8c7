"""
QQ Connect login.

QQ reports errors in the body even on HTTP 200, with a different field
on each endpoint: `error` on token, `errcode` on /me, `ret` on user info.
"""

from types import MappingProxyType
from typing import Any

from social_login.core.domain import TokenResponse, first_non_empty
from social_login.core.exceptions import ProfileFetchError
from social_login.providers.base import OAuthProvider


AVATAR_FIELDS = [
    "figureurl_qq_2",
    "figureurl_qq_1",
    "figureurl_qq",
    "figureurl_2",
    "figureurl_1",
    "figureurl",
]


class QQProvider(OAuthProvider):
    """OAuth provider for QQ Connect."""

    name = "qq"
    display_name = "QQ"
    authorize_url = "https://graph.qq.com/oauth2.0/authorize"
    token_url = "https://graph.qq.com/oauth2.0/token"
    token_info_url = "https://graph.qq.com/oauth2.0/me"
    profile_url = "https://graph.qq.com/user/get_user_info"
    scopes = ("get_user_info",)
    extra_token_params = MappingProxyType({"fmt": "json"})

    async def fetch_profile(self, token: TokenResponse) -> dict:
        """
        Resolve openid/unionid, then fetch the user info.

        The unionid is merged into the returned profile since it is the
        stable id across QQ applications.
        """
        token_info = await self.get_json(
            self.token_info_url,
            params={"access_token": token.access_token, "unionid": 1, "fmt": "json"},
        )

        errcode = token_info.get("errcode") or token_info.get("error")
        if errcode:
            message = (
                token_info.get("errmsg")
                or token_info.get("error_description")
                or f"errcode: {errcode}"
            )
            raise ProfileFetchError(
                f"[QQ Token Error] {message}",
                provider_code=errcode,
                provider_message=message,
            )

        openid = token_info.get("openid")
        unionid = token_info.get("unionid")
        if not openid or not unionid:
            raise ProfileFetchError(
                "[QQ Token Error] Missing unionid or openid in response",
                status_code=400,
            )

        user_info = await self.get_json(
            self.profile_url,
            params={
                "access_token": token.access_token,
                "openid": openid,
                "oauth_consumer_key": token_info.get("client_id")
                or self.credentials.client_id,
                "format": "json",
            },
        )

        ret = user_info.get("ret")
        if ret != 0:
            message = user_info.get("msg") or f"ret: {ret}"
            raise ProfileFetchError(
                f"[QQ UserInfo Error] {message}",
                provider_code=ret,
                provider_message=message,
            )

        return {**user_info, "openid": openid, "unionid": unionid}

    def map_profile(self, profile: dict) -> dict[str, Any]:
        return {
            "id": profile.get("unionid"),
            "name": profile.get("nickname") or "QQ User",
            "email": profile.get("email"),
            "url": None,
            "avatar": first_non_empty(*(profile.get(field) for field in AVATAR_FIELDS)),
        }
