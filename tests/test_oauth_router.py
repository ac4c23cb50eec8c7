"""
Tests for the OAuth router endpoints.
"""

import logging
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from respx import MockRouter

from social_login.core.state import decode_state, encode_state
from social_login.providers.qq import QQProvider
from social_login.providers.twitter import TwitterProvider
from tests.conftest import BASE_URL, make_config


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


def _begin(client, provider="twitter", **params) -> str:
    """Run the authorize step and return the issued state."""
    response = client.get(f"/oauth/{provider}", params=params, follow_redirects=False)
    assert response.status_code == 302
    return _query(response.headers["location"])["state"][0]


# ============================================================================
# GET /oauth/providers
# ============================================================================


class TestListProviders:
    """Tests for the GET /oauth/providers endpoint."""

    def test_lists_configured_providers(self, client):
        response = client.get("/oauth/providers")

        assert response.status_code == 200
        assert response.json() == {
            "providers": [
                {"name": "huawei", "origin": "oauth-login.cloud.huawei.com"},
                {"name": "qq", "origin": "graph.qq.com"},
                {"name": "twitter", "origin": "x.com"},
            ]
        }

    def test_skips_unconfigured_providers(self, client_for):
        """Providers without credentials are not registered."""
        client = client_for(
            make_config(huawei_client_secret=None, qq_client_id=None)
        )

        response = client.get("/oauth/providers")

        assert response.json() == {"providers": [{"name": "twitter", "origin": "x.com"}]}

    def test_listing_does_not_log_missing_credentials(self, client_for, caplog):
        """Listing reads the config; it does not rerun the startup check."""
        client = client_for(make_config(huawei_client_secret=None))

        with caplog.at_level(logging.INFO):
            for _ in range(3):
                client.get("/oauth/providers")

        assert "not configured" not in caplog.text
        assert "Registered" not in caplog.text


# ============================================================================
# GET /oauth/{provider} - capability checks
# ============================================================================


class TestProviderValidation:
    """Unknown and unconfigured providers."""

    def test_unknown_provider_returns_404(self, client):
        response = client.get("/oauth/github", follow_redirects=False)

        assert response.status_code == 404
        assert response.json() == {
            "error": "Unknown provider: github. Supported: ['huawei', 'qq', 'twitter']"
        }

    def test_unconfigured_provider_returns_503(self, client_for):
        """A provider with no credentials is never started."""
        client = client_for(
            make_config(twitter_client_id=None, twitter_client_secret=None)
        )

        response = client.get("/oauth/twitter", follow_redirects=False)

        assert response.status_code == 503
        assert response.json() == {"error": "Provider 'twitter' is not configured"}


# ============================================================================
# GET /oauth/{provider} - authorize redirect
# ============================================================================


class TestAuthorizeRedirect:
    """Entry point without a code."""

    @pytest.mark.parametrize("provider", ["huawei", "qq", "twitter"])
    def test_redirects_to_provider(self, client, provider):
        response = client.get(f"/oauth/{provider}", follow_redirects=False)

        assert response.status_code == 302
        location = response.headers["location"]
        query = _query(location)
        assert query["response_type"] == ["code"]
        assert query["code_challenge_method"] == ["S256"]
        assert query["redirect_uri"] == [f"{BASE_URL}/oauth/{provider}"]
        assert query["client_id"] == [f"{provider}-id"]
        assert "state" in query
        assert "code_challenge" in query

    def test_twitter_authorize_endpoint(self, client):
        response = client.get("/oauth/twitter", follow_redirects=False)

        assert response.headers["location"].startswith(
            "https://x.com/i/oauth2/authorize?"
        )

    def test_state_captures_caller_redirect(self, client):
        state = _begin(client, redirect="https://blog.example.com/ui", state="abc")

        login_state = decode_state(state)
        assert login_state.redirect_target == "https://blog.example.com/ui"
        assert login_state.caller_state == "abc"
        assert login_state.callback_url == f"{BASE_URL}/oauth/twitter"

    def test_code_without_state_restarts(self, client):
        response = client.get(
            "/oauth/twitter", params={"code": "abc"}, follow_redirects=False
        )

        assert response.status_code == 302
        assert response.headers["location"].startswith("https://x.com/")

    def test_server_held_state_is_opaque(self, client_for, state_store):
        client = client_for(make_config(state_strategy="server"))

        state = _begin(client, redirect="https://blog.example.com/ui")

        assert len(state) == 32
        assert decode_state(state) is None


# ============================================================================
# GET /oauth/{provider} - callback
# ============================================================================


class TestCallback:
    """Callback handling."""

    def test_invalid_state_returns_400(self, client):
        response = client.get(
            "/oauth/twitter",
            params={"code": "abc", "state": "not-a-state"},
            follow_redirects=False,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid OAuth state"}

    def test_unknown_server_held_state_returns_400(self, client_for, state_store):
        client = client_for(make_config(state_strategy="server"))

        response = client.get(
            "/oauth/twitter",
            params={"code": "abc", "state": "0" * 32},
            follow_redirects=False,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid OAuth state"}

    def test_relays_code_to_requesting_application(self, client):
        """A browser callback is redirected to the caller's redirect URL."""
        state = _begin(client, redirect="https://blog.example.com/ui?lang=en")

        response = client.get(
            "/oauth/twitter",
            params={"code": "the-code", "state": state},
            headers={"User-Agent": "Mozilla/5.0"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("https://blog.example.com/ui?lang=en&")
        assert _query(location)["code"] == ["the-code"]
        assert _query(location)["state"] == [state]

    def test_missing_access_token_returns_401(self, client, respx_mock: MockRouter):
        respx_mock.post(TwitterProvider.token_url).mock(
            return_value=httpx.Response(200, json={"token_type": "bearer"})
        )
        state = _begin(client)

        response = client.get(
            "/oauth/twitter",
            params={"code": "the-code", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 401
        assert response.json() == {
            "error": "Failed to obtain access token from Twitter"
        }

    def test_full_flow_returns_identity(self, client, respx_mock: MockRouter):
        token_route = respx_mock.post(TwitterProvider.token_url).mock(
            return_value=httpx.Response(200, json={"access_token": "at-1"})
        )
        respx_mock.get(TwitterProvider.profile_url).mock(
            return_value=httpx.Response(
                200, json={"data": {"id": "42", "username": "jack"}}
            )
        )
        state = _begin(client)

        response = client.get(
            "/oauth/twitter",
            params={"code": "the-code", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 200
        assert response.json() == {
            "id": "42",
            "name": "jack",
            "email": None,
            "url": "https://twitter.com/jack",
            "avatar": None,
            "type": "twitter",
        }
        form = parse_qs(token_route.calls.last.request.content.decode())
        assert form["code_verifier"] == [decode_state(state).verifier]
        assert form["redirect_uri"] == [f"{BASE_URL}/oauth/twitter"]

    def test_replayed_callback_from_requesting_application(
        self, client, respx_mock: MockRouter
    ):
        """The requesting application replays with the relay user agent."""
        respx_mock.post(TwitterProvider.token_url).mock(
            return_value=httpx.Response(200, json={"access_token": "at-1"})
        )
        respx_mock.get(TwitterProvider.profile_url).mock(
            return_value=httpx.Response(200, json={"data": {"id": "42", "name": "Jack"}})
        )
        state = _begin(client, redirect="https://blog.example.com/ui")

        response = client.get(
            "/oauth/twitter",
            params={"code": "the-code", "state": state},
            headers={"User-Agent": "@waline"},
            follow_redirects=False,
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Jack"

    def test_qq_body_level_error_returns_401(self, client, respx_mock: MockRouter):
        respx_mock.post(QQProvider.token_url).mock(
            return_value=httpx.Response(200, json={"access_token": "at"})
        )
        respx_mock.get(QQProvider.token_info_url).mock(
            return_value=httpx.Response(
                200, json={"errcode": 100016, "errmsg": "access token check failed"}
            )
        )
        state = _begin(client, provider="qq")

        response = client.get(
            "/oauth/qq", params={"code": "c", "state": state}, follow_redirects=False
        )

        assert response.status_code == 401
        assert response.json() == {
            "error": "[QQ Token Error] access token check failed",
            "code": 100016,
        }

    def test_server_held_full_flow_is_single_use(
        self, client_for, state_store, respx_mock: MockRouter
    ):
        client = client_for(make_config(state_strategy="server"))
        respx_mock.post(TwitterProvider.token_url).mock(
            return_value=httpx.Response(200, json={"access_token": "at-1"})
        )
        respx_mock.get(TwitterProvider.profile_url).mock(
            return_value=httpx.Response(200, json={"data": {"id": "42", "name": "Jack"}})
        )
        state = _begin(client)

        first = client.get(
            "/oauth/twitter", params={"code": "c", "state": state}, follow_redirects=False
        )
        second = client.get(
            "/oauth/twitter", params={"code": "c", "state": state}, follow_redirects=False
        )

        assert first.status_code == 200
        assert second.status_code == 400

    def test_state_for_other_callback_url_still_uses_its_own(
        self, client, respx_mock: MockRouter, login_state
    ):
        """The token request uses the callback URL captured in the state."""
        route = respx_mock.post(TwitterProvider.token_url).mock(
            return_value=httpx.Response(400, json={"error": "invalid_grant"})
        )
        login_state.redirect_target = None
        login_state.callback_url = "https://old.example.com/oauth/twitter"

        response = client.get(
            "/oauth/twitter",
            params={"code": "c", "state": encode_state(login_state)},
            follow_redirects=False,
        )

        assert response.status_code == 401
        assert response.json()["code"] == "invalid_grant"
        form = parse_qs(route.calls.last.request.content.decode())
        assert form["redirect_uri"] == ["https://old.example.com/oauth/twitter"]


# ============================================================================
# GET /oauth/{provider} - redirect allowlist
# ============================================================================


class TestRedirectAllowlist:
    """Caller redirects restricted by OAUTH_ALLOWED_REDIRECT_HOSTS."""

    @pytest.fixture
    def client(self, client_for):
        return client_for(make_config(allowed_redirect_hosts=["blog.example.com"]))

    def test_allowed_host_starts_login(self, client):
        state = _begin(client, redirect="https://blog.example.com/ui")

        assert decode_state(state).redirect_target == "https://blog.example.com/ui"

    @pytest.mark.parametrize(
        "redirect",
        [
            "https://evil.example.net/steal",
            "https://blog.example.com.evil.net/",
            "javascript://blog.example.com/%0aalert(1)",
        ],
    )
    def test_other_host_is_rejected_before_login(self, client, redirect):
        response = client.get(
            "/oauth/twitter", params={"redirect": redirect}, follow_redirects=False
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Redirect URL not allowed"}

    def test_forged_state_is_not_relayed(self, client, login_state):
        """A stateless state built elsewhere cannot relay codes to other hosts."""
        login_state.redirect_target = "https://evil.example.net/steal"

        response = client.get(
            "/oauth/twitter",
            params={"code": "the-code", "state": encode_state(login_state)},
            headers={"User-Agent": "Mozilla/5.0"},
            follow_redirects=False,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Redirect URL not allowed"}

    def test_allowed_host_is_relayed(self, client):
        state = _begin(client, redirect="https://blog.example.com/ui")

        response = client.get(
            "/oauth/twitter",
            params={"code": "the-code", "state": state},
            headers={"User-Agent": "Mozilla/5.0"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"].startswith("https://blog.example.com/ui?")

    def test_empty_allowlist_accepts_any_host(self, client_for):
        client = client_for(make_config())

        state = _begin(client, redirect="https://anywhere.example.org/cb")

        assert decode_state(state).redirect_target == "https://anywhere.example.org/cb"
