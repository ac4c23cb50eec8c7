"""
Shared test configuration and fixtures.
"""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Keep the real environment out of the app under test
with patch.dict(
    os.environ,
    {"BASE_URL": "http://testserver", "LOG_LEVEL": "DEBUG"},
):
    from social_login.main import app

from social_login.core.domain import LoginState
from social_login.infrastructure.state_store import (
    InMemoryStateStore,
    reset_state_store,
    set_state_store,
)
from social_login.oauth.config import OAuthConfig, get_oauth_config


BASE_URL = "http://testserver"


def make_config(**overrides) -> OAuthConfig:
    """OAuthConfig with every provider configured."""
    values = {
        "base_url": BASE_URL,
        "huawei_client_id": "huawei-id",
        "huawei_client_secret": "huawei-secret",
        "qq_client_id": "qq-id",
        "qq_client_secret": "qq-secret",
        "twitter_client_id": "twitter-id",
        "twitter_client_secret": "twitter-secret",
    }
    values.update(overrides)
    return OAuthConfig(**values)


@pytest.fixture
def oauth_config():
    """Config with all providers configured and stateless state."""
    return make_config()


@pytest.fixture
def state_store():
    """Fresh in-memory state store installed as the app's store."""
    store = InMemoryStateStore()
    set_state_store(store)
    yield store
    reset_state_store()


@pytest.fixture
def login_state():
    """Login state as captured by the authorize step."""
    return LoginState(
        verifier="test-verifier-0123456789-abcdefghijklmnopq",
        redirect_target="https://blog.example.com/ui/oauth",
        caller_state="caller-state",
        callback_url=f"{BASE_URL}/oauth/twitter",
    )


@pytest.fixture
def client_for():
    """
    Build a TestClient for a given OAuthConfig.

    Overrides are removed when the test finishes.
    """

    def _client(config: OAuthConfig) -> TestClient:
        app.dependency_overrides[get_oauth_config] = lambda: config
        return TestClient(app)

    yield _client
    app.dependency_overrides.pop(get_oauth_config, None)


@pytest.fixture
def client(client_for, oauth_config):
    """Test client with all providers configured."""
    return client_for(oauth_config)
