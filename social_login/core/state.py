"""
Login state codec and the two state strategies.

Stateless: the whole LoginState travels in the `state` parameter as
base64url JSON. Server-held: only an opaque token travels; the state
is kept in a StateStore under "pkce:<token>" and consumed on use.
"""

import base64
import binascii
import json
import logging
import uuid
from typing import Optional

from pydantic import ValidationError

from social_login.core.domain import LoginState
from social_login.core.pkce import base64url
from social_login.core.ports import StateStore


logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "pkce:"
DEFAULT_STATE_TTL = 600

STATELESS = "stateless"
SERVER_HELD = "server"
STATE_STRATEGIES = [STATELESS, SERVER_HELD]


def encode_state(state: LoginState) -> str:
    """Serialize login state to unpadded base64url JSON."""
    payload = json.dumps(state.to_wire(), separators=(",", ":"))
    return base64url(payload.encode("utf-8"))


def decode_state(token: Optional[str]) -> Optional[LoginState]:
    """
    Decode a value produced by encode_state.

    Returns None for anything that is not valid base64url JSON with the
    LoginState shape. Never raises.
    """
    if not token:
        return None
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(raw.decode("utf-8"))
        if not isinstance(data, dict):
            return None
        return LoginState.model_validate(data)
    except (
        binascii.Error,
        UnicodeError,
        ValueError,
        ValidationError,
    ):
        return None


def generate_oauth_state() -> str:
    """Random opaque state token: 32 lowercase hex chars."""
    return uuid.uuid4().hex


def state_key(oauth_state: str) -> str:
    return f"{STATE_KEY_PREFIX}{oauth_state}"


class StatelessStateStrategy:
    """
    State carried entirely in the `state` parameter.

    Needs no server memory, but cannot be revoked or expired server-side:
    a (code, state) pair can be replayed until the provider's code expires.
    """

    async def issue(self, state: LoginState) -> str:
        return encode_state(state)

    async def recover(self, token: str, consume: bool = True) -> Optional[LoginState]:
        return decode_state(token)


class ServerHeldStateStrategy:
    """
    State kept in a StateStore, keyed by a random opaque token.

    Each state is single-use: recover(consume=True) deletes the entry and
    only the caller whose delete succeeded gets the state back.
    """

    def __init__(self, store: StateStore, ttl: int = DEFAULT_STATE_TTL):
        self._store = store
        self._ttl = ttl

    async def issue(self, state: LoginState) -> str:
        oauth_state = generate_oauth_state()
        await self._store.put(state_key(oauth_state), encode_state(state), self._ttl)
        logger.debug("Stored login state", extra={"ttl": self._ttl})
        return oauth_state

    async def recover(self, token: str, consume: bool = True) -> Optional[LoginState]:
        if not token:
            return None

        key = state_key(token)
        value = await self._store.get(key)
        if value is None:
            logger.info("Login state not found or expired")
            return None

        if consume and not await self._store.delete(key):
            # Another callback consumed it between get and delete
            logger.warning("Login state already consumed")
            return None

        return decode_state(value)


def build_state_strategy(
    strategy: str, store: Optional[StateStore] = None, ttl: int = DEFAULT_STATE_TTL
):
    """
    Create the configured state strategy.

    Args:
        strategy: "stateless" or "server"
        store: Required for the server-held strategy
        ttl: Lifetime of server-held state in seconds

    Raises:
        ValueError: On an unknown strategy or a missing store
    """
    if strategy == STATELESS:
        return StatelessStateStrategy()
    if strategy == SERVER_HELD:
        if store is None:
            raise ValueError("Server-held state strategy requires a state store")
        return ServerHeldStateStrategy(store, ttl)
    raise ValueError(
        f"Unknown state strategy: {strategy}. Supported: {STATE_STRATEGIES}"
    )
