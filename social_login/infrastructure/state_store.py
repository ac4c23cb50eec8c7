"""
StateStore implementations.

Holds server-side login state for the server-held state strategy.
Includes an in-memory implementation for testing and development.
Firestore implementation is used when a GCP project is configured.
"""

import heapq
import logging
import time
from datetime import datetime, timedelta, UTC
from typing import Optional

from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1 import AsyncClient

from social_login.core.ports import StateStore
from social_login.infrastructure.firestore import (
    get_firestore_client,
    is_firestore_available,
)


logger = logging.getLogger(__name__)


class InMemoryStateStore:
    """
    In-memory implementation of StateStore.

    Expired entries behave as missing. Each put also sweeps entries
    whose TTL has passed, using a heap ordered by expiry, so abandoned
    logins do not accumulate. Data is lost when the application restarts
    and is not shared between instances.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._values: dict[str, tuple[str, Optional[float]]] = {}
        self._expiries: list[tuple[float, str]] = []

    def __len__(self) -> int:
        return len(self._values)

    def _live(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._values[key]
            return None
        return value

    def _purge_expired(self) -> None:
        now = self._clock()
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiries)
            entry = self._values.get(key)
            # Skip heap entries left behind by an overwrite or delete
            if entry is not None and entry[1] == expires_at:
                del self._values[key]

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._purge_expired()
        expires_at = self._clock() + ttl if ttl is not None else None
        self._values[key] = (value, expires_at)
        if expires_at is not None:
            heapq.heappush(self._expiries, (expires_at, key))

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def delete(self, key: str) -> bool:
        if self._live(key) is None:
            return False
        del self._values[key]
        return True


class FirestoreStateStore:
    """
    Firestore implementation of StateStore.

    Data model:
    - Collection: oauth_states
      - Document ID: {key}
      - Fields: value, expires_at, created_at

    A Firestore TTL policy on expires_at removes abandoned entries;
    reads treat expired documents as missing regardless.
    """

    COLLECTION = "oauth_states"

    def __init__(self, db: AsyncClient):
        self._db = db
        self._states = db.collection(self.COLLECTION)

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        now = datetime.now(UTC)
        await self._states.document(key).set(
            {
                "value": value,
                "created_at": now,
                "expires_at": now + timedelta(seconds=ttl) if ttl is not None else None,
            }
        )

    async def get(self, key: str) -> Optional[str]:
        doc_ref = self._states.document(key)
        doc = await doc_ref.get()
        if not doc.exists:
            return None

        data = doc.to_dict()
        if data is None:
            return None

        expires_at = data.get("expires_at")
        if expires_at is not None and expires_at <= datetime.now(UTC):
            await doc_ref.delete()
            return None
        return data.get("value")

    async def delete(self, key: str) -> bool:
        """
        Delete a state document.

        Uses an exists precondition so that concurrent deletes of the
        same key succeed exactly once.
        """
        try:
            await self._states.document(key).delete(
                option=self._db.write_option(exists=True)
            )
        except NotFound:
            return False
        return True


# Singleton instance for dependency injection
_state_store: StateStore | None = None


def get_state_store() -> StateStore:
    """
    Get the state store singleton.

    Returns FirestoreStateStore if a GCP project is configured, otherwise
    InMemoryStateStore. Can be overridden via set_state_store for testing.
    """
    global _state_store
    if _state_store is None:
        if is_firestore_available():
            try:
                _state_store = FirestoreStateStore(get_firestore_client())
                logger.info("Using Firestore state store")
            except Exception as e:
                logger.warning(
                    f"Failed to initialize Firestore, falling back to in-memory: {e}"
                )
                _state_store = InMemoryStateStore()
        else:
            logger.info("Using in-memory state store")
            _state_store = InMemoryStateStore()
    return _state_store


def set_state_store(store: StateStore) -> None:
    """Set the state store implementation."""
    global _state_store
    _state_store = store


def reset_state_store() -> None:
    """Reset the state store singleton (for tests)."""
    global _state_store
    _state_store = None
