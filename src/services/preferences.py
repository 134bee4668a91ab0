"""Read-only access to persisted user preferences.

The ingestion service only ever reads the simulated-mode flag; writers
(settings screens, admin tooling) live outside this package.
"""

import logging
from functools import lru_cache
from typing import Dict, Optional, Protocol

from redis import Redis
from redis.exceptions import RedisError

from src.config import get_settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "preferences"


class PreferenceStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...


class InMemoryPreferenceStore:
    """Dict-backed store for local runs and tests."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class RedisPreferenceStore:
    """Preferences kept as plain string keys under ``preferences:<key>``."""

    def __init__(self, redis_client: Redis):
        self._redis = redis_client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._redis.get(f"{KEY_PREFIX}:{key}")
        except RedisError as e:
            # An unreachable store means "no saved preference", not a failed ingestion.
            logger.warning(f"Preference lookup failed for {key}: {e}")
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value


def read_flag(store: PreferenceStore, key: str) -> bool:
    """A flag is on only when stored as ``"true"`` (case-insensitive)."""
    value = store.get(key)
    return value is not None and value.strip().lower() == "true"


@lru_cache(maxsize=1)
def make_preference_store() -> PreferenceStore:
    settings = get_settings()
    if settings.preferences_backend == "redis":
        client = Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            decode_responses=True,
            socket_timeout=2.0,
        )
        return RedisPreferenceStore(client)
    return InMemoryPreferenceStore()
