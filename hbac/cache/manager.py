"""In-memory TTL cache for user roles, attributes and access decisions."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from hbac.config.models import CacheConfig

_ROLES_PREFIX = "roles:"
_ATTRIBUTES_PREFIX = "attributes:"
_DECISION_PREFIX = "decision:"


def _stringify_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _stringify_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_stringify_keys(v) for v in value]
    return value


def make_decision_key(
    user_id: str, resource: str, action: str, context: Mapping[str, Any] | None = None
) -> str:
    """Build ``<user>:<resource>:<action>:<context-json>``.

    Context keys are sorted so logically equal contexts share an entry.
    Non-string keys are stringified first, so mixed key types still sort.
    """
    serialized = json.dumps(
        _stringify_keys(context or {}), sort_keys=True, separators=(",", ":"), default=str
    )
    return f"{user_id}:{resource}:{action}:{serialized}"


class CacheManager:
    """Expiring key/value store with per-user invalidation.

    Expiry is checked lazily on read; there is no background sweep. When
    caching is disabled, ``get`` always misses and ``set`` does nothing.
    Decision keys are indexed by owning user so ``invalidate_user`` only
    touches that user's entries.

    Each user also has a generation counter, bumped by ``invalidate_user``.
    Readers capture ``generation(user_id)`` before fetching from storage
    and hand it back to the typed setters; a write carrying an older
    generation is dropped, so a fetch that raced a mutation cannot
    repopulate the cache with pre-mutation data.
    """

    def __init__(self, config: CacheConfig, clock: Callable[[], float] = time.time) -> None:
        self.config = config
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._owner: dict[str, str] = {}  # cache key -> user id
        self._user_keys: dict[str, set[str]] = {}  # user id -> decision cache keys
        self._generations: dict[str, int] = {}  # survives clear()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # -- generic operations ----------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent, expired or disabled."""
        if not self.config.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires = entry
            if self._clock() > expires:
                self._remove(key)
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value for ``ttl`` seconds (defaults to the configured TTL).

        Keys under the decision namespace are indexed by the user named in
        their first segment, whichever entry point wrote them.
        """
        self._store(key, value, ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._remove(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._owner.clear()
            self._user_keys.clear()

    # -- typed helpers ---------------------------------------------------------

    def generation(self, user_id: str) -> int:
        """Current invalidation generation for ``user_id``."""
        with self._lock:
            return self._generations.get(user_id, 0)

    def get_user_roles(self, user_id: str) -> list[str] | None:
        return self.get(f"{_ROLES_PREFIX}{user_id}")

    def set_user_roles(
        self, user_id: str, roles: list[str], generation: int | None = None
    ) -> None:
        self._store(
            f"{_ROLES_PREFIX}{user_id}", list(roles), user_id=user_id, generation=generation
        )

    def get_user_attributes(self, user_id: str) -> dict[str, Any] | None:
        return self.get(f"{_ATTRIBUTES_PREFIX}{user_id}")

    def set_user_attributes(
        self, user_id: str, attributes: Mapping[str, Any], generation: int | None = None
    ) -> None:
        self._store(
            f"{_ATTRIBUTES_PREFIX}{user_id}",
            dict(attributes),
            user_id=user_id,
            generation=generation,
        )

    def get_permission_decision(self, key: str) -> bool | None:
        return self.get(f"{_DECISION_PREFIX}{key}")

    def set_permission_decision(
        self,
        key: str,
        allowed: bool,
        user_id: str | None = None,
        generation: int | None = None,
    ) -> None:
        """Cache a decision under ``key``.

        ``user_id`` names the owning user for invalidation; when omitted it
        is taken from the key's first segment.
        """
        self._store(f"{_DECISION_PREFIX}{key}", allowed, user_id=user_id, generation=generation)

    def invalidate_user(self, user_id: str) -> None:
        """Drop roles, attributes and every cached decision for one user."""
        with self._lock:
            self._generations[user_id] = self._generations.get(user_id, 0) + 1
            self._remove(f"{_ROLES_PREFIX}{user_id}")
            self._remove(f"{_ATTRIBUTES_PREFIX}{user_id}")
            for key in list(self._user_keys.get(user_id, ())):
                self._remove(key)
            self._user_keys.pop(user_id, None)

    # -- internals -------------------------------------------------------------

    def _store(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        *,
        user_id: str | None = None,
        generation: int | None = None,
    ) -> None:
        """Write an entry and its owner index under a single lock hold."""
        if not self.config.enabled:
            return
        ttl = self.config.ttl if ttl is None else ttl
        is_decision = key.startswith(_DECISION_PREFIX)
        owner = user_id
        if is_decision and owner is None:
            owner = key[len(_DECISION_PREFIX):].split(":", 1)[0]
        with self._lock:
            if (
                generation is not None
                and owner is not None
                and generation != self._generations.get(owner, 0)
            ):
                return
            if is_decision and self._owner.get(key) != owner:
                self._remove(key)
            self._entries[key] = (value, self._clock() + ttl)
            if is_decision:
                self._owner[key] = owner
                self._user_keys.setdefault(owner, set()).add(key)

    def _remove(self, key: str) -> None:
        """Delete one entry and its index record. Caller holds the lock."""
        self._entries.pop(key, None)
        owner = self._owner.pop(key, None)
        if owner is not None:
            keys = self._user_keys.get(owner)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._user_keys[owner]
