"""Result cache for rendered island HTML.

Keys are ``ComponentName:<canonical props JSON>`` so two deep-equal prop
objects always land in the same slot regardless of key order. The cache
is off unless a TTL is configured; when on, every island render goes
through it.

Storage is pluggable. ``MemoryStore`` is the single-process default;
anything with ``get``/``set``-style methods (a redis client, a Django
cache) can be wrapped with ``GenericStore`` for multi-process
deployments.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from skerry._internal.canonical import canonical_json
from skerry.errors import ConfigurationError

logger = logging.getLogger("skerry.cache")


@runtime_checkable
class CacheStore(Protocol):
    """Minimal key/value store with per-entry TTL."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str, *, ttl: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_matched(self, prefix: str) -> int: ...

    def clear(self) -> None: ...


class MemoryStore:
    """In-process store. Expired entries are dropped lazily on read."""

    __slots__ = ("_clock", "_entries", "_lock")

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def read(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def write(self, key: str, value: str, *, ttl: float | None = None) -> None:
        expires_at = None if ttl is None else self._clock() + ttl
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_matched(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class GenericStore:
    """Adapt an arbitrary cache client to the ``CacheStore`` protocol.

    Supports two shapes:

    - ``read(key)`` / ``write(key, value, expires_in=...)`` (Rails-style)
    - ``get(key)`` / ``set(key, value, ex=...)`` (redis-py style), with
      ``scan_iter(match=...)`` used for prefix deletion when available
    """

    __slots__ = ("_target",)

    def __init__(self, target: Any) -> None:
        has_rw = hasattr(target, "read") and hasattr(target, "write")
        has_gs = hasattr(target, "get") and hasattr(target, "set")
        if not (has_rw or has_gs):
            msg = f"{type(target).__name__} has neither read/write nor get/set methods"
            raise ConfigurationError(msg)
        self._target = target

    def read(self, key: str) -> str | None:
        if hasattr(self._target, "read"):
            value = self._target.read(key)
        else:
            value = self._target.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def write(self, key: str, value: str, *, ttl: float | None = None) -> None:
        if hasattr(self._target, "write"):
            if ttl is None:
                self._target.write(key, value)
            else:
                self._target.write(key, value, expires_in=ttl)
            return
        if ttl is None:
            self._target.set(key, value)
        else:
            self._target.set(key, value, ex=max(1, round(ttl)))

    def delete(self, key: str) -> None:
        if hasattr(self._target, "delete"):
            self._target.delete(key)

    def delete_matched(self, prefix: str) -> int:
        target = self._target
        if hasattr(target, "delete_matched"):
            result = target.delete_matched(f"{prefix}*")
            return result if isinstance(result, int) else 0
        if hasattr(target, "scan_iter"):
            keys = list(target.scan_iter(match=f"{prefix}*"))
            if keys:
                target.delete(*keys)
            return len(keys)
        if hasattr(target, "clear"):
            target.clear()
            return 0
        msg = f"{type(target).__name__} cannot clear keys by prefix"
        raise ConfigurationError(msg)

    def clear(self) -> None:
        if hasattr(self._target, "clear"):
            self._target.clear()
        elif hasattr(self._target, "flushdb"):
            self._target.flushdb()


class NamespacedStore:
    """Prefix every key with ``namespace:`` so ``clear`` wipes only our keys."""

    __slots__ = ("_namespace", "_store")

    def __init__(self, store: CacheStore, namespace: str) -> None:
        self._store = store
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def read(self, key: str) -> str | None:
        return self._store.read(self._key(key))

    def write(self, key: str, value: str, *, ttl: float | None = None) -> None:
        self._store.write(self._key(key), value, ttl=ttl)

    def delete(self, key: str) -> None:
        self._store.delete(self._key(key))

    def delete_matched(self, prefix: str) -> int:
        return self._store.delete_matched(self._key(prefix))

    def clear(self) -> None:
        self._store.delete_matched(f"{self._namespace}:")


def build_store(spec: Any = None) -> CacheStore:
    """Build a store from a config value.

    ``None`` and ``"memory"`` give a ``MemoryStore``; an object already
    satisfying ``CacheStore`` is used as-is; anything else is wrapped in
    ``GenericStore``.
    """
    if spec is None or spec == "memory":
        return MemoryStore()
    if isinstance(spec, str):
        msg = f"Unknown cache store {spec!r} (expected 'memory' or a store object)"
        raise ConfigurationError(msg)
    if isinstance(spec, CacheStore):
        return spec
    return GenericStore(spec)


class ResultCache:
    """Memoizes rendered island HTML by component name and canonical props.

    ``ttl=None`` disables the cache: ``get`` always misses and ``put`` is
    a no-op, so callers never need to branch on configuration.
    """

    __slots__ = ("_store", "_ttl")

    def __init__(
        self,
        store: Any = None,
        *,
        ttl: float | None = None,
        namespace: str = "skerry:ssr",
    ) -> None:
        self._ttl = ttl
        self._store = NamespacedStore(build_store(store), namespace)

    @property
    def enabled(self) -> bool:
        return self._ttl is not None

    @property
    def ttl(self) -> float | None:
        return self._ttl

    @staticmethod
    def key_for(
        name: str,
        props: Mapping[str, Any],
        children: Any = None,
    ) -> str:
        """Deterministic cache key for a component render.

        Tree renders include the canonical children payload so the same root
        with different nested children never collides.

        Example::

            >>> ResultCache.key_for("UserBadge", {"b": 1, "a": 2})
            'UserBadge:{"a":2,"b":1}'
        """
        key = f"{name}:{canonical_json(dict(props))}"
        if children:
            key = f"{key}:{canonical_json(children)}"
        return key

    def get(self, key: str) -> str | None:
        if not self.enabled:
            return None
        html = self._store.read(key)
        logger.debug("Result cache %s for %s", "hit" if html is not None else "miss", key)
        return html

    def put(self, key: str, html: str, ttl: float | None = None) -> None:
        if not self.enabled:
            return
        self._store.write(key, html, ttl=ttl if ttl is not None else self._ttl)

    def clear(self) -> None:
        """Wipe every entry in this cache's namespace."""
        self._store.clear()
        logger.info("Result cache cleared")
