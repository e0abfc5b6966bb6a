"""Bundle cache: bounded LRU of compiled components.

Keyed by ``(path, mtime_ms, environment)``. The LRU structure is guarded
by a lock; compilation runs outside it, so two threads missing on the
same key may both compile. That is wasted work, never a wrong result:
the first artifact stored wins and the duplicate is released. Each
compile writes its own artifact file, so a release only ever removes
the released artifact's file.

Entries pinned by an in-flight render are never evicted. A pinned entry
that is replaced (new mtime) or cleared is marked retired and released
when its last render finishes.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from skerry.ssr.compiler import BundleKey, CompiledComponent

logger = logging.getLogger("skerry.ssr")


class Compiler(Protocol):
    def key_for(self, path: str, environment: str) -> BundleKey: ...

    def compile(self, key: BundleKey) -> CompiledComponent: ...

    def release(self, component: CompiledComponent) -> None: ...

    def close(self) -> None: ...


@dataclass(slots=True)
class BundleEntry:
    key: BundleKey
    artifact: CompiledComponent
    last_used_at: float
    in_flight: int = 0
    retired: bool = False


class BundleCache:
    """Compile-on-miss LRU cache with in-flight protection."""

    def __init__(
        self,
        compiler: Compiler,
        *,
        capacity: int = 20,
        environment: str = "development",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            msg = f"capacity must be >= 1, got {capacity}"
            raise ValueError(msg)
        self._compiler = compiler
        self._capacity = capacity
        self._environment = environment
        self._clock = clock
        self._entries: OrderedDict[BundleKey, BundleEntry] = OrderedDict()
        self._by_digest: dict[str, BundleKey] = {}
        self._lock = threading.Lock()
        self.compiles = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def environment(self) -> str:
        return self._environment

    def key_for(self, path: str) -> BundleKey:
        return self._compiler.key_for(path, self._environment)

    def get_or_compile(self, key: BundleKey) -> CompiledComponent:
        """Return the artifact for *key*, compiling and storing it on a miss."""
        return self._checkout(key, pin=False).artifact

    @contextmanager
    def acquire(self, path: str) -> Iterator[CompiledComponent]:
        """Pin the current artifact for *path* for the duration of a render."""
        entry = self._checkout(self.key_for(path), pin=True)
        try:
            yield entry.artifact
        finally:
            self._unpin(entry)

    def lookup(self, bundle_key: str) -> CompiledComponent | None:
        """Find a cached artifact by its public bundle key."""
        with self._lock:
            key = self._by_digest.get(bundle_key)
            entry = self._entries.get(key) if key is not None else None
            return entry.artifact if entry is not None else None

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            self._by_digest.clear()
            doomed = [entry.artifact for entry in entries if self._retire(entry)]
        for artifact in doomed:
            self._compiler.release(artifact)
        logger.info("Bundle cache cleared (%d entries)", len(entries))
        return len(entries)

    def close(self) -> None:
        self.clear()
        self._compiler.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    # -- internals ---------------------------------------------------------

    def _checkout(self, key: BundleKey, *, pin: bool) -> BundleEntry:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._touch(entry, pin=pin)
                return entry

        artifact = self._compiler.compile(key)

        doomed: list[CompiledComponent] = []
        with self._lock:
            self.compiles += 1
            existing = self._entries.get(key)
            if existing is not None:
                # Lost a compile race; keep the stored artifact.
                self._touch(existing, pin=pin)
                if existing.artifact is not artifact:
                    doomed.append(artifact)
                entry = existing
            else:
                doomed.extend(self._remove_stale(key))
                entry = BundleEntry(key=key, artifact=artifact, last_used_at=self._clock())
                if pin:
                    entry.in_flight += 1
                self._entries[key] = entry
                self._by_digest[key.digest()] = key
                doomed.extend(self._evict())

        for stale in doomed:
            self._compiler.release(stale)
        return entry

    def _touch(self, entry: BundleEntry, *, pin: bool) -> None:
        entry.last_used_at = self._clock()
        self._entries.move_to_end(entry.key)
        if pin:
            entry.in_flight += 1

    def _unpin(self, entry: BundleEntry) -> None:
        with self._lock:
            entry.in_flight -= 1
            doomed = []
            if entry.retired and entry.in_flight == 0:
                doomed.append(entry.artifact)
            doomed.extend(self._evict())
        for artifact in doomed:
            self._compiler.release(artifact)

    def _remove_stale(self, key: BundleKey) -> list[CompiledComponent]:
        """Drop entries for older mtimes of the same path and environment."""
        stale = [
            existing
            for existing in self._entries
            if existing.path == key.path
            and existing.environment == key.environment
            and existing != key
        ]
        doomed = []
        for existing in stale:
            entry = self._entries.pop(existing)
            self._by_digest.pop(existing.digest(), None)
            if self._retire(entry):
                doomed.append(entry.artifact)
        return doomed

    def _evict(self) -> list[CompiledComponent]:
        """Evict least-recently-used unpinned entries down to capacity."""
        doomed = []
        while len(self._entries) > self._capacity:
            victim = next(
                (entry for entry in self._entries.values() if entry.in_flight == 0),
                None,
            )
            if victim is None:
                break  # everything pinned; shrink again on unpin
            del self._entries[victim.key]
            self._by_digest.pop(victim.key.digest(), None)
            victim.retired = True
            doomed.append(victim.artifact)
            logger.debug("Evicted bundle %s", victim.key)
        return doomed

    @staticmethod
    def _retire(entry: BundleEntry) -> bool:
        """Mark *entry* retired; True when it can be released right away."""
        entry.retired = True
        return entry.in_flight == 0
