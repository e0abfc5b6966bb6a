"""Component name to source file resolution.

Maps a logical component name (``UserBadge``, ``Admin.UserBadge``) to a
template file under one of the configured component directories.
Resolutions are cached and re-validated against the file's mtime, so a
deleted or touched file is looked up again on the next request.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger("skerry.islands")

EXTENSIONS = (".kida", ".html")

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def to_snake_case(name: str) -> str:
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.replace("-", "_").lower()


def to_kebab_case(name: str) -> str:
    name = _ACRONYM_BOUNDARY.sub(r"\1-\2", name)
    name = _WORD_BOUNDARY.sub(r"\1-\2", name)
    return name.replace("_", "-").lower()


def to_camel_case(name: str) -> str:
    return name[:1].lower() + name[1:]


def name_variants(name: str) -> tuple[str, ...]:
    """Naming conventions tried for a component name, most specific first.

    Example::

        >>> name_variants("UserBadge")
        ('UserBadge', 'user_badge', 'userBadge', 'user-badge')
    """
    variants: list[str] = []
    for variant in (name, to_snake_case(name), to_camel_case(name), to_kebab_case(name)):
        if variant not in variants:
            variants.append(variant)
    return tuple(variants)


@dataclass(frozen=True, slots=True)
class _Resolution:
    path: str
    mtime_ns: int


class ComponentResolver:
    """Resolve component names against a list of directories.

    Lookup order for each directory, name variant, and extension:
    ``<dir>/<Name><ext>``, ``<dir>/<Name>/index<ext>``, then a recursive
    case-insensitive search. Dotted names map to subdirectories
    (``Admin.UserBadge`` -> ``admin/user_badge.kida`` and friends).

    Thread safe: the cache is guarded by a lock and file-system probing
    happens outside it.
    """

    __slots__ = ("_by_path", "_cache", "_dirs", "_extensions", "_lock")

    def __init__(
        self,
        component_dirs: Iterable[str | Path],
        *,
        extensions: Iterable[str] = EXTENSIONS,
    ) -> None:
        self._dirs = tuple(Path(d).expanduser().resolve() for d in component_dirs)
        self._extensions = tuple(extensions)
        self._cache: dict[str, _Resolution] = {}
        self._by_path: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    @property
    def component_dirs(self) -> tuple[Path, ...]:
        return self._dirs

    def resolve(self, name: str) -> str | None:
        """Return the absolute path for *name*, or None when not found."""
        if "/" in name or os.sep in name:
            candidate = Path(name).expanduser().resolve()
            if candidate.is_file():
                return str(candidate)

        cached = self._cached(name)
        if cached is not None:
            return cached

        found = self._search(name)
        if found is None:
            logger.error("Component %r not found in %s", name, [str(d) for d in self._dirs])
            return None

        self._store(name, found)
        logger.debug("Resolved component %s to %s", name, found)
        return found

    def resolve_all(self, names: Iterable[str]) -> tuple[dict[str, str], list[str]]:
        """Resolve many names: ``(paths_by_name, missing_names)``."""
        paths: dict[str, str] = {}
        missing: list[str] = []
        for name in dict.fromkeys(names):
            path = self.resolve(name)
            if path is None:
                missing.append(name)
            else:
                paths[name] = path
        return paths, missing

    def invalidate(self, *, name: str | None = None, path: str | Path | None = None) -> None:
        """Drop cached resolutions for a component name and/or a file path."""
        with self._lock:
            if path is not None:
                for cached_name in self._by_path.pop(str(Path(path).resolve()), set()):
                    self._cache.pop(cached_name, None)
            if name is not None:
                resolution = self._cache.pop(name, None)
                if resolution is not None:
                    self._by_path.get(resolution.path, set()).discard(name)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._by_path.clear()

    # -- internals ---------------------------------------------------------

    def _cached(self, name: str) -> str | None:
        with self._lock:
            resolution = self._cache.get(name)
        if resolution is None:
            return None
        try:
            mtime_ns = os.stat(resolution.path).st_mtime_ns
        except OSError:
            mtime_ns = None
        if mtime_ns == resolution.mtime_ns:
            return resolution.path
        self.invalidate(name=name)
        return None

    def _store(self, name: str, path: str) -> None:
        try:
            mtime_ns = os.stat(path).st_mtime_ns
        except OSError:
            return
        with self._lock:
            self._cache[name] = _Resolution(path, mtime_ns)
            self._by_path.setdefault(path, set()).add(name)

    def _search(self, name: str) -> str | None:
        *namespace, leaf = name.split(".")
        for base in self._dirs:
            if not base.is_dir():
                continue
            for directory in self._namespace_dirs(base, namespace):
                found = self._search_dir(directory, leaf)
                if found is not None:
                    return found
        return None

    def _namespace_dirs(self, base: Path, namespace: list[str]) -> list[Path]:
        """Candidate directories for the dotted prefix of a name."""
        directories = [base]
        for part in namespace:
            next_level: list[Path] = []
            for directory in directories:
                for variant in name_variants(part):
                    candidate = directory / variant
                    if candidate.is_dir() and candidate not in next_level:
                        next_level.append(candidate)
            directories = next_level
        return directories

    def _search_dir(self, directory: Path, leaf: str) -> str | None:
        for variant in name_variants(leaf):
            for ext in self._extensions:
                direct = directory / f"{variant}{ext}"
                if direct.is_file():
                    return str(direct)
                index = directory / variant / f"index{ext}"
                if index.is_file():
                    return str(index)

        wanted = {
            f"{variant}{ext}".lower()
            for variant in name_variants(leaf)
            for ext in self._extensions
        }
        for root, dirs, files in os.walk(directory):
            dirs.sort()
            for filename in sorted(files):
                if filename.lower() in wanted:
                    return str(Path(root) / filename)
        return None
