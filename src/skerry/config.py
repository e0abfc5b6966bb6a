"""Islands and SSR service configuration.

Both configs are frozen dataclasses: immutable after creation,
IDE-autocompletable, no string-key dict lookups. ``from_env()`` builds a
config from ``SKERRY_*`` environment variables for process-level wiring.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from skerry.errors import ConfigurationError


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_optional_float(value: str) -> float | None:
    value = value.strip()
    if not value or value.lower() == "none":
        return None
    return float(value)


@dataclass(frozen=True, slots=True)
class IslandsConfig:
    """Host-side configuration for scanning and rendering islands.

    All fields have sensible defaults. Override what you need::

        config = IslandsConfig(ssr_url="http://ssr:5175", ssr_cache_ttl_seconds=60)
    """

    enabled: bool = True

    # SSR service
    ssr_url: str = "http://localhost:5175"
    connect_timeout: float = 2.0
    ssr_timeout: float = 5.0  # Read timeout for single renders
    batch_timeout: float = 10.0  # Read timeout for batch and tree renders
    retry_attempts: int = 1  # Extra attempts after a connection failure
    retry_delay: float = 0.05  # Doubles on each retry
    max_payload_bytes: int = 1_000_000

    # Component lookup
    component_dirs: tuple[str | Path, ...] = ("components",)

    # Strategy
    batch_rendering_enabled: bool = True
    tree_rendering_enabled: bool = True
    max_nesting_depth_warning: int = 3

    # Result cache (None disables caching entirely)
    ssr_cache_ttl_seconds: float | None = None
    cache_store: Any = None
    cache_namespace: str = "skerry:ssr"

    # Failure display: overlay when True, hidden placeholder when False
    debug: bool = False

    # Full pages
    full_page_enabled: bool = True
    props_inference_enabled: bool = False
    bundle_url_prefix: str | None = None

    def __post_init__(self) -> None:
        if self.ssr_timeout <= 0 or self.batch_timeout <= 0 or self.connect_timeout <= 0:
            msg = "SSR timeouts must be positive"
            raise ConfigurationError(msg)
        if self.retry_attempts < 0:
            msg = f"retry_attempts must be >= 0, got {self.retry_attempts}"
            raise ConfigurationError(msg)
        if self.max_payload_bytes <= 0:
            msg = f"max_payload_bytes must be positive, got {self.max_payload_bytes}"
            raise ConfigurationError(msg)
        if self.ssr_cache_ttl_seconds is not None and self.ssr_cache_ttl_seconds <= 0:
            msg = "ssr_cache_ttl_seconds must be positive or None"
            raise ConfigurationError(msg)
        if self.max_nesting_depth_warning < 0:
            msg = "max_nesting_depth_warning must be >= 0"
            raise ConfigurationError(msg)

    @property
    def bundle_url_base(self) -> str:
        """URL prefix the browser uses to fetch full-page bundles."""
        if self.bundle_url_prefix:
            return self.bundle_url_prefix.rstrip("/")
        return f"{self.ssr_url.rstrip('/')}/full-page-bundles"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> IslandsConfig:
        """Build a config from ``SKERRY_*`` environment variables.

        Recognized: ``SKERRY_ENABLED``, ``SKERRY_SSR_URL``, ``SKERRY_SSR_TIMEOUT``,
        ``SKERRY_BATCH_TIMEOUT``, ``SKERRY_CACHE_TTL``, ``SKERRY_DEBUG``,
        ``SKERRY_COMPONENT_DIRS`` (``os.pathsep``-separated).
        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if "SKERRY_ENABLED" in env:
            values["enabled"] = _env_bool(env["SKERRY_ENABLED"])
        if "SKERRY_SSR_URL" in env:
            values["ssr_url"] = env["SKERRY_SSR_URL"]
        if "SKERRY_SSR_TIMEOUT" in env:
            values["ssr_timeout"] = float(env["SKERRY_SSR_TIMEOUT"])
        if "SKERRY_BATCH_TIMEOUT" in env:
            values["batch_timeout"] = float(env["SKERRY_BATCH_TIMEOUT"])
        if "SKERRY_CACHE_TTL" in env:
            values["ssr_cache_ttl_seconds"] = _env_optional_float(env["SKERRY_CACHE_TTL"])
        if "SKERRY_DEBUG" in env:
            values["debug"] = _env_bool(env["SKERRY_DEBUG"])
        if env.get("SKERRY_COMPONENT_DIRS"):
            values["component_dirs"] = tuple(
                part for part in env["SKERRY_COMPONENT_DIRS"].split(os.pathsep) if part
            )
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class SSRConfig:
    """Configuration for the out-of-process SSR execution service."""

    host: str = "127.0.0.1"
    port: int = 5175
    environment: str = "development"

    # Requests above this size are rejected with 413 before parsing
    max_body_bytes: int = 1_000_000

    # Bundle cache: bounded entry count, not bytes
    bundle_cache_size: int = 20
    artifact_dir: str | Path | None = None  # None = private temp directory

    # Per-call render deadline inside the service
    render_timeout: float = 10.0

    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.bundle_cache_size < 1:
            msg = f"bundle_cache_size must be >= 1, got {self.bundle_cache_size}"
            raise ConfigurationError(msg)
        if self.max_body_bytes <= 0:
            msg = f"max_body_bytes must be positive, got {self.max_body_bytes}"
            raise ConfigurationError(msg)
        if self.render_timeout <= 0:
            msg = "render_timeout must be positive"
            raise ConfigurationError(msg)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> SSRConfig:
        """Build a config from ``SKERRY_SSR_*`` environment variables.

        Recognized: ``SKERRY_SSR_HOST``, ``SKERRY_SSR_PORT``, ``SKERRY_ENV``,
        ``SKERRY_MAX_BODY_BYTES``, ``SKERRY_BUNDLE_CACHE``,
        ``SKERRY_ARTIFACT_DIR``, ``SKERRY_RENDER_TIMEOUT``.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if "SKERRY_SSR_HOST" in env:
            values["host"] = env["SKERRY_SSR_HOST"]
        if "SKERRY_SSR_PORT" in env:
            values["port"] = int(env["SKERRY_SSR_PORT"])
        if "SKERRY_ENV" in env:
            values["environment"] = env["SKERRY_ENV"]
        if "SKERRY_MAX_BODY_BYTES" in env:
            values["max_body_bytes"] = int(env["SKERRY_MAX_BODY_BYTES"])
        if "SKERRY_BUNDLE_CACHE" in env:
            values["bundle_cache_size"] = int(env["SKERRY_BUNDLE_CACHE"])
        if env.get("SKERRY_ARTIFACT_DIR"):
            values["artifact_dir"] = env["SKERRY_ARTIFACT_DIR"]
        if "SKERRY_RENDER_TIMEOUT" in env:
            values["render_timeout"] = float(env["SKERRY_RENDER_TIMEOUT"])
        values.update(overrides)
        return cls(**values)
