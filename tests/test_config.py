"""Tests for islands and SSR service configuration."""

import dataclasses
import os

import pytest

from skerry.config import IslandsConfig, SSRConfig
from skerry.errors import ConfigurationError


class TestIslandsConfig:
    def test_defaults(self) -> None:
        config = IslandsConfig()

        assert config.enabled
        assert config.batch_rendering_enabled
        assert config.tree_rendering_enabled
        assert config.ssr_cache_ttl_seconds is None
        assert config.max_nesting_depth_warning == 3
        assert not config.debug

    def test_frozen(self) -> None:
        config = IslandsConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.debug = True  # type: ignore[misc]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"ssr_timeout": 0},
            {"batch_timeout": -1},
            {"retry_attempts": -1},
            {"max_payload_bytes": 0},
            {"ssr_cache_ttl_seconds": 0},
            {"max_nesting_depth_warning": -1},
        ],
    )
    def test_validation(self, overrides: dict) -> None:
        with pytest.raises(ConfigurationError):
            IslandsConfig(**overrides)

    def test_bundle_url_base(self) -> None:
        assert IslandsConfig(ssr_url="http://ssr:5175/").bundle_url_base == (
            "http://ssr:5175/full-page-bundles"
        )
        assert IslandsConfig(bundle_url_prefix="/assets/").bundle_url_base == "/assets"

    def test_from_env(self) -> None:
        config = IslandsConfig.from_env(
            {
                "SKERRY_ENABLED": "false",
                "SKERRY_SSR_URL": "http://ssr:9000",
                "SKERRY_CACHE_TTL": "30",
                "SKERRY_DEBUG": "yes",
                "SKERRY_COMPONENT_DIRS": os.pathsep.join(["a", "b"]),
            }
        )

        assert not config.enabled
        assert config.ssr_url == "http://ssr:9000"
        assert config.ssr_cache_ttl_seconds == 30.0
        assert config.debug
        assert config.component_dirs == ("a", "b")

    def test_from_env_none_ttl_and_overrides(self) -> None:
        config = IslandsConfig.from_env(
            {"SKERRY_CACHE_TTL": "none", "SKERRY_DEBUG": "1"}, debug=False
        )

        assert config.ssr_cache_ttl_seconds is None
        assert not config.debug


class TestSSRConfig:
    def test_defaults(self) -> None:
        config = SSRConfig()

        assert config.port == 5175
        assert config.bundle_cache_size == 20
        assert config.is_development

    @pytest.mark.parametrize(
        "overrides",
        [{"bundle_cache_size": 0}, {"max_body_bytes": 0}, {"render_timeout": 0}],
    )
    def test_validation(self, overrides: dict) -> None:
        with pytest.raises(ConfigurationError):
            SSRConfig(**overrides)

    def test_from_env(self) -> None:
        config = SSRConfig.from_env(
            {
                "SKERRY_SSR_PORT": "6000",
                "SKERRY_ENV": "production",
                "SKERRY_BUNDLE_CACHE": "5",
                "SKERRY_MAX_BODY_BYTES": "2048",
            }
        )

        assert config.port == 6000
        assert not config.is_development
        assert config.bundle_cache_size == 5
        assert config.max_body_bytes == 2048
