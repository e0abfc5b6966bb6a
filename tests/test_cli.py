"""Tests for the ``skerry-ssr`` command line."""

import pytest

from skerry.ssr import __main__ as cli


@pytest.fixture
def served(monkeypatch) -> list:
    calls: list = []
    monkeypatch.setattr(
        "skerry.ssr.server.run_server",
        lambda app, *, workers=1, reload=False: calls.append((app, workers)),
    )
    return calls


class TestMain:
    def test_flags_build_config(self, served: list, tmp_path) -> None:
        cli.main(
            [
                "--port",
                "6001",
                "--env",
                "production",
                "--bundle-cache",
                "7",
                "--artifact-dir",
                str(tmp_path),
                "--workers",
                "2",
            ]
        )

        ((app, workers),) = served
        assert app.config.port == 6001
        assert app.config.environment == "production"
        assert app.config.bundle_cache_size == 7
        assert app.service.bundles.capacity == 7
        assert workers == 2

    def test_environment_used_when_no_flag(self, served: list, monkeypatch) -> None:
        monkeypatch.setenv("SKERRY_SSR_PORT", "6123")
        cli.main([])

        ((app, _),) = served
        assert app.config.port == 6123
        app.service.bundles.close()

    def test_invalid_config_exits(self, served: list, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["--bundle-cache", "0"])

        assert excinfo.value.code == 2
        assert "bundle_cache_size" in capsys.readouterr().err
        assert served == []
