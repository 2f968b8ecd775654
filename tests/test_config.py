"""
Tests for configuration — ORCH_* settings and the catalog YAML.
"""

import textwrap
from pathlib import Path

import pytest

from orchestrate_install.core.config.loader import (
    ConfigError,
    default_cache_dir,
    load_catalog,
    load_settings,
)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({"XDG_CACHE_HOME": "/tmp/xdg"})
        assert settings.debug is False
        assert settings.log_level == "WARNING"
        assert settings.cache_dir == Path("/tmp/xdg/orchestrate-install")
        assert settings.cache_ttl_seconds == 3600
        assert settings.strategy_timeout == 600
        assert settings.install_attempts == 3
        assert settings.refresh_indexes is True
        assert settings.catalog_path is None

    def test_overrides(self, tmp_path: Path):
        settings = load_settings({
            "ORCH_DEBUG": "yes",
            "ORCH_LOG_LEVEL": "info",
            "ORCH_CACHE_DIR": str(tmp_path),
            "ORCH_CACHE_TTL": "30",
            "ORCH_STRATEGY_TIMEOUT": "90",
            "ORCH_APT_UPDATE": "0",
            "ORCH_INSTALL_ATTEMPTS": "1",
        })
        assert settings.debug is True
        assert settings.log_level == "INFO"
        assert settings.cache_dir == tmp_path
        assert settings.cache_ttl_seconds == 30
        assert settings.strategy_timeout == 90
        assert settings.refresh_indexes is False
        assert settings.install_attempts == 1

    def test_home_fallback(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert default_cache_dir({}) == tmp_path / ".cache" / "orchestrate-install"

    @pytest.mark.parametrize("env", [
        {"ORCH_CACHE_TTL": "soon"},
        {"ORCH_STRATEGY_TIMEOUT": "0"},
        {"ORCH_CACHE_TTL": "-5"},
        {"ORCH_APT_UPDATE": "maybe"},
        {"ORCH_INSTALL_ATTEMPTS": "0"},
    ])
    def test_invalid_values(self, env):
        with pytest.raises(ConfigError):
            load_settings(env)


class TestLoadCatalog:
    def test_valid_catalog(self, tmp_path: Path):
        path = tmp_path / "catalog.yml"
        path.write_text(textwrap.dedent("""\
            httpie:
              apt: httpie
              cli: http
            insomnia:
              category: desktop
              snap: insomnia
        """))
        recipes = load_catalog(path)
        assert recipes["httpie"]["apt"] == "httpie"
        assert recipes["httpie"]["category"] == "system"
        assert recipes["insomnia"]["category"] == "desktop"
        assert "apt" not in recipes["insomnia"]

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "catalog.yml"
        path.write_text("")
        assert load_catalog(path) == {}

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_catalog(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "catalog.yml"
        path.write_text("a: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_catalog(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "catalog.yml"
        path.write_text("- curl\n- jq\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_catalog(path)

    def test_bad_category(self, tmp_path: Path):
        path = tmp_path / "catalog.yml"
        path.write_text("thing:\n  category: gui\n")
        with pytest.raises(ConfigError, match="thing"):
            load_catalog(path)
