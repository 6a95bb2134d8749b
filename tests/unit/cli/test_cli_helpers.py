# tests/unit/cli/test_cli_helpers.py
"""Tests for CLI settings and database URL resolution."""

import os
from pathlib import Path

import pytest

from cpt.cli_helpers import resolve_database_url, resolve_settings
from cpt.contracts import ConfigurationError
from cpt.core.config import CptSettings, DatabaseSettings


@pytest.fixture(autouse=True)
def _no_ambient_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    for name in list(os.environ):
        if name.startswith("CPT_"):
            monkeypatch.delenv(name)


class TestResolveSettings:
    """Tests for settings file discovery."""

    def test_no_settings_file(self) -> None:
        assert resolve_settings(None) is None

    def test_environment_without_settings_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CPT_DATABASE__URL", "sqlite:///env.db")
        monkeypatch.setenv("CPT_DATABASE__ECHO", "true")

        settings = resolve_settings(None)

        assert settings is not None
        assert settings.database.url == "sqlite:///env.db"
        assert settings.database.echo is True
        assert resolve_database_url(None, settings) == ("sqlite:///env.db", True)

    def test_invalid_environment_without_settings_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CPT_LOGGING__LEVEL", "CHATTY")
        with pytest.raises(ConfigurationError, match=r"CPT_\* environment variables"):
            resolve_settings(None)

    def test_default_file_in_working_directory(self, tmp_path: Path) -> None:
        (tmp_path / "cpt.yaml").write_text("logging:\n  level: debug\n")

        settings = resolve_settings(None)

        assert settings is not None
        assert settings.logging.level == "DEBUG"

    def test_explicit_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "ops.yaml"
        config_file.write_text("database:\n  url: sqlite:///copper.db\n")

        settings = resolve_settings(config_file)

        assert settings is not None
        assert settings.database.url == "sqlite:///copper.db"

    def test_explicit_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Settings file not found"):
            resolve_settings(tmp_path / "missing.yaml")

    def test_invalid_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "cpt.yaml"
        config_file.write_text("logging:\n  level: LOUD\n")

        with pytest.raises(ConfigurationError, match="Error loading settings"):
            resolve_settings(config_file)


class TestResolveDatabaseUrl:
    """Priority: --database > DATABASE_URL > settings."""

    def test_option_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite:///env.db")
        settings = CptSettings(database=DatabaseSettings(url="sqlite:///settings.db"))

        assert resolve_database_url("sqlite:///option.db", settings) == ("sqlite:///option.db", False)

    def test_environment_before_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgres://copper@db/copper")
        settings = CptSettings(database=DatabaseSettings(url="sqlite:///settings.db"))

        assert resolve_database_url(None, settings) == ("postgresql://copper@db/copper", False)

    def test_settings_fallback_with_echo(self) -> None:
        settings = CptSettings(database=DatabaseSettings(url="sqlite:///settings.db", echo=True))

        assert resolve_database_url(None, settings) == ("sqlite:///settings.db", True)

    def test_empty_environment_variable_is_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "")

        with pytest.raises(ConfigurationError, match="DATABASE_URL"):
            resolve_database_url(None, None)

    def test_nothing_configured(self) -> None:
        with pytest.raises(ConfigurationError, match="No database configured"):
            resolve_database_url(None, CptSettings())
