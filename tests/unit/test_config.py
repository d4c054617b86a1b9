"""Unit tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from ftcli import config as config_module
from ftcli.client import DEFAULT_ENDPOINT, HOURLY_LIMIT_HEADER, SECONDLY_LIMIT_HEADER
from ftcli.config import Settings
from ftcli.errors import ConfigurationError


def _write_config(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_loads_yaml_with_defaults(tmp_path: Path) -> None:
    """Given a file with credentials only, when loading, then defaults fill the rest."""
    path = _write_config(tmp_path / "config.yml", "client_id: uid\nclient_secret: secret\n")

    settings = Settings.from_file(path, environ={})

    assert settings.client_id == "uid"
    assert settings.client_secret == "secret"
    assert settings.api_endpoint == DEFAULT_ENDPOINT
    assert settings.scopes == ["public"]
    assert settings.rate_limit_headers == [HOURLY_LIMIT_HEADER]
    assert settings.timeout == 30.0


def test_uppercase_keys_and_trailing_slash(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "config.yml",
        "CLIENT_ID: uid\nCLIENT_SECRET: secret\nAPI_ENDPOINT: https://api.intra.test/v2/\n",
    )

    settings = Settings.from_file(path, environ={})

    assert settings.api_endpoint == "https://api.intra.test/v2"


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yml", "client_id: uid\nclient_secret: secret\n")
    environ = {
        "FTCLI_CLIENT_SECRET": "rotated",
        "FTCLI_SCOPES": "public, projects",
        "FTCLI_RATE_LIMIT_HEADERS": f"{HOURLY_LIMIT_HEADER},{SECONDLY_LIMIT_HEADER}",
        "FTCLI_TIMEOUT": "5",
    }

    settings = Settings.from_file(path, environ=environ)

    assert settings.client_secret == "rotated"
    assert settings.scopes == ["public", "projects"]
    assert settings.rate_limit_headers == [HOURLY_LIMIT_HEADER, SECONDLY_LIMIT_HEADER]
    assert settings.timeout == 5.0


def test_explicit_path_wins_over_env(tmp_path: Path) -> None:
    """Given both a path argument and FTCLI_CONFIG_PATH, when loading, then the path wins."""
    from_flag = _write_config(tmp_path / "flag.yml", "client_id: flag\nclient_secret: a\n")
    from_env = _write_config(tmp_path / "env.yml", "client_id: env\nclient_secret: b\n")

    settings = Settings.from_file(from_flag, environ={"FTCLI_CONFIG_PATH": str(from_env)})

    assert settings.client_id == "flag"


def test_config_path_env_without_path(tmp_path: Path) -> None:
    chosen = _write_config(tmp_path / "chosen.yml", "client_id: c\nclient_secret: d\n")

    settings = Settings.from_file(environ={"FTCLI_CONFIG_PATH": str(chosen)})

    assert settings.client_id == "c"


def test_environment_alone_without_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config_module, "default_config_path", lambda: tmp_path / "absent.yml")

    settings = Settings.from_file(
        environ={"FTCLI_CLIENT_ID": "uid", "FTCLI_CLIENT_SECRET": "secret"}
    )

    assert settings.client_id == "uid"


def test_explicit_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Config file not found"):
        Settings.from_file(tmp_path / "missing.yml", environ={})


def test_missing_required_keys(tmp_path: Path) -> None:
    """Given a file without a secret, when loading, then the error names the key."""
    path = _write_config(tmp_path / "config.yml", "client_id: uid\n")

    with pytest.raises(ConfigurationError, match="client_secret is required"):
        Settings.from_file(path, environ={})


def test_non_mapping_file(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yml", "- just\n- a list\n")

    with pytest.raises(ConfigurationError, match="mapping"):
        Settings.from_file(path, environ={})


def test_invalid_value(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "config.yml", "client_id: uid\nclient_secret: secret\ntimeout: 0\n"
    )

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        Settings.from_file(path, environ={})
