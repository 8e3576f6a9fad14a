"""Tests for configuration loading, validation and server settings helpers."""

import json
from unittest.mock import patch

import pytest

from kernel_sessions import config
from kernel_sessions._exceptions import ConfigurationError, ServerConfigurationError
from kernel_sessions.client import ServerSettings

VALID_CONFIG = {
    "default_server": "local",
    "servers": {
        "local": {
            "base_url": "http://localhost:8888/",
            "token": "local-token",
            "poll_interval_seconds": 5,
        },
        "shared": {
            "base_url": "https://hub.example.com/user/me/",
            "token_env_var": "SHARED_TOKEN",
            "request_timeout_seconds": 60,
        },
    },
}


@pytest.fixture
def config_manager():
    return config.ConfigManager()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "kernel_sessions.json"
    path.write_text(json.dumps(VALID_CONFIG))
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(path))
    return path


# --- validate_config ---


def test_validate_config_valid():
    assert config.validate_config(VALID_CONFIG) is VALID_CONFIG
    assert config.validate_config({}) == {}
    assert config.validate_config({"servers": {}}) == {"servers": {}}


def test_validate_config_not_a_dict():
    with pytest.raises(ConfigurationError, match="JSON object"):
        config.validate_config([])


def test_validate_config_unknown_top_level_key():
    with pytest.raises(ConfigurationError, match="Unknown top-level keys"):
        config.validate_config({"servers": {}, "extra": 1})


def test_validate_config_servers_not_a_dict():
    with pytest.raises(ServerConfigurationError, match="'servers' must be a dictionary"):
        config.validate_config({"servers": []})


def test_validate_config_default_server_must_exist():
    with pytest.raises(ServerConfigurationError, match="unknown server 'missing'"):
        config.validate_config({"default_server": "missing", "servers": {}})
    with pytest.raises(ServerConfigurationError, match="must be a string"):
        config.validate_config({"default_server": 1, "servers": {}})


@pytest.mark.parametrize(
    "server_config, message",
    [
        ("http://h/", "must be a dictionary"),
        ({}, "Missing required field 'base_url'"),
        ({"base_url": ""}, "must not be empty"),
        ({"base_url": "http://h/", "port": 1}, "Unknown field 'port'"),
        ({"base_url": 5}, "must be of type str"),
        ({"base_url": "http://h/", "request_timeout_seconds": "5"}, "must be one of types"),
        ({"base_url": "http://h/", "poll_interval_seconds": True}, "must be one of types"),
        ({"base_url": "http://h/", "poll_interval_seconds": 0}, "must be positive"),
        ({"base_url": "http://h/", "request_timeout_seconds": -1.5}, "must be positive"),
        ({"base_url": "http://h/", "token": "t", "token_env_var": "T"}, "Please use only one"),
    ],
)
def test_validate_single_server_config_errors(server_config, message):
    with pytest.raises(ServerConfigurationError, match=message):
        config.validate_single_server_config("srv", server_config)


def test_validate_servers_config_none_is_allowed():
    config.validate_servers_config(None)


def test_redact_server_config():
    original = {"base_url": "http://h/", "token": "secret"}
    redacted = config.redact_server_config(original)
    assert redacted == {"base_url": "http://h/", "token": "[REDACTED]"}
    assert original["token"] == "secret"
    assert config.redact_server_config({"base_url": "http://h/", "token": ""})["token"] == ""


# --- Loading ---


def test_get_config_path(monkeypatch):
    monkeypatch.setenv(config.CONFIG_ENV_VAR, "/tmp/x.json")
    assert config.get_config_path() == "/tmp/x.json"
    monkeypatch.delenv(config.CONFIG_ENV_VAR)
    with pytest.raises(RuntimeError, match=config.CONFIG_ENV_VAR):
        config.get_config_path()


@pytest.mark.asyncio
async def test_get_config_loads_and_caches(config_manager, config_file):
    loaded = await config_manager.get_config()
    assert loaded == VALID_CONFIG

    with patch.object(config, "load_and_validate_config") as mock_load:
        assert await config_manager.get_config() is loaded
    mock_load.assert_not_called()

    await config_manager.clear_config_cache()
    config_file.write_text(json.dumps({"servers": {}}))
    assert await config_manager.get_config() == {"servers": {}}


@pytest.mark.asyncio
async def test_get_config_logs_redacted_summary(config_manager, config_file, caplog):
    caplog.set_level("INFO")
    await config_manager.get_config()
    text = caplog.text
    assert "Server 'local'" in text
    assert "local-token" not in text


@pytest.mark.asyncio
async def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        await config.load_and_validate_config(str(tmp_path / "missing.json"))


@pytest.mark.asyncio
async def test_load_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        await config.load_and_validate_config(str(path))


@pytest.mark.asyncio
async def test_load_invalid_server_config(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"servers": {"x": {"token": "t"}}}))
    with pytest.raises(ServerConfigurationError, match="base_url"):
        await config.load_and_validate_config(str(path))


@pytest.mark.asyncio
async def test_set_config_cache_validates(config_manager):
    with pytest.raises(ConfigurationError):
        await config_manager._set_config_cache({"bogus": True})
    await config_manager._set_config_cache({"servers": {}})
    assert await config_manager.get_config() == {"servers": {}}


# --- Server helpers ---


@pytest.mark.asyncio
async def test_get_server_settings_default_server(config_manager):
    await config_manager._set_config_cache(VALID_CONFIG)
    settings = await config.get_server_settings(config_manager)
    assert settings == ServerSettings(base_url="http://localhost:8888/", token="local-token")


@pytest.mark.asyncio
async def test_get_server_settings_token_from_env(config_manager, monkeypatch):
    monkeypatch.setenv("SHARED_TOKEN", "env-secret")
    await config_manager._set_config_cache(VALID_CONFIG)
    settings = await config.get_server_settings(config_manager, "shared")
    assert settings.base_url == "https://hub.example.com/user/me/"
    assert settings.token == "env-secret"
    assert settings.request_timeout_seconds == 60


@pytest.mark.asyncio
async def test_get_server_settings_token_env_var_unset(config_manager, monkeypatch):
    monkeypatch.delenv("SHARED_TOKEN", raising=False)
    await config_manager._set_config_cache(VALID_CONFIG)
    with pytest.raises(ServerConfigurationError, match="SHARED_TOKEN"):
        await config.get_server_settings(config_manager, "shared")


@pytest.mark.asyncio
async def test_get_server_settings_single_server_without_default(config_manager, monkeypatch):
    monkeypatch.delenv("KERNEL_SESSIONS_TOKEN", raising=False)
    await config_manager._set_config_cache({"servers": {"only": {"base_url": "http://only/"}}})
    settings = await config.get_server_settings(config_manager)
    assert settings.base_url == "http://only/"
    assert settings.token == ""


@pytest.mark.asyncio
async def test_get_server_settings_ambiguous_or_unknown(config_manager):
    await config_manager._set_config_cache(
        {"servers": {"a": {"base_url": "http://a/"}, "b": {"base_url": "http://b/"}}}
    )
    with pytest.raises(ServerConfigurationError, match="No server name given"):
        await config.get_server_settings(config_manager)
    with pytest.raises(ServerConfigurationError, match="'c' not found"):
        await config.get_server_settings(config_manager, "c")


@pytest.mark.asyncio
async def test_get_poll_interval(config_manager):
    await config_manager._set_config_cache(VALID_CONFIG)
    assert await config.get_poll_interval(config_manager) == 5.0
    assert await config.get_poll_interval(config_manager, "shared") == config.DEFAULT_POLL_INTERVAL_SECONDS


@pytest.mark.asyncio
async def test_get_all_server_names(config_manager):
    await config_manager._set_config_cache(VALID_CONFIG)
    assert await config.get_all_server_names(config_manager) == ["local", "shared"]
    await config_manager.clear_config_cache()
    await config_manager._set_config_cache({})
    assert await config.get_all_server_names(config_manager) == []
