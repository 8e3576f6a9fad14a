"""
Async kernel-sessions configuration management.

This module loads, validates and caches the configuration naming the session service endpoints a
client talks to. Configuration is read from the file named by the KERNEL_SESSIONS_CONFIG_FILE
environment variable using native async file I/O (aiofiles).

Features:
    - Coroutine-safe, cached loading of configuration using asyncio.Lock.
    - Strict validation of configuration structure and values.
    - Helpers turning a named server entry into `ServerSettings` and its poll interval.
    - Tokens are redacted from every log line.

Configuration Schema:
---------------------
The configuration file must be a JSON object. It may contain the following top-level keys:

  - `servers` (dict, optional): Maps server names to server configuration dicts. Each entry:
        - `base_url` (str, required): Base URL of the server.
        - `token` (str, optional): Authentication token. Use this OR `token_env_var`, not both.
        - `token_env_var` (str, optional): Environment variable from which to read the token.
        - `request_timeout_seconds` (number, optional): Positive per-request timeout.
        - `poll_interval_seconds` (number, optional): Positive interval between reconciliation passes.
  - `default_server` (str, optional): Name of the server used when none is given. Must name an
    entry of `servers`.

Unknown top-level keys and unknown server fields fail validation.

Example Valid Configuration:
---------------------------
```json
{
    "default_server": "local",
    "servers": {
        "local": {
            "base_url": "http://localhost:8888/",
            "token_env_var": "JUPYTER_TOKEN",
            "poll_interval_seconds": 5
        },
        "shared": {
            "base_url": "https://hub.example.com/user/me/",
            "token": "your-token-here",
            "request_timeout_seconds": 60
        }
    }
}
```

Usage Patterns:
---------------
    >>> config_manager = ConfigManager()
    >>> settings = await get_server_settings(config_manager)
    >>> registry = SessionRegistry(settings)
    >>> poller = RunningSessionPoller(registry, interval_seconds=await get_poll_interval(config_manager))

Environment Variables:
---------------------
- `KERNEL_SESSIONS_CONFIG_FILE`: Path to the configuration JSON file.
"""

__all__ = [
    "ConfigurationError",
    "ServerConfigurationError",
    "ConfigManager",
    "CONFIG_ENV_VAR",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "validate_config",
    "get_config_path",
    "load_and_validate_config",
    "get_server_config",
    "get_server_settings",
    "get_poll_interval",
    "get_all_server_names",
    "validate_servers_config",
    "validate_single_server_config",
    "redact_server_config",
]

import asyncio
import json
import logging
import os
from typing import Any, cast

import aiofiles

from kernel_sessions._exceptions import ConfigurationError, ServerConfigurationError
from kernel_sessions.client import ServerSettings, make_settings
from kernel_sessions.session_manager import DEFAULT_POLL_INTERVAL_SECONDS

from ._server import (
    redact_server_config,
    validate_servers_config,
    validate_single_server_config,
)

_LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "KERNEL_SESSIONS_CONFIG_FILE"
"""
str: Name of the environment variable specifying the path to the configuration file.
"""

_ALLOWED_TOP_LEVEL_KEYS: set[str] = {"servers", "default_server"}
"""Set of all allowed top-level keys in the configuration file."""


class ConfigManager:
    """
    Async configuration manager.

    Encapsulates loading, validating and caching the configuration. Share one instance between
    everything that needs configuration in a process.
    """

    def __init__(self) -> None:
        self._cache: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    async def clear_config_cache(self) -> None:
        """
        Clear the cached configuration (coroutine-safe).

        The next access reloads from disk.
        """
        _LOGGER.debug("Clearing kernel-sessions configuration cache...")
        async with self._lock:
            self._cache = None

        _LOGGER.debug("Configuration cache cleared.")

    async def _set_config_cache(self, config: dict[str, Any]) -> None:
        """
        PRIVATE: Validate a configuration dictionary and install it as the cache, bypassing file I/O.

        Intended for tests.

        Raises:
            ConfigurationError: If the provided configuration is invalid.
        """
        async with self._lock:
            self._cache = validate_config(config)

    async def get_config(self) -> dict[str, Any]:
        """
        Load and validate the configuration from disk (coroutine-safe).

        The first call reads the file named by KERNEL_SESSIONS_CONFIG_FILE, validates it and caches
        the result; later calls return the cache.

        Returns:
            dict[str, Any]: The loaded and validated configuration dictionary.

        Raises:
            RuntimeError: If the KERNEL_SESSIONS_CONFIG_FILE environment variable is not set.
            ConfigurationError: If the config file cannot be read, is not JSON, or fails validation.
        """
        _LOGGER.debug("Loading kernel-sessions configuration...")
        async with self._lock:
            if self._cache is not None:
                _LOGGER.debug("Using cached kernel-sessions configuration.")
                return self._cache

            config_path = get_config_path()
            validated = await load_and_validate_config(config_path)
            self._cache = validated
            _log_config_summary(validated)
            return validated


def _resolve_server_name(config: dict[str, Any], name: str | None) -> str:
    servers = config.get("servers", {})
    if name is None:
        name = config.get("default_server")
    if name is None and len(servers) == 1:
        name = next(iter(servers))
    if name is None:
        raise ServerConfigurationError(
            "No server name given and no 'default_server' configured"
        )
    if name not in servers:
        _LOGGER.error(f"Server '{name}' not found in configuration")
        raise ServerConfigurationError(f"Server '{name}' not found in configuration")
    return name


async def get_server_config(
    config_manager: ConfigManager, name: str | None = None
) -> dict[str, Any]:
    """
    Retrieve a server's raw configuration dictionary.

    Args:
        config_manager (ConfigManager): The ConfigManager instance to use.
        name (str | None): Server name. Defaults to `default_server`, or the only configured server.

    Returns:
        dict[str, Any]: The server's configuration dictionary.

    Raises:
        ServerConfigurationError: If the server cannot be determined or is not configured.
    """
    config = await config_manager.get_config()
    name = _resolve_server_name(config, name)
    server_config = config["servers"][name]
    _LOGGER.debug(
        f"Retrieved configuration for server '{name}': {redact_server_config(server_config)}"
    )
    return cast(dict[str, Any], server_config)


async def get_server_settings(
    config_manager: ConfigManager, name: str | None = None
) -> ServerSettings:
    """
    Build `ServerSettings` for a configured server.

    The token is taken from `token`, or read from the environment variable named by
    `token_env_var`.

    Args:
        config_manager (ConfigManager): The ConfigManager instance to use.
        name (str | None): Server name. Defaults to `default_server`, or the only configured server.

    Returns:
        ServerSettings: Settings for the server's endpoint.

    Raises:
        ServerConfigurationError: If the server cannot be determined, is not configured, or names a
            token environment variable that is not set.
    """
    server_config = await get_server_config(config_manager, name)

    token = server_config.get("token", "")
    token_env_var = server_config.get("token_env_var")
    if token_env_var is not None:
        if token_env_var not in os.environ:
            _LOGGER.error(f"Token environment variable {token_env_var} is not set.")
            raise ServerConfigurationError(
                f"Token environment variable {token_env_var} is not set."
            )
        token = os.environ[token_env_var]
        _LOGGER.debug(f"Read server token from environment variable {token_env_var}")

    return make_settings(
        base_url=server_config["base_url"],
        token=token,
        request_timeout_seconds=server_config.get("request_timeout_seconds"),
    )


async def get_poll_interval(
    config_manager: ConfigManager, name: str | None = None
) -> float:
    """Return a configured server's poll interval in seconds (10 when unset)."""
    server_config = await get_server_config(config_manager, name)
    return float(server_config.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS))


async def get_all_server_names(config_manager: ConfigManager) -> list[str]:
    """
    Retrieve the names of all configured servers.

    Returns:
        list[str]: Server names in configuration order, or an empty list if none are configured.
    """
    _LOGGER.debug("Getting list of all configured server names")
    config = await config_manager.get_config()
    names = list(config.get("servers", {}).keys())
    _LOGGER.debug(f"Found {len(names)} server(s): {names}")
    return names


async def _load_config_from_file(config_path: str) -> dict[str, Any]:
    """
    Load and parse the configuration from a JSON file asynchronously.

    Raises:
        ConfigurationError: If the file is not found, cannot be read, or is not valid JSON.
    """
    try:
        async with aiofiles.open(config_path) as f:
            content = await f.read()
        return cast(dict[str, Any], json.loads(content))
    except FileNotFoundError:
        _LOGGER.error(f"Configuration file not found: {config_path}")
        raise ConfigurationError(
            f"Configuration file not found: {config_path}"
        ) from None
    except PermissionError:
        _LOGGER.error(
            f"Permission denied when trying to read configuration file: {config_path}"
        )
        raise ConfigurationError(
            f"Permission denied when trying to read configuration file: {config_path}"
        ) from None
    except json.JSONDecodeError as e:
        _LOGGER.error(f"Invalid JSON in configuration file {config_path}: {e}")
        raise ConfigurationError(
            f"Invalid JSON in configuration file {config_path}: {e}"
        ) from e


def get_config_path() -> str:
    """
    Retrieve the configuration file path from the KERNEL_SESSIONS_CONFIG_FILE environment variable.

    Raises:
        RuntimeError: If the environment variable is not set.
    """
    if CONFIG_ENV_VAR not in os.environ:
        _LOGGER.error(f"Environment variable {CONFIG_ENV_VAR} is not set.")
        raise RuntimeError(f"Environment variable {CONFIG_ENV_VAR} is not set.")
    config_path = os.environ[CONFIG_ENV_VAR]
    _LOGGER.info(f"Environment variable {CONFIG_ENV_VAR} is set to: {config_path}")
    return config_path


async def load_and_validate_config(config_path: str) -> dict[str, Any]:
    """
    Load and validate the configuration from a JSON file.

    Args:
        config_path (str): The path to the configuration JSON file.

    Returns:
        dict[str, Any]: The loaded and validated configuration dictionary.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON, or fails validation.
            Server entry failures are raised as `ServerConfigurationError`.
    """
    data = await _load_config_from_file(config_path)
    try:
        return validate_config(data)
    except ConfigurationError as e:
        _LOGGER.error(f"Configuration validation failed for {config_path}: {e}")
        raise


def _log_config_summary(config: dict[str, Any]) -> None:
    servers = config.get("servers", {})
    if servers:
        _LOGGER.info("Configured servers:")
        for name, details in servers.items():
            _LOGGER.info(f"  Server '{name}': {redact_server_config(details)}")
    else:
        _LOGGER.info("No servers configured.")
    if "default_server" in config:
        _LOGGER.info(f"Default server: {config['default_server']}")


def validate_config(config: Any) -> dict[str, Any]:
    """
    Validate the configuration dictionary.

    Validation Rules:
        - The configuration must be a JSON object.
        - Only known top-level keys are allowed ('servers', 'default_server').
        - Every server entry is validated by `validate_single_server_config`.
        - 'default_server', if present, must be a string naming a configured server.

    Args:
        config (dict[str, Any]): The configuration dictionary to validate.

    Returns:
        dict[str, Any]: The validated configuration dictionary.

    Raises:
        ConfigurationError: If the top-level structure is invalid.
        ServerConfigurationError: If a server entry or 'default_server' is invalid.
    """
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration must be a JSON object, got {type(config).__name__}"
        )

    unknown_keys = set(config.keys()) - _ALLOWED_TOP_LEVEL_KEYS
    if unknown_keys:
        _LOGGER.error(f"Unknown top-level keys in kernel-sessions config: {unknown_keys}")
        raise ConfigurationError(
            f"Unknown top-level keys in kernel-sessions config: {unknown_keys}"
        )

    validate_servers_config(config.get("servers"))

    if "default_server" in config:
        default_server = config["default_server"]
        if not isinstance(default_server, str):
            raise ServerConfigurationError(
                f"'default_server' must be a string, got {type(default_server).__name__}"
            )
        if default_server not in config.get("servers", {}):
            raise ServerConfigurationError(
                f"'default_server' names unknown server '{default_server}'"
            )

    _LOGGER.info("Configuration validation passed.")
    return config
