"""
Validation and redaction of the `servers` section of the configuration.

Each entry maps a server name to the settings needed to reach one session service endpoint:

    - `base_url` (str, required): Base URL of the server.
    - `token` (str, optional): Authentication token. Use this OR `token_env_var`, not both.
    - `token_env_var` (str, optional): Environment variable holding the token.
    - `request_timeout_seconds` (int | float, optional): Positive per-request timeout.
    - `poll_interval_seconds` (int | float, optional): Positive interval between reconciliation passes.

All validation errors raise `ServerConfigurationError` with descriptive messages.
"""

__all__ = [
    "validate_servers_config",
    "validate_single_server_config",
    "redact_server_config",
]

import logging
from typing import Any

from kernel_sessions._exceptions import ServerConfigurationError

_LOGGER = logging.getLogger(__name__)

_ALLOWED_SERVER_FIELDS: dict[str, type | tuple[type, ...]] = {
    "base_url": str,
    "token": str,
    "token_env_var": str,
    "request_timeout_seconds": (int, float),
    "poll_interval_seconds": (int, float),
}
"""
Dictionary of allowed server configuration fields and their expected types.
"""

_REQUIRED_FIELDS: list[str] = ["base_url"]
"""list[str]: Fields every server configuration must contain."""

_POSITIVE_NUMBER_FIELDS: list[str] = ["request_timeout_seconds", "poll_interval_seconds"]


def redact_server_config(server_config: dict[str, Any]) -> dict[str, Any]:
    """
    Return a shallow copy of a server configuration with the token replaced by "[REDACTED]".

    The original dictionary is not modified.

    Example:
        >>> redact_server_config({"base_url": "http://h/", "token": "secret"})
        {'base_url': 'http://h/', 'token': '[REDACTED]'}
    """
    config_copy = dict(server_config)
    if config_copy.get("token"):
        config_copy["token"] = "[REDACTED]"  # noqa: S105
    return config_copy


def validate_servers_config(servers_map: Any | None) -> None:
    """
    Validate the overall 'servers' part of the configuration, if present.

    If `servers_map` is None (the key was absent), this does nothing. An empty dictionary is allowed.

    Args:
        servers_map (dict[str, Any] | None): The dictionary of server configurations.

    Raises:
        ServerConfigurationError: If `servers_map` is not a dict, or if any individual server
            config is invalid.
    """
    if servers_map is None:
        return

    if not isinstance(servers_map, dict):
        _LOGGER.error(
            f"[config:validate_servers_config] 'servers' must be a dictionary, got {type(servers_map).__name__}"
        )
        raise ServerConfigurationError("'servers' must be a dictionary in configuration")

    for server_name, server_config in servers_map.items():
        validate_single_server_config(server_name, server_config)


def _validate_field_types(server_name: str, config_item: dict[str, Any]) -> None:
    for field_name, field_value in config_item.items():
        if field_name not in _ALLOWED_SERVER_FIELDS:
            raise ServerConfigurationError(
                f"Unknown field '{field_name}' in server config for {server_name}"
            )

        allowed_types = _ALLOWED_SERVER_FIELDS[field_name]
        # bool is an int subclass but never a valid number here
        if isinstance(field_value, bool) or not isinstance(field_value, allowed_types):
            if isinstance(allowed_types, tuple):
                expected = ", ".join(t.__name__ for t in allowed_types)
                raise ServerConfigurationError(
                    f"Field '{field_name}' in server config for {server_name} "
                    f"must be one of types ({expected}), got {type(field_value).__name__}"
                )
            raise ServerConfigurationError(
                f"Field '{field_name}' in server config for {server_name} "
                f"must be of type {allowed_types.__name__}, got {type(field_value).__name__}"
            )


def validate_single_server_config(server_name: str, config_item: Any) -> None:
    """
    Validate a single server's configuration.

    Args:
        server_name (str): The name of the server.
        config_item (dict[str, Any]): The configuration dictionary for the server.

    Raises:
        ServerConfigurationError: If the item is not a dictionary, has unknown fields or wrong
            types, sets both 'token' and 'token_env_var', lacks 'base_url', or has a non-positive
            timeout or poll interval.
    """
    if not isinstance(config_item, dict):
        raise ServerConfigurationError(
            f"Server config for {server_name} must be a dictionary, got {type(config_item)}"
        )

    _validate_field_types(server_name, config_item)

    if "token" in config_item and "token_env_var" in config_item:
        raise ServerConfigurationError(
            f"In server config for '{server_name}', both 'token' and 'token_env_var' are set. "
            "Please use only one."
        )

    for required_field in _REQUIRED_FIELDS:
        if required_field not in config_item:
            raise ServerConfigurationError(
                f"Missing required field '{required_field}' in server config for {server_name}"
            )

    if not config_item["base_url"]:
        raise ServerConfigurationError(
            f"Field 'base_url' in server config for {server_name} must not be empty"
        )

    for field_name in _POSITIVE_NUMBER_FIELDS:
        if field_name in config_item and config_item[field_name] <= 0:
            raise ServerConfigurationError(
                f"Field '{field_name}' in server config for {server_name} must be positive, "
                f"got {config_item[field_name]}"
            )
