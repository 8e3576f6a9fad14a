"""
Server connection settings for the session service.

A `ServerSettings` value identifies one session service endpoint. Its `base_url` is also the key
under which the session registry tracks live connections, so two settings objects with the same
base URL refer to the same endpoint.
"""

import logging
import os
from dataclasses import dataclass

_LOGGER = logging.getLogger(__name__)

BASE_URL_ENV_VAR = "KERNEL_SESSIONS_BASE_URL"
"""str: Environment variable providing the default server base URL."""

TOKEN_ENV_VAR = "KERNEL_SESSIONS_TOKEN"
"""str: Environment variable providing the default authentication token."""

DEFAULT_BASE_URL = "http://localhost:8888/"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class ServerSettings:
    """
    Immutable connection settings for a session service endpoint.

    Attributes:
        base_url (str): Base URL of the server, e.g. ``http://localhost:8888/``.
        token (str): Authentication token sent as ``Authorization: token <token>``. Empty for none.
        request_timeout_seconds (float): Total timeout applied to each HTTP request.
    """

    base_url: str
    token: str = ""
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    def __repr__(self) -> str:
        token = "[REDACTED]" if self.token else ""
        return (
            f"ServerSettings(base_url={self.base_url!r}, token={token!r}, "
            f"request_timeout_seconds={self.request_timeout_seconds!r})"
        )


def make_settings(
    base_url: str | None = None,
    token: str | None = None,
    request_timeout_seconds: float | None = None,
) -> ServerSettings:
    """
    Create server settings, filling omitted values from the environment or defaults.

    Args:
        base_url (str | None): Server base URL. Defaults to $KERNEL_SESSIONS_BASE_URL, then ``http://localhost:8888/``.
        token (str | None): Authentication token. Defaults to $KERNEL_SESSIONS_TOKEN, then no token.
        request_timeout_seconds (float | None): Per-request timeout. Defaults to 30 seconds.

    Returns:
        ServerSettings: The resulting settings.
    """
    if base_url is None:
        base_url = os.getenv(BASE_URL_ENV_VAR, DEFAULT_BASE_URL)
    if token is None:
        token = os.getenv(TOKEN_ENV_VAR, "")
    if request_timeout_seconds is None:
        request_timeout_seconds = DEFAULT_REQUEST_TIMEOUT_SECONDS

    settings = ServerSettings(
        base_url=base_url,
        token=token,
        request_timeout_seconds=request_timeout_seconds,
    )
    _LOGGER.debug(f"[make_settings] created {settings!r}")
    return settings
