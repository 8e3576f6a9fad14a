"""
REST transport for the session service.

Async functions wrapping the session service's HTTP API (list, get, create, patch, delete) using aiohttp.
Every response body is validated into `SessionRecord` values before being returned, so callers never
see raw JSON.

Error Handling:
    - Connection failures and timeouts raise `SessionNetworkError`.
    - Unexpected HTTP statuses raise `SessionResponseError` (carrying the status and server message).
    - Malformed bodies raise `SessionValidationError`.
    - Deleting a session that is already gone logs a warning and succeeds.
    - Deleting a session whose kernel is gone but whose record remains raises `KernelGoneError`.

No retries are performed here; the timeout is taken from `ServerSettings.request_timeout_seconds`.
"""

import json
import logging
from typing import Any, NamedTuple

import aiohttp

from kernel_sessions._exceptions import (
    KernelGoneError,
    SessionNetworkError,
    SessionResponseError,
)

from ._models import SessionOptions, SessionRecord
from ._settings import ServerSettings, make_settings
from ._validate import validate_model, validate_model_list

_LOGGER = logging.getLogger(__name__)

SESSION_SERVICE_URL = "api/sessions"
"""str: Path of the session service relative to the server base URL."""


class Response(NamedTuple):
    """Status, reason and decoded JSON body (None if empty or not JSON) of an HTTP response."""

    status: int
    reason: str
    data: Any


def url_path_join(*parts: str) -> str:
    """Join URL parts with exactly one slash between them, keeping a leading scheme intact."""
    stripped = [part.strip("/") for part in parts if part and part.strip("/")]
    joined = "/".join(stripped)
    if parts and parts[0].startswith("/"):
        joined = "/" + joined
    return joined


def get_session_url(base_url: str, session_id: str) -> str:
    """
    Get the URL of a single session resource.

    Args:
        base_url (str): Server base URL.
        session_id (str): The session id.

    Returns:
        str: The session URL, e.g. ``http://localhost:8888/api/sessions/<id>``.
    """
    return url_path_join(base_url, SESSION_SERVICE_URL, session_id)


def _error_message(response: Response) -> str:
    if isinstance(response.data, dict) and response.data.get("message"):
        return str(response.data["message"])
    return response.reason


async def make_request(
    url: str,
    method: str,
    settings: ServerSettings,
    body: dict[str, Any] | None = None,
) -> Response:
    """
    Send a single HTTP request to the session service.

    Args:
        url (str): Absolute request URL.
        method (str): HTTP method.
        settings (ServerSettings): Endpoint settings supplying the token and timeout.
        body (dict[str, Any] | None): JSON body to send, if any.

    Returns:
        Response: The response status, reason and decoded JSON body.

    Raises:
        SessionNetworkError: If the server cannot be reached or the request times out.
    """
    headers = {"Content-Type": "application/json"}
    if settings.token:
        headers["Authorization"] = f"token {settings.token}"
    data = json.dumps(body) if body is not None else None
    timeout = aiohttp.ClientTimeout(total=settings.request_timeout_seconds)

    _LOGGER.debug(f"[restapi] {method} {url}")
    try:
        async with aiohttp.ClientSession(timeout=timeout) as client:
            async with client.request(
                method, url, data=data, headers=headers
            ) as response:
                raw = await response.read()
                try:
                    payload = json.loads(raw.decode("utf-8")) if raw else None
                except (UnicodeDecodeError, json.JSONDecodeError):
                    payload = None
                return Response(response.status, response.reason or "", payload)
    except (TimeoutError, aiohttp.ClientError) as e:
        _LOGGER.error(f"[restapi] {method} {url} failed: {e}")
        raise SessionNetworkError(f"{method} {url} failed: {e}") from e


async def list_running(settings: ServerSettings | None = None) -> list[SessionRecord]:
    """
    List the running sessions.

    Args:
        settings (ServerSettings | None): Endpoint to query; defaults from `make_settings()`.

    Returns:
        list[SessionRecord]: Validated records of every session on the server.

    Raises:
        SessionResponseError: If the server does not answer 200.
        SessionValidationError: If the body is not a list of valid session models.
        SessionNetworkError: If the server cannot be reached.
    """
    settings = settings or make_settings()
    url = url_path_join(settings.base_url, SESSION_SERVICE_URL)
    response = await make_request(url, "GET", settings)
    if response.status != 200:
        raise SessionResponseError(response.status, _error_message(response))
    return validate_model_list(response.data)


async def get_session_model(
    session_id: str, settings: ServerSettings | None = None
) -> SessionRecord:
    """
    Get a full session model from the server by session id.

    Raises:
        SessionResponseError: If the server does not answer 200 (404 when the id is unknown).
        SessionValidationError: If the body is not a valid session model.
        SessionNetworkError: If the server cannot be reached.
    """
    settings = settings or make_settings()
    url = get_session_url(settings.base_url, session_id)
    response = await make_request(url, "GET", settings)
    if response.status != 200:
        raise SessionResponseError(response.status, _error_message(response))
    return validate_model(response.data)


async def start_session(options: SessionOptions) -> SessionRecord:
    """
    Create a new session, or return the existing session if one is already bound to the path.

    Args:
        options (SessionOptions): What to start and where.

    Returns:
        SessionRecord: The validated record of the created (or reused) session.

    Raises:
        SessionResponseError: If the server does not answer 201.
        SessionValidationError: If the body is not a valid session model.
        SessionNetworkError: If the server cannot be reached.
    """
    settings = options.server_settings or make_settings()
    body = {
        "kernel": {"name": options.kernel_name, "id": options.kernel_id},
        "path": options.path,
        "type": options.type or "",
        "name": options.name or "",
    }
    url = url_path_join(settings.base_url, SESSION_SERVICE_URL)
    response = await make_request(url, "POST", settings, body)
    if response.status != 201:
        raise SessionResponseError(response.status, _error_message(response))
    return validate_model(response.data)


async def update_session(
    session_id: str, body: dict[str, Any], settings: ServerSettings | None = None
) -> SessionRecord:
    """
    Send a PATCH to the server, updating the session path, name, type or kernel.

    Args:
        session_id (str): The session to patch.
        body (dict[str, Any]): Partial session model, e.g. ``{"path": "new.ipynb"}``.
        settings (ServerSettings | None): Endpoint to use.

    Returns:
        SessionRecord: The server's record after the patch.

    Raises:
        SessionResponseError: If the server does not answer 200.
        SessionValidationError: If the body is not a valid session model.
        SessionNetworkError: If the server cannot be reached.
    """
    settings = settings or make_settings()
    url = get_session_url(settings.base_url, session_id)
    response = await make_request(url, "PATCH", settings, body)
    if response.status != 200:
        raise SessionResponseError(response.status, _error_message(response))
    return validate_model(response.data)


async def shutdown_session(
    session_id: str, settings: ServerSettings | None = None
) -> None:
    """
    Shut down a session by id.

    A session that no longer exists (404) is treated as already shut down: a warning is logged and
    the call succeeds.

    Raises:
        KernelGoneError: If the server answers 410 (the kernel was deleted but the session was not).
        SessionResponseError: For any other status except 204 and 404.
        SessionNetworkError: If the server cannot be reached.
    """
    settings = settings or make_settings()
    url = get_session_url(settings.base_url, session_id)
    response = await make_request(url, "DELETE", settings)

    if response.status == 404:
        message = (
            response.data.get("message")
            if isinstance(response.data, dict)
            else None
        ) or f'The session "{session_id}" does not exist on the server'
        _LOGGER.warning(f"[restapi] {message}")
    elif response.status == 410:
        raise KernelGoneError(
            response.status, "The kernel was deleted but the session was not"
        )
    elif response.status != 204:
        raise SessionResponseError(response.status, _error_message(response))


__all__ = [
    "SESSION_SERVICE_URL",
    "Response",
    "url_path_join",
    "get_session_url",
    "make_request",
    "list_running",
    "get_session_model",
    "start_session",
    "update_session",
    "shutdown_session",
]
