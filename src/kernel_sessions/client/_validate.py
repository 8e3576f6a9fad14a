"""
Validation of session service payloads.

Turns decoded JSON into `SessionRecord` / `KernelRef` values, raising `SessionValidationError` for any
payload that does not have the expected shape.
"""

import logging
from typing import Any

from kernel_sessions._exceptions import SessionValidationError

from ._models import KernelRef, SessionRecord

_LOGGER = logging.getLogger(__name__)

_REQUIRED_STRING_FIELDS: tuple[str, ...] = ("id", "path", "type", "name")


def _validate_property(data: dict[str, Any], key: str, what: str) -> str:
    if key not in data:
        raise SessionValidationError(f"Missing property '{key}' in {what}")
    value = data[key]
    if not isinstance(value, str):
        raise SessionValidationError(
            f"Property '{key}' of {what} must be a string, got {type(value).__name__}"
        )
    return value


def validate_kernel_model(data: Any) -> KernelRef:
    """
    Validate a kernel model payload.

    Args:
        data (Any): Decoded JSON for a kernel, expected to be an object with string `id` and `name`.

    Returns:
        KernelRef: The validated kernel identity.

    Raises:
        SessionValidationError: If the payload is not an object or a field is missing or mistyped.
    """
    if not isinstance(data, dict):
        raise SessionValidationError(
            f"Kernel model must be an object, got {type(data).__name__}"
        )
    return KernelRef(
        id=_validate_property(data, "id", "kernel model"),
        name=_validate_property(data, "name", "kernel model"),
    )


def _update_legacy_model(data: dict[str, Any]) -> dict[str, Any]:
    # Older servers report the path under "notebook" and omit type/name.
    notebook = data.get("notebook")
    if "path" in data or not isinstance(notebook, dict) or "path" not in notebook:
        return data
    _LOGGER.debug(f"[validate_model] migrating legacy session model {data.get('id')!r}")
    migrated = dict(data)
    migrated["path"] = notebook["path"]
    migrated.setdefault("type", "notebook")
    migrated.setdefault("name", "")
    return migrated


def validate_model(data: Any) -> SessionRecord:
    """
    Validate a session model payload and convert it into a `SessionRecord`.

    The payload must be an object with string `id`, `path`, `type` and `name` fields and a
    `kernel` field that is either null or a valid kernel model. Payloads from legacy servers that
    carry `notebook.path` instead of `path` are migrated first.

    Args:
        data (Any): Decoded JSON for a session.

    Returns:
        SessionRecord: The validated record.

    Raises:
        SessionValidationError: If the payload does not match the expected shape.
    """
    if not isinstance(data, dict):
        raise SessionValidationError(
            f"Session model must be an object, got {type(data).__name__}"
        )
    data = _update_legacy_model(data)

    fields = {key: _validate_property(data, key, "session model") for key in _REQUIRED_STRING_FIELDS}

    if "kernel" not in data:
        raise SessionValidationError("Missing property 'kernel' in session model")
    kernel = None if data["kernel"] is None else validate_kernel_model(data["kernel"])

    return SessionRecord(kernel=kernel, **fields)


def validate_model_list(data: Any) -> list[SessionRecord]:
    """
    Validate a list of session models.

    Args:
        data (Any): Decoded JSON, expected to be a list of session objects.

    Returns:
        list[SessionRecord]: The validated records, in server order.

    Raises:
        SessionValidationError: If the payload is not a list or any element is invalid.
    """
    if not isinstance(data, list):
        raise SessionValidationError("Invalid Session list")
    return [validate_model(item) for item in data]
