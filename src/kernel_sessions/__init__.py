"""
kernel_sessions: client-side session connections for a notebook server's session service.

A *session* binds a document path to a running kernel on the server. This package keeps local
connection objects consistent with the server's authoritative session list:

    - `kernel_sessions.client`: endpoint settings, record models, payload validation and the REST
      transport (`kernel_sessions.client.restapi`).
    - `kernel_sessions.sessions`: `SessionConnection`, its kernel handle and the `Signal` event type.
    - `kernel_sessions.session_manager`: `SessionRegistry` (creation, lookup, shutdown and
      reconciliation) and `RunningSessionPoller`.
    - `kernel_sessions.config`: JSON configuration naming the servers to talk to.

Usage Example:
    ```python
    from kernel_sessions import SessionOptions, SessionRegistry, make_settings

    registry = SessionRegistry(make_settings("http://localhost:8888/", token="..."))
    session = await registry.start_new(SessionOptions(path="/nb.ipynb", kernel_name="python3"))
    session.kernel_changed.connect(lambda sender, args: print(args.new_value))
    await session.change_kernel(name="python3")
    ```

Logging:
    The package logger has a NullHandler attached; call `kernel_sessions._logging.setup_logging()`
    (or configure logging yourself) to see output.
"""

import logging

from ._exceptions import (
    KernelGoneError,
    SessionClientError,
    SessionDisposedError,
    SessionNetworkError,
    SessionNotFoundError,
    SessionPreconditionError,
    SessionResponseError,
    SessionTransportError,
    SessionValidationError,
)
from ._version import __version__
from .client import (
    KernelChangedArgs,
    KernelRef,
    ServerSettings,
    SessionOptions,
    SessionRecord,
    make_settings,
)
from .session_manager import RunningSessionPoller, SessionRegistry
from .sessions import PatchState, SessionConnection, Signal

__all__ = [
    "__version__",
    "KernelChangedArgs",
    "KernelGoneError",
    "KernelRef",
    "PatchState",
    "RunningSessionPoller",
    "ServerSettings",
    "SessionClientError",
    "SessionConnection",
    "SessionDisposedError",
    "SessionNetworkError",
    "SessionNotFoundError",
    "SessionOptions",
    "SessionPreconditionError",
    "SessionRecord",
    "SessionRegistry",
    "SessionResponseError",
    "SessionTransportError",
    "SessionValidationError",
    "Signal",
    "make_settings",
]

_LOGGER = logging.getLogger(__name__)
_LOGGER.addHandler(logging.NullHandler())
