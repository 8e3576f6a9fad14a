"""Session service client interface.

This package contains everything needed to talk to the session service over HTTP: endpoint settings,
the record models returned by the server, payload validation, and the REST transport itself
(`kernel_sessions.client.restapi`).

Classes:
    ServerSettings: Immutable endpoint settings (base URL, token, timeout).
    SessionRecord: Validated snapshot of a server-side session.
    KernelRef: Identity of a session's kernel.
    SessionOptions: Options for starting a new session.
    KernelChangedArgs: Payload of a session's kernel_changed signal.
"""

from . import restapi
from ._models import KernelChangedArgs, KernelRef, SessionOptions, SessionRecord
from ._settings import ServerSettings, make_settings
from ._validate import validate_kernel_model, validate_model, validate_model_list

__all__ = [
    "restapi",
    "KernelChangedArgs",
    "KernelRef",
    "SessionOptions",
    "SessionRecord",
    "ServerSettings",
    "make_settings",
    "validate_kernel_model",
    "validate_model",
    "validate_model_list",
]
