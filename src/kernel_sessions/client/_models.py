"""
Data models exchanged with the session service.

`SessionRecord` and `KernelRef` are immutable snapshots of what the server reports (or what a
connection reports about itself via `SessionConnection.model`). `SessionOptions` describes a session
to be started, and `KernelChangedArgs` is the payload of a connection's `kernel_changed` signal.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._settings import ServerSettings

if TYPE_CHECKING:
    from kernel_sessions.sessions import KernelConnection  # pragma: no cover


@dataclass(frozen=True)
class KernelRef:
    """Identity of a kernel as reported by the server."""

    id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class SessionRecord:
    """
    Canonical, validated snapshot of a server-side session.

    Attributes:
        id (str): Session id, unique within a server endpoint.
        path (str): Path of the file associated with the session.
        type (str): Session type, e.g. ``notebook`` or ``console``.
        name (str): Display name of the session.
        kernel (KernelRef | None): The session's kernel, or None if it has none.
    """

    id: str
    path: str
    type: str
    name: str
    kernel: KernelRef | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "type": self.type,
            "name": self.name,
            "kernel": self.kernel.to_dict() if self.kernel is not None else None,
        }


@dataclass(frozen=True)
class SessionOptions:
    """
    Options for starting a new session.

    Attributes:
        path (str): Path of the file the session is bound to. Required and non-empty.
        type (str): Session type. Empty lets the server choose.
        name (str): Display name of the session.
        kernel_name (str | None): Name of the kernel spec to start.
        kernel_id (str | None): Id of an existing kernel to attach to.
        server_settings (ServerSettings | None): Endpoint to use; the registry default if None.
    """

    path: str
    type: str = ""
    name: str = ""
    kernel_name: str | None = None
    kernel_id: str | None = None
    server_settings: ServerSettings | None = None


@dataclass(frozen=True)
class KernelChangedArgs:
    """Payload of `SessionConnection.kernel_changed`; either side may be None."""

    old_value: "KernelConnection | None"
    new_value: "KernelConnection | None"
    name: str = "kernel"
