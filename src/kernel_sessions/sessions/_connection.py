"""
Client-side connection to a server-side session.

A `SessionConnection` mirrors one session of the session service: its immutable id, its mutable
path/type/name, and an owned kernel handle whose event streams it relays. Changes go to the server
as PATCH requests and come back as authoritative records applied through `update()`.

Patch State:
    Each connection is either IDLE or PATCHING. While a PATCH is outstanding, `update()` calls made by
    anyone else (typically the registry's reconciliation) are dropped, so a stale server listing cannot
    clobber a change that was just submitted. The PATCH's own result is applied by the patch protocol
    itself before the connection returns to IDLE.

Disposal:
    `dispose()` is idempotent and final. It emits `disposed`, releases the kernel handle and detaches
    every listener. All mutating operations on a disposed connection raise `SessionDisposedError`.
"""

import enum
import logging
from typing import TYPE_CHECKING, Any

from kernel_sessions._exceptions import (
    SessionDisposedError,
    SessionPreconditionError,
)
from kernel_sessions.client import (
    KernelChangedArgs,
    KernelRef,
    ServerSettings,
    SessionRecord,
    restapi,
)

from ._kernel import KernelConnection, KernelConnector
from ._kernel import connect_to_kernel as _default_connect_to_kernel
from ._signal import Signal

if TYPE_CHECKING:
    from kernel_sessions.session_manager import SessionRegistry  # pragma: no cover

_LOGGER = logging.getLogger(__name__)

_KERNEL_SIGNAL_BINDINGS: tuple[tuple[str, str], ...] = (
    ("status_changed", "status_changed"),
    ("connection_status_changed", "connection_status_changed"),
    ("unhandled_message", "unhandled_message"),
    ("iopub_message", "iopub_message"),
    ("any_message", "any_message"),
)
"""(kernel signal, session signal) pairs relayed with unchanged payloads."""


class PatchState(enum.Enum):
    """Whether a connection has a PATCH request outstanding."""

    IDLE = "idle"
    PATCHING = "patching"


class SessionConnection:
    """
    Stateful handle bound to one server-side session id.

    Signals:
        disposed (None): Emitted once when the connection is disposed.
        kernel_changed (KernelChangedArgs): The kernel identity changed.
        property_changed (str): One of ``"name"``, ``"type"``, ``"path"`` changed value.
        status_changed, connection_status_changed, unhandled_message, iopub_message, any_message:
            Relayed from the current kernel handle.

    Usage:
        Obtain connections from a `SessionRegistry` (``start_new`` / ``connect_to``) rather than
        constructing them directly, so that reconciliation can reach them.
    """

    def __init__(
        self,
        session_id: str,
        *,
        path: str,
        type: str = "",
        name: str = "",
        kernel: KernelRef | None = None,
        server_settings: ServerSettings,
        connect_to_kernel: KernelConnector | None = None,
        registry: "SessionRegistry | None" = None,
    ):
        """
        Construct a connection and, if a kernel is given, establish its kernel handle.

        Args:
            session_id (str): Server-side session id. Never changes for this instance.
            path (str): Session path.
            type (str): Session type; ``"file"`` when empty.
            name (str): Session display name.
            kernel (KernelRef | None): Current kernel of the session, if any.
            server_settings (ServerSettings): Endpoint the session lives on.
            connect_to_kernel (KernelConnector | None): Factory for kernel handles. Defaults to
                `connect_to_kernel`.
            registry (SessionRegistry | None): Registry notified of successful PATCH results.
        """
        self._id = session_id
        self._path = path
        self._type = type or "file"
        self._name = name
        self._server_settings = server_settings
        self._connect_to_kernel: KernelConnector = connect_to_kernel or _default_connect_to_kernel
        self._registry = registry

        self._kernel: KernelConnection | None = None
        self._replaced_kernel: KernelConnection | None = None
        self._kernel_relays: list[tuple[Signal[Any], Any]] = []
        self._state = PatchState.IDLE
        self._is_disposed = False

        self._disposed: Signal[None] = Signal(self, "disposed")
        self._kernel_changed: Signal[KernelChangedArgs] = Signal(self, "kernel_changed")
        self._property_changed: Signal[str] = Signal(self, "property_changed")
        self._status_changed: Signal[str] = Signal(self, "status_changed")
        self._connection_status_changed: Signal[str] = Signal(
            self, "connection_status_changed"
        )
        self._unhandled_message: Signal[Any] = Signal(self, "unhandled_message")
        self._iopub_message: Signal[Any] = Signal(self, "iopub_message")
        self._any_message: Signal[Any] = Signal(self, "any_message")

        self._setup_kernel(kernel)

    @classmethod
    def from_record(
        cls,
        record: SessionRecord,
        server_settings: ServerSettings,
        connect_to_kernel: KernelConnector | None = None,
        registry: "SessionRegistry | None" = None,
    ) -> "SessionConnection":
        """Construct a connection mirroring a server record."""
        return cls(
            record.id,
            path=record.path,
            type=record.type,
            name=record.name,
            kernel=record.kernel,
            server_settings=server_settings,
            connect_to_kernel=connect_to_kernel,
            registry=registry,
        )

    def __repr__(self) -> str:
        return (
            f"SessionConnection(id={self._id!r}, path={self._path!r}, "
            f"type={self._type!r}, name={self._name!r}, disposed={self._is_disposed})"
        )

    # ===== Signals =====

    @property
    def disposed(self) -> Signal[None]:
        return self._disposed

    @property
    def kernel_changed(self) -> Signal[KernelChangedArgs]:
        return self._kernel_changed

    @property
    def property_changed(self) -> Signal[str]:
        return self._property_changed

    @property
    def status_changed(self) -> Signal[str]:
        return self._status_changed

    @property
    def connection_status_changed(self) -> Signal[str]:
        return self._connection_status_changed

    @property
    def unhandled_message(self) -> Signal[Any]:
        return self._unhandled_message

    @property
    def iopub_message(self) -> Signal[Any]:
        return self._iopub_message

    @property
    def any_message(self) -> Signal[Any]:
        return self._any_message

    # ===== Accessors =====

    @property
    def id(self) -> str:
        return self._id

    @property
    def path(self) -> str:
        return self._path

    @property
    def type(self) -> str:
        return self._type

    @property
    def name(self) -> str:
        return self._name

    @property
    def kernel(self) -> KernelConnection | None:
        """The owned kernel handle, or None. Altered only through `update` and `change_kernel`."""
        return self._kernel

    @property
    def server_settings(self) -> ServerSettings:
        return self._server_settings

    @property
    def model(self) -> SessionRecord:
        """Snapshot of the connection's current state as a `SessionRecord`."""
        kernel = (
            KernelRef(id=self._kernel.id, name=self._kernel.name)
            if self._kernel is not None
            else None
        )
        return SessionRecord(
            id=self._id,
            path=self._path,
            type=self._type,
            name=self._name,
            kernel=kernel,
        )

    @property
    def is_disposed(self) -> bool:
        return self._is_disposed

    @property
    def state(self) -> PatchState:
        return self._state

    @property
    def updating(self) -> bool:
        """True while a PATCH issued by this instance is outstanding."""
        return self._state is PatchState.PATCHING

    # ===== Lifecycle =====

    def clone(self) -> "SessionConnection":
        """
        Create an independent connection to the same session.

        The clone gets its own kernel handle (from the same connector), its own signals, and its own
        patch and disposal state. Disposing either instance does not affect the other.
        """
        return SessionConnection(
            self._id,
            path=self._path,
            type=self._type,
            name=self._name,
            kernel=self.model.kernel,
            server_settings=self._server_settings,
            connect_to_kernel=self._connect_to_kernel,
            registry=self._registry,
        )

    def update(self, record: SessionRecord) -> None:
        """
        Apply an authoritative server record to this connection.

        Dropped silently while a PATCH from this instance is outstanding.

        Args:
            record (SessionRecord): The server's current record for this session.

        Raises:
            SessionDisposedError: If the connection is disposed.
        """
        self._check_disposed()
        if self._state is PatchState.PATCHING:
            _LOGGER.debug(
                f"[SessionConnection] dropping update for session {self._id} while a PATCH is outstanding"
            )
            return
        self._apply(record)

    def dispose(self) -> None:
        """Dispose of the connection. A second call is a no-op."""
        if self._is_disposed:
            return
        self._is_disposed = True
        self._disposed.emit(None)
        self._teardown_kernel()
        self._replaced_kernel = None
        for signal in (
            self._disposed,
            self._kernel_changed,
            self._property_changed,
            self._status_changed,
            self._connection_status_changed,
            self._unhandled_message,
            self._iopub_message,
            self._any_message,
        ):
            signal.disconnect_all()
        _LOGGER.debug(f"[SessionConnection] disposed session {self._id}")

    # ===== Server operations =====

    async def set_path(self, path: str) -> None:
        """
        Change the session path.

        Raises:
            SessionDisposedError: If the connection is disposed.
            SessionTransportError: If the PATCH fails; local state is unchanged.
        """
        self._check_disposed()
        await self._patch({"path": path})

    async def set_name(self, name: str) -> None:
        """Change the session name. Raises like `set_path`."""
        self._check_disposed()
        await self._patch({"name": name})

    async def set_type(self, type: str) -> None:
        """Change the session type. Raises like `set_path`."""
        self._check_disposed()
        await self._patch({"type": type})

    async def change_kernel(
        self, name: str | None = None, kernel_id: str | None = None
    ) -> KernelConnection | None:
        """
        Change the session's kernel, keeping the session id and path.

        The current kernel handle is disposed immediately, before the request is sent, so the session
        has no kernel until the server's answer is applied (or at all, if the request fails).

        Args:
            name (str | None): Kernel spec name to start.
            kernel_id (str | None): Id of an existing kernel to attach.

        Returns:
            KernelConnection | None: The newly established kernel handle.

        Raises:
            SessionDisposedError: If the connection is disposed.
            SessionPreconditionError: If neither `name` nor `kernel_id` is given.
            SessionTransportError: If the PATCH fails.
        """
        self._check_disposed()
        kernel_body = {
            key: value
            for key, value in (("name", name), ("id", kernel_id))
            if value is not None
        }
        if not kernel_body:
            raise SessionPreconditionError(
                "change_kernel requires a kernel name or kernel id"
            )

        if self._kernel is not None:
            self._replaced_kernel = self._kernel
            self._teardown_kernel()

        await self._patch({"kernel": kernel_body})
        return self._kernel

    async def shutdown(self) -> None:
        """
        Ask the server to delete the session (and its kernel).

        This does not dispose the connection; that happens when reconciliation no longer finds the
        session on the server, or when the caller calls `dispose()`.

        Raises:
            SessionDisposedError: If the connection is disposed.
            KernelGoneError: If the kernel was deleted but the session record remains.
            SessionTransportError: For other request failures.
        """
        self._check_disposed()
        await restapi.shutdown_session(self._id, self._server_settings)

    # ===== Internals =====

    def _check_disposed(self) -> None:
        if self._is_disposed:
            raise SessionDisposedError(self._id)

    async def _patch(self, body: dict[str, Any]) -> SessionRecord:
        self._state = PatchState.PATCHING
        try:
            record = await restapi.update_session(
                self._id, body, self._server_settings
            )
            if self._is_disposed:
                _LOGGER.debug(
                    f"[SessionConnection] ignoring PATCH result for disposed session {self._id}"
                )
                return record
            self._apply(record)
        finally:
            self._state = PatchState.IDLE

        if self._registry is not None:
            self._registry.update_from_server(record, self._server_settings)
        return record

    def _apply(self, record: SessionRecord) -> None:
        old_name, old_type, old_path = self._name, self._type, self._path
        self._path = record.path
        self._name = record.name
        self._type = record.type

        # Property events must fire even when connecting the new kernel fails.
        try:
            if self._kernel_identity_changed(record.kernel):
                old_value = (
                    self._kernel if self._kernel is not None else self._replaced_kernel
                )
                self._replaced_kernel = None
                self._teardown_kernel()
                try:
                    self._setup_kernel(record.kernel)
                finally:
                    self._kernel_changed.emit(KernelChangedArgs(old_value, self._kernel))
        finally:
            if old_name != self._name:
                self._property_changed.emit("name")
            if old_type != self._type:
                self._property_changed.emit("type")
            if old_path != self._path:
                self._property_changed.emit("path")

    def _kernel_identity_changed(self, kernel: KernelRef | None) -> bool:
        if self._kernel is None or kernel is None:
            return (self._kernel is None) != (kernel is None)
        return self._kernel.id != kernel.id

    def _setup_kernel(self, model: KernelRef | None) -> None:
        if model is None:
            self._kernel = None
            return
        kernel = self._connect_to_kernel(model, self._server_settings)
        self._kernel = kernel
        for source_name, target_name in _KERNEL_SIGNAL_BINDINGS:
            source: Signal[Any] = getattr(kernel, source_name)
            target: Signal[Any] = getattr(self, target_name)
            relay = _make_relay(target)
            source.connect(relay)
            self._kernel_relays.append((source, relay))

    def _teardown_kernel(self) -> None:
        for source, relay in self._kernel_relays:
            source.disconnect(relay)
        self._kernel_relays.clear()
        if self._kernel is not None:
            self._kernel.dispose()
            self._kernel = None


def _make_relay(target: Signal[Any]):
    def relay(_sender: Any, args: Any) -> None:
        target.emit(args)

    return relay
