"""
Kernel connection handles as seen by a session.

A session never talks to its kernel directly; it owns a handle produced by a `KernelConnector` and
relays the handle's event streams. `KernelConnection` is the contract a handle must satisfy.
`KernelHandle` and `connect_to_kernel` are the default implementation used when no connector is
injected: a handle carrying the kernel identity and its event streams, without a messaging channel.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from kernel_sessions.client import KernelRef, ServerSettings

from ._signal import Signal

_LOGGER = logging.getLogger(__name__)


@runtime_checkable
class KernelConnection(Protocol):
    """Contract for a client-side handle to a remote kernel."""

    @property
    def id(self) -> str: ...  # pragma: no cover

    @property
    def name(self) -> str: ...  # pragma: no cover

    @property
    def is_disposed(self) -> bool: ...  # pragma: no cover

    @property
    def status_changed(self) -> Signal[str]: ...  # pragma: no cover

    @property
    def connection_status_changed(self) -> Signal[str]: ...  # pragma: no cover

    @property
    def unhandled_message(self) -> Signal[Any]: ...  # pragma: no cover

    @property
    def iopub_message(self) -> Signal[Any]: ...  # pragma: no cover

    @property
    def any_message(self) -> Signal[Any]: ...  # pragma: no cover

    def dispose(self) -> None: ...  # pragma: no cover


KernelConnector = Callable[[KernelRef, ServerSettings], KernelConnection]
"""Factory producing a kernel handle for a kernel identity on an endpoint."""


class KernelHandle:
    """
    Default kernel handle: identity plus the five kernel event streams.

    Emitting on the streams is left to whatever drives the kernel channel; `dispose()` disconnects
    every listener and is idempotent.
    """

    def __init__(self, model: KernelRef, settings: ServerSettings):
        self._model = model
        self._settings = settings
        self._is_disposed = False
        self._status_changed: Signal[str] = Signal(self, "status_changed")
        self._connection_status_changed: Signal[str] = Signal(
            self, "connection_status_changed"
        )
        self._unhandled_message: Signal[Any] = Signal(self, "unhandled_message")
        self._iopub_message: Signal[Any] = Signal(self, "iopub_message")
        self._any_message: Signal[Any] = Signal(self, "any_message")

    def __repr__(self) -> str:
        return f"KernelHandle(id={self.id!r}, name={self.name!r})"

    @property
    def id(self) -> str:
        return self._model.id

    @property
    def name(self) -> str:
        return self._model.name

    @property
    def model(self) -> KernelRef:
        return self._model

    @property
    def server_settings(self) -> ServerSettings:
        return self._settings

    @property
    def is_disposed(self) -> bool:
        return self._is_disposed

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

    def dispose(self) -> None:
        if self._is_disposed:
            return
        self._is_disposed = True
        for signal in (
            self._status_changed,
            self._connection_status_changed,
            self._unhandled_message,
            self._iopub_message,
            self._any_message,
        ):
            signal.disconnect_all()
        _LOGGER.debug(f"[KernelHandle] disposed kernel handle {self.id}")


def connect_to_kernel(model: KernelRef, settings: ServerSettings) -> KernelHandle:
    """Default `KernelConnector`: create a `KernelHandle` for the given kernel."""
    _LOGGER.debug(
        f"[connect_to_kernel] connecting to kernel {model.id} ({model.name}) at {settings.base_url}"
    )
    return KernelHandle(model, settings)
