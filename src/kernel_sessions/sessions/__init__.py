"""
Session connections and the event plumbing they rely on.

Exports:
    - SessionConnection: Client-side handle bound to one server-side session id.
    - PatchState: IDLE / PATCHING state of a connection.
    - Signal: Synchronous event stream used for all session and kernel events.
    - KernelConnection: Protocol every kernel handle satisfies.
    - KernelConnector: Type of the factory producing kernel handles.
    - KernelHandle, connect_to_kernel: Default kernel handle and connector.
"""

from ._connection import PatchState, SessionConnection
from ._kernel import KernelConnection, KernelConnector, KernelHandle, connect_to_kernel
from ._signal import Signal

__all__ = [
    "KernelConnection",
    "KernelConnector",
    "KernelHandle",
    "PatchState",
    "SessionConnection",
    "Signal",
    "connect_to_kernel",
]
