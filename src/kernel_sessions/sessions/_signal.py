"""
Synchronous signals used for session and kernel event streams.

A `Signal` delivers each emitted value to every connected slot, in connection order, before `emit`
returns. There is no buffering or replay: slots connected after an emission never see it.
"""

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Slot = Callable[[Any, T], None]
"""A signal receiver, called as ``slot(sender, args)``."""


class Signal(Generic[T]):
    """
    A typed event stream owned by a sender object.

    Slots are called as ``slot(sender, args)``. Emission iterates over a snapshot of the slots, so a
    slot may connect or disconnect slots (including itself) while being called. An exception raised by
    a slot is logged and does not prevent delivery to the remaining slots.
    """

    def __init__(self, sender: Any, name: str = "signal"):
        self._sender = sender
        self._name = name
        self._slots: list[Slot[T]] = []

    @property
    def sender(self) -> Any:
        return self._sender

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._slots)

    def connect(self, slot: Slot[T]) -> bool:
        """
        Connect a slot to the signal.

        Returns:
            bool: True if the slot was connected, False if it was already connected.
        """
        if slot in self._slots:
            return False
        self._slots.append(slot)
        return True

    def disconnect(self, slot: Slot[T]) -> bool:
        """
        Disconnect a slot from the signal.

        Returns:
            bool: True if the slot was connected, False otherwise.
        """
        try:
            self._slots.remove(slot)
        except ValueError:
            return False
        return True

    def disconnect_all(self) -> None:
        """Disconnect every slot."""
        self._slots.clear()

    def emit(self, args: T) -> None:
        """Synchronously deliver `args` to every connected slot."""
        for slot in list(self._slots):
            try:
                slot(self._sender, args)
            except Exception:
                _LOGGER.exception(
                    f"[Signal] slot {slot!r} raised while handling '{self._name}'"
                )
