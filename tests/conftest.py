"""Shared fixtures: endpoint settings, a recording kernel connector, and record builders."""

from typing import Any

import pytest

from kernel_sessions.client import KernelRef, ServerSettings, SessionRecord
from kernel_sessions.sessions import Signal


class FakeKernel:
    """Kernel handle double that records disposal and exposes its signals for emitting."""

    def __init__(self, model: KernelRef, settings: ServerSettings):
        self.model = model
        self.settings = settings
        self.dispose_calls = 0
        self.status_changed: Signal[str] = Signal(self, "status_changed")
        self.connection_status_changed: Signal[str] = Signal(
            self, "connection_status_changed"
        )
        self.unhandled_message: Signal[Any] = Signal(self, "unhandled_message")
        self.iopub_message: Signal[Any] = Signal(self, "iopub_message")
        self.any_message: Signal[Any] = Signal(self, "any_message")

    @property
    def id(self) -> str:
        return self.model.id

    @property
    def name(self) -> str:
        return self.model.name

    @property
    def is_disposed(self) -> bool:
        return self.dispose_calls > 0

    def dispose(self) -> None:
        self.dispose_calls += 1


class RecordingConnector:
    """KernelConnector that creates FakeKernel handles and remembers them."""

    def __init__(self):
        self.created: list[FakeKernel] = []

    def __call__(self, model: KernelRef, settings: ServerSettings) -> FakeKernel:
        kernel = FakeKernel(model, settings)
        self.created.append(kernel)
        return kernel


@pytest.fixture
def settings():
    return ServerSettings(base_url="http://localhost:8888/", token="secret")


@pytest.fixture
def other_settings():
    return ServerSettings(base_url="http://otherhost:9999/")


@pytest.fixture
def connector():
    return RecordingConnector()


@pytest.fixture
def make_record():
    """Build a SessionRecord; `kernel_id=None` yields a kernel-less record."""

    def _make(
        session_id: str = "s1",
        path: str = "/nb.ipynb",
        type: str = "notebook",
        name: str = "nb",
        kernel_id: str | None = "k1",
        kernel_name: str = "python3",
    ) -> SessionRecord:
        kernel = KernelRef(id=kernel_id, name=kernel_name) if kernel_id else None
        return SessionRecord(id=session_id, path=path, type=type, name=name, kernel=kernel)

    return _make
