"""
Background polling of an endpoint's running sessions.

`RunningSessionPoller` periodically asks its `SessionRegistry` to fetch the endpoint's session list and
reconcile it, which is how sessions terminated by other clients become visible locally.
"""

import asyncio
import logging

from kernel_sessions.client import ServerSettings, SessionRecord

from ._registry import SessionRegistry

_LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 10.0


class RunningSessionPoller:
    """
    Periodically reconciles a registry with the server's running sessions.

    A failed pass is logged and polling continues with the next interval. `start()` and `stop()` are
    both idempotent.

    Usage Example:
        poller = RunningSessionPoller(registry, settings, interval_seconds=5)
        poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        registry: SessionRegistry,
        settings: ServerSettings | None = None,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._registry = registry
        self._settings = settings or registry.server_settings
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> list[SessionRecord]:
        """Run one fetch-and-reconcile pass. Errors propagate to the caller."""
        return await self._registry.list_running(self._settings)

    def start(self) -> None:
        """Start polling in a background task on the running event loop."""
        if self.is_running:
            return
        _LOGGER.info(
            f"[{self.__class__.__name__}] polling {self._settings.base_url} every {self._interval_seconds}s"
        )
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop polling and wait for the background task to finish."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        _LOGGER.info(f"[{self.__class__.__name__}] stopped polling {self._settings.base_url}")

    async def _run(self) -> None:
        while True:
            try:
                records = await self.refresh()
                _LOGGER.debug(
                    f"[{self.__class__.__name__}] {self._settings.base_url} reports {len(records)} sessions"
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                _LOGGER.warning(
                    f"[{self.__class__.__name__}] failed to refresh sessions at {self._settings.base_url}: {e}"
                )
            await asyncio.sleep(self._interval_seconds)
