"""
Registry of live session connections per server endpoint.

A `SessionRegistry` tracks, for each endpoint (server base URL), at most one `SessionConnection` per
session id. It is the single place where connections are created from server records, where lookups
are answered from local state before asking the server, and where fresh server listings are
reconciled into the tracked connections.

Ownership:
    The registry holds non-owning references. A connection leaves the registry when it is disposed,
    either explicitly by its owner or by reconciliation once the server no longer reports it.
    Clones returned by `connect_to` are never tracked.

Concurrency:
    All bookkeeping is synchronous and runs on the event loop thread, so no lock is needed; the only
    suspension points are the REST calls. Reconciliation iterates over a snapshot of the tracked
    connections so that disposals triggered mid-iteration cannot skip or revisit an entry.

Usage Example:
    registry = SessionRegistry(make_settings("http://localhost:8888/"))
    session = await registry.start_new(SessionOptions(path="/nb.ipynb", kernel_name="python3"))
    await registry.list_running()  # fetch and reconcile
    await session.shutdown()
"""

import asyncio
import dataclasses
import logging
import time
from typing import Any

from kernel_sessions._exceptions import (
    SessionNotFoundError,
    SessionPreconditionError,
    SessionResponseError,
)
from kernel_sessions.client import (
    ServerSettings,
    SessionOptions,
    SessionRecord,
    make_settings,
    restapi,
)
from kernel_sessions.sessions import (
    KernelConnector,
    SessionConnection,
    connect_to_kernel as _default_connect_to_kernel,
)

_LOGGER = logging.getLogger(__name__)


class SessionRegistry:
    """
    Tracks live session connections per endpoint and reconciles them with the server.

    Inject one registry into whatever owns the application's session lifecycle; there is no
    process-wide instance.
    """

    def __init__(
        self,
        server_settings: ServerSettings | None = None,
        connect_to_kernel: KernelConnector | None = None,
    ):
        """
        Construct an empty registry.

        Args:
            server_settings (ServerSettings | None): Endpoint used when a call does not pass one.
                Defaults to `make_settings()`.
            connect_to_kernel (KernelConnector | None): Kernel handle factory given to every
                connection the registry creates.
        """
        self._server_settings = server_settings or make_settings()
        self._connect_to_kernel = connect_to_kernel or _default_connect_to_kernel
        self._running: dict[str, list[SessionConnection]] = {}
        _LOGGER.info(
            f"[{self.__class__.__name__}] created with default endpoint {self._server_settings.base_url}"
        )

    @property
    def server_settings(self) -> ServerSettings:
        return self._server_settings

    def running(self, settings: ServerSettings | None = None) -> list[SessionConnection]:
        """Return a snapshot of the connections tracked for an endpoint."""
        settings = settings or self._server_settings
        return list(self._running.get(settings.base_url, ()))

    def _find_tracked(
        self, base_url: str, *, session_id: str | None = None, path: str | None = None
    ) -> SessionConnection | None:
        for session in self._running.get(base_url, ()):
            if session_id is not None and session.id == session_id:
                return session
            if path is not None and session.path == path:
                return session
        return None

    # ===== Construction =====

    def connect_to(
        self, record: SessionRecord, settings: ServerSettings | None = None
    ) -> SessionConnection:
        """
        Connect to a running session.

        If a connection for `record.id` is already tracked at the endpoint, an independent clone of it
        is returned. Otherwise a new connection is created from the record and tracked.

        Args:
            record (SessionRecord): The session to connect to.
            settings (ServerSettings | None): Endpoint of the session.

        Returns:
            SessionConnection: A connection to the session.
        """
        settings = settings or self._server_settings
        tracked = self._find_tracked(settings.base_url, session_id=record.id)
        if tracked is not None:
            _LOGGER.debug(
                f"[{self.__class__.__name__}] cloning tracked connection for session {record.id}"
            )
            return tracked.clone()
        return self._create_session(record, settings)

    def _create_session(
        self, record: SessionRecord, settings: ServerSettings
    ) -> SessionConnection:
        session = SessionConnection.from_record(
            record,
            settings,
            connect_to_kernel=self._connect_to_kernel,
            registry=self,
        )
        self._running.setdefault(settings.base_url, []).append(session)
        session.disposed.connect(self._on_session_disposed)
        _LOGGER.info(
            f"[{self.__class__.__name__}] tracking session {record.id} ({record.path}) at {settings.base_url}"
        )
        return session

    def _on_session_disposed(self, session: SessionConnection, _args: Any) -> None:
        base_url = session.server_settings.base_url
        running = self._running.get(base_url)
        if not running:
            return
        try:
            running.remove(session)
        except ValueError:
            return
        if not running:
            del self._running[base_url]
        _LOGGER.info(
            f"[{self.__class__.__name__}] stopped tracking disposed session {session.id} at {base_url}"
        )

    async def start_new(self, options: SessionOptions) -> SessionConnection:
        """
        Start a new session and connect to it.

        Args:
            options (SessionOptions): The session to start. `path` must be non-empty.

        Returns:
            SessionConnection: A connection to the new session. If the server returned a session that
                is already tracked (it reuses sessions by path), a clone of the tracked connection.

        Raises:
            SessionPreconditionError: If no path is given; no request is made.
            SessionTransportError: If the server rejects the request or cannot be reached.
            SessionValidationError: If the server's answer is malformed.
        """
        if not options.path:
            raise SessionPreconditionError("Must specify a path")
        settings = options.server_settings or self._server_settings
        if options.server_settings is None:
            options = dataclasses.replace(options, server_settings=settings)
        _LOGGER.info(
            f"[{self.__class__.__name__}] starting session for path {options.path} at {settings.base_url}"
        )
        record = await restapi.start_session(options)
        return self.connect_to(record, settings)

    # ===== Lookup =====

    async def find_by_id(
        self, session_id: str, settings: ServerSettings | None = None
    ) -> SessionRecord:
        """
        Find a session by id, answering from tracked connections before asking the server.

        Raises:
            SessionNotFoundError: If neither the registry nor the server knows the id.
            SessionTransportError: If the server request fails for another reason.
        """
        settings = settings or self._server_settings
        tracked = self._find_tracked(settings.base_url, session_id=session_id)
        if tracked is not None:
            return tracked.model

        try:
            return await restapi.get_session_model(session_id, settings)
        except SessionResponseError as e:
            if e.status != 404:
                raise
            raise SessionNotFoundError(
                f"No running session for id: {session_id}"
            ) from e

    async def find_by_path(
        self, path: str, settings: ServerSettings | None = None
    ) -> SessionRecord:
        """
        Find a session by path, answering from tracked connections before listing the server.

        Raises:
            SessionNotFoundError: If neither the registry nor the server has a session for the path.
            SessionTransportError: If listing the server's sessions fails.
        """
        settings = settings or self._server_settings
        tracked = self._find_tracked(settings.base_url, path=path)
        if tracked is not None:
            return tracked.model

        for record in await restapi.list_running(settings):
            if record.path == path:
                return record
        raise SessionNotFoundError(f"No running session for path: {path}")

    # ===== Shutdown =====

    async def shutdown(
        self, session_id: str, settings: ServerSettings | None = None
    ) -> None:
        """Shut down a session by id. Tracked connections are left to reconciliation."""
        await restapi.shutdown_session(session_id, settings or self._server_settings)

    async def shutdown_all(self, settings: ServerSettings | None = None) -> None:
        """
        Shut down every session the server reports for the endpoint.

        All shutdown requests run concurrently and every one is allowed to settle before this method
        returns.

        Raises:
            SessionTransportError: If listing the sessions fails.
            ExceptionGroup: If one or more shutdown requests failed; contains every failure.
            asyncio.CancelledError: If any shutdown request was cancelled; raised after all requests settle.
        """
        settings = settings or self._server_settings
        start_time = time.time()
        records = await restapi.list_running(settings)
        _LOGGER.info(
            f"[{self.__class__.__name__}] shutting down {len(records)} sessions at {settings.base_url}"
        )

        results = await asyncio.gather(
            *(restapi.shutdown_session(record.id, settings) for record in records),
            return_exceptions=True,
        )

        exceptions = []
        cancelled: BaseException | None = None
        for record, result in zip(records, results, strict=True):
            if not isinstance(result, BaseException):
                continue
            if not isinstance(result, Exception):
                _LOGGER.warning(
                    f"[{self.__class__.__name__}] shutdown of session {record.id} was interrupted: {result!r}"
                )
                cancelled = cancelled or result
                continue
            _LOGGER.error(
                f"[{self.__class__.__name__}] failed to shut down session {record.id}: {result}",
                exc_info=result,
            )
            exceptions.append(result)

        if cancelled is not None:
            raise cancelled
        if exceptions:
            raise ExceptionGroup(
                f"Failed to shut down {len(exceptions)} of {len(records)} sessions at {settings.base_url}",
                exceptions,
            )

        _LOGGER.info(
            f"[{self.__class__.__name__}] shut down {len(records)} sessions in {time.time() - start_time:.2f}s"
        )

    # ===== Reconciliation =====

    async def list_running(
        self, settings: ServerSettings | None = None
    ) -> list[SessionRecord]:
        """
        Fetch the endpoint's running sessions and reconcile the tracked connections with them.

        Returns:
            list[SessionRecord]: The server's records.
        """
        settings = settings or self._server_settings
        records = await restapi.list_running(settings)
        return self.update_running_sessions(records, settings)

    def update_running_sessions(
        self, records: list[SessionRecord], settings: ServerSettings | None = None
    ) -> list[SessionRecord]:
        """
        Reconcile tracked connections with an authoritative list of records.

        Every tracked connection whose id is in `records` is updated with its record; every tracked
        connection whose id is absent is disposed (which also removes it from the registry).
        Every tracked connection is visited even when one of them fails to update or dispose.

        Args:
            records (list[SessionRecord]): The server's complete list for the endpoint.
            settings (ServerSettings | None): The endpoint the list came from.

        Returns:
            list[SessionRecord]: `records`, unchanged.

        Raises:
            ExceptionGroup: If updating or disposing any connection failed; contains every failure.
        """
        settings = settings or self._server_settings
        by_id = {record.id: record for record in records}
        disposed = 0
        errors = []

        for session in self.running(settings):
            if session.is_disposed:
                continue
            record = by_id.get(session.id)
            try:
                if record is not None:
                    session.update(record)
                else:
                    session.dispose()
                    disposed += 1
            except Exception as e:
                _LOGGER.error(
                    f"[{self.__class__.__name__}] failed to reconcile session {session.id}: {e}",
                    exc_info=e,
                )
                errors.append(e)

        _LOGGER.debug(
            f"[{self.__class__.__name__}] reconciled {len(records)} records at {settings.base_url}, disposed {disposed} connections"
        )
        if errors:
            raise ExceptionGroup(
                f"Failed to reconcile {len(errors)} sessions at {settings.base_url}",
                errors,
            )
        return records

    def update_from_server(
        self, record: SessionRecord, settings: ServerSettings | None = None
    ) -> SessionRecord:
        """
        Push a single server record into the tracked connection with the same id, if any.

        Unlike `update_running_sessions`, nothing is disposed.

        Returns:
            SessionRecord: `record`, unchanged.
        """
        settings = settings or self._server_settings
        for session in self.running(settings):
            if session.id == record.id and not session.is_disposed:
                session.update(record)
        return record
