"""
Session registry public API.

Exports:
    - SessionRegistry: Tracks live session connections per endpoint; creation, lookup, shutdown and
      reconciliation against the server's session list.
    - RunningSessionPoller: Background task that periodically reconciles a registry with the server.

Concurrency:
    - The registry is used from a single event loop. Its bookkeeping never awaits, so interleaving
      only happens at REST calls.
    - A connection's PATCH guard drops reconciliation updates that arrive while its own PATCH is
      outstanding.
"""

from ._poller import DEFAULT_POLL_INTERVAL_SECONDS, RunningSessionPoller
from ._registry import SessionRegistry

__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "RunningSessionPoller",
    "SessionRegistry",
]
