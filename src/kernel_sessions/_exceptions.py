"""Custom exception types for kernel-sessions.

Defines the exception hierarchy used by the session connection layer, the session registry,
the REST transport and the configuration loader. These exceptions provide fine-grained error
reporting so callers can tell a disposed handle apart from a missing session, a rejected request
or a malformed server payload.

Exception Hierarchy:
    - Base exceptions: SessionClientError (base for all exceptions)
    - Lifecycle exceptions: SessionDisposedError (extends SessionClientError)
    - Lookup exceptions: SessionNotFoundError (extends SessionClientError and KeyError)
    - Precondition exceptions: SessionPreconditionError (extends SessionClientError and ValueError)
    - Validation exceptions: SessionValidationError (extends SessionClientError and ValueError)
    - Transport exceptions: SessionTransportError (extends SessionClientError), SessionNetworkError (extends SessionTransportError),
      SessionResponseError (extends SessionTransportError), KernelGoneError (extends SessionResponseError)
    - Configuration exceptions: ConfigurationError (extends SessionClientError), ServerConfigurationError (extends ConfigurationError)

Usage Example:
    ```python
    from kernel_sessions._exceptions import SessionNotFoundError, SessionTransportError

    async def lookup(registry, session_id):
        try:
            return await registry.find_by_id(session_id)
        except SessionNotFoundError:
            logger.info(f"Session {session_id} is gone")
            return None
        except SessionTransportError as e:
            logger.error(f"Server request failed: {e}")
            raise
    ```
"""

__all__ = [
    # Base exceptions
    "SessionClientError",
    # Lifecycle exceptions
    "SessionDisposedError",
    # Lookup exceptions
    "SessionNotFoundError",
    # Precondition and validation exceptions
    "SessionPreconditionError",
    "SessionValidationError",
    # Transport exceptions
    "SessionTransportError",
    "SessionNetworkError",
    "SessionResponseError",
    "KernelGoneError",
    # Configuration exceptions
    "ConfigurationError",
    "ServerConfigurationError",
]


# Base Exceptions


class SessionClientError(Exception):
    """Base exception for all kernel-sessions errors.

    Allows callers to catch every error raised by this package with a single except clause
    while still keeping specific exception types for detailed error handling.
    """

    pass


# Lifecycle Exceptions


class SessionDisposedError(SessionClientError):
    """Raised when an operation is invoked on a disposed session connection.

    The failing call has no effect on the connection's state. A disposed connection never
    becomes usable again; obtain a fresh handle from the registry instead.
    """

    def __init__(self, session_id: str):
        """Initialize the exception for the given session id.

        Args:
            session_id (str): The id of the disposed session.
        """
        self.session_id = session_id
        super().__init__(f"Session {session_id} is disposed")


# Lookup Exceptions


class SessionNotFoundError(SessionClientError, KeyError):
    """Raised when a session lookup matches neither the local cache nor the server.

    Inherits from KeyError so that generic lookup-failure handlers also catch it.
    """

    def __str__(self) -> str:
        """Return the message without the quoting KeyError adds."""
        return str(self.args[0]) if self.args else ""


# Precondition and Validation Exceptions


class SessionPreconditionError(SessionClientError, ValueError):
    """Raised when a call's arguments are invalid, before any network request is made.

    Examples include starting a session without a path or changing a kernel without naming
    the requested kernel.
    """

    pass


class SessionValidationError(SessionClientError, ValueError):
    """Raised when a server payload does not have the expected shape.

    The call that received the payload is treated as failed and no local state is changed.
    """

    pass


# Transport Exceptions


class SessionTransportError(SessionClientError):
    """Base exception for failures talking to the session service."""

    pass


class SessionNetworkError(SessionTransportError):
    """Raised when the session service cannot be reached (connection failure or timeout)."""

    pass


class SessionResponseError(SessionTransportError):
    """Raised when the session service answers with an unexpected HTTP status.

    Attributes:
        status (int): The HTTP status code of the response.
        message (str): The server supplied message, or the HTTP reason phrase.
    """

    def __init__(self, status: int, message: str):
        """Initialize the exception with the response status and message.

        Args:
            status (int): The HTTP status code.
            message (str): A human readable description of the failure.
        """
        self.status = status
        self.message = message
        super().__init__(f"Invalid response: {status} {message}")


class KernelGoneError(SessionResponseError):
    """Raised when deleting a session removed its kernel but left the session record behind."""

    pass


# Configuration Exceptions


class ConfigurationError(SessionClientError):
    """Base exception for configuration loading and validation errors."""

    pass


class ServerConfigurationError(ConfigurationError):
    """Raised when a server entry of the configuration is missing or invalid."""

    pass
