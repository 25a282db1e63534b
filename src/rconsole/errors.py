"""Errors raised by the RCON client."""


class RconError(Exception):
    """Base class for every error this package raises."""


class ConnectError(RconError):
    """The TCP connection to the server could not be established."""


class AuthError(RconError):
    """The server rejected the password."""


class FramingError(RconError):
    """A frame had an invalid declared size or too few body bytes."""


class CorrelationError(RconError):
    """A response carried an id other than the one the client sent."""

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Invalid response id: expected {expected}, got {received}"
        )
        self.expected = expected
        self.received = received


class NotReadyError(RconError):
    """A command was issued on a session that is not authenticated."""


class ConnectionClosedError(RconError):
    """The server closed the connection in the middle of a frame."""


class RconTimeoutError(RconError, TimeoutError):
    """No complete frame arrived before the read deadline."""
