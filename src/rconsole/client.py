"""RCON client session: one authenticated TCP connection to a server."""

import asyncio
import logging
from enum import Enum

from rconsole.errors import (
    AuthError,
    ConnectError,
    ConnectionClosedError,
    CorrelationError,
    NotReadyError,
    RconTimeoutError,
)
from rconsole.protocol import (
    AUTH_FAILED_ID,
    CLIENT_ID,
    Packet,
    PacketType,
    read_packet,
)

logger = logging.getLogger("rconsole.client")


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"


class RconSession:
    """An RCON connection with strictly one command in flight at a time.

    Use ``await RconSession.connect(host, port, password)`` to obtain a
    ready session. ``execute`` calls are serialized with a lock, so a
    session may be shared between tasks without interleaving frames.

    ``timeout`` bounds every read, in seconds. ``None`` waits forever.
    """

    def __init__(self, host: str, port: int, timeout: float | None = None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._state = SessionState.DISCONNECTED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        password: str,
        *,
        timeout: float | None = None,
    ) -> "RconSession":
        """Open a connection and authenticate. Not retried on failure."""
        session = cls(host, port, timeout=timeout)
        await session._open(password)
        return session

    async def _open(self, password: str) -> None:
        self._state = SessionState.CONNECTING
        logger.info("Connecting to %s:%d", self.host, self.port)
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self._state = SessionState.FAILED
            raise ConnectError(
                f"Timed out connecting to {self.host}:{self.port}"
            ) from e
        except (OSError, OverflowError) as e:
            self._state = SessionState.FAILED
            raise ConnectError(
                f"Could not connect to {self.host}:{self.port}: {e}"
            ) from e

        self._state = SessionState.AUTHENTICATING
        try:
            await self._send(Packet(CLIENT_ID, PacketType.AUTHENTICATE, password))
            resp = await self._recv()
        except BaseException:
            await self._fail()
            raise

        if resp.id == AUTH_FAILED_ID:
            logger.warning("Authentication rejected by %s:%d", self.host, self.port)
            await self._fail()
            raise AuthError("Authentication failed")

        # Servers disagree on echoing the auth id; only -1 is authoritative.
        if resp.id != CLIENT_ID:
            logger.debug("Auth reply carried id %d, accepting", resp.id)

        self._state = SessionState.READY
        logger.info("Authenticated with %s:%d", self.host, self.port)

    async def execute(self, command: str) -> str:
        """Send one console command and return the server's textual reply.

        The reply may be empty. Raises CorrelationError if the response id
        does not match; the session remains usable afterwards.
        """
        async with self._lock:
            if self._state is not SessionState.READY:
                raise NotReadyError(f"Session is {self._state.value}, not ready")

            logger.debug("-> %s", command)
            try:
                await self._send(Packet(CLIENT_ID, PacketType.EXEC_COMMAND, command))
                resp = await self._recv()
            except (ConnectionClosedError, RconTimeoutError, asyncio.CancelledError):
                # A reply may still be on its way; the stream is no longer in step.
                await self._fail()
                raise

            if resp.id != CLIENT_ID:
                logger.warning("Dropping reply with id %d", resp.id)
                raise CorrelationError(CLIENT_ID, resp.id)

            logger.debug("<- %r", resp.payload)
            return resp.payload

    async def _send(self, packet: Packet) -> None:
        assert self._writer is not None
        try:
            self._writer.write(packet.encode())
            await self._writer.drain()
        except OSError as e:
            raise ConnectionClosedError(f"Connection lost while sending: {e}") from e

    async def _recv(self) -> Packet:
        assert self._reader is not None
        try:
            return await asyncio.wait_for(read_packet(self._reader), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise RconTimeoutError(
                f"No reply from {self.host}:{self.port} within {self.timeout}s"
            ) from e
        except OSError as e:
            raise ConnectionClosedError(f"Connection lost while reading: {e}") from e

    async def _fail(self) -> None:
        self._state = SessionState.FAILED
        await self._close_transport()

    async def _close_transport(self) -> None:
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        await self._close_transport()
        if self._state is not SessionState.FAILED:
            self._state = SessionState.CLOSED

    async def __aenter__(self) -> "RconSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
