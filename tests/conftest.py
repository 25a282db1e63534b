"""Shared test helpers: an in-process RCON server on an ephemeral port."""

import asyncio
from typing import Callable

from rconsole.errors import ConnectionClosedError
from rconsole.protocol import Packet, PacketType, encode_packet, read_packet

# Minecraft answers AUTHENTICATE with kind 2.
AUTH_RESPONSE = 2


def echo_ok(packet: Packet) -> bytes:
    return encode_packet(packet.id, PacketType.RESPONSE_VALUE, "OK:" + packet.payload)


class StubRconServer:
    """Minimal RCON server for tests.

    ``auth_id`` overrides the id sent back for AUTHENTICATE (None echoes
    the request id, -1 rejects the password) and ``auth_kind`` its kind.
    ``respond`` maps each EXEC_COMMAND packet to the raw bytes to send
    back; returning None drops the connection.
    """

    def __init__(
        self,
        auth_id: int | None = None,
        auth_kind: int = AUTH_RESPONSE,
        respond: Callable[[Packet], bytes | None] = echo_ok,
    ):
        self.auth_id = auth_id
        self.auth_kind = auth_kind
        self.respond = respond
        self.received: list[Packet] = []
        self.port = 0
        self._server: asyncio.Server | None = None

    @property
    def commands(self) -> list[str]:
        return [
            p.payload for p in self.received
            if p.kind == PacketType.EXEC_COMMAND
        ]

    async def _handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        try:
            while True:
                try:
                    packet = await read_packet(reader)
                except (ConnectionClosedError, OSError):
                    break
                self.received.append(packet)

                if packet.kind == PacketType.AUTHENTICATE:
                    rid = packet.id if self.auth_id is None else self.auth_id
                    data = encode_packet(rid, self.auth_kind, "")
                else:
                    data = self.respond(packet)
                if data is None:
                    break
                writer.write(data)
                await writer.drain()
        finally:
            writer.close()

    async def __aenter__(self) -> "StubRconServer":
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info) -> None:
        assert self._server is not None
        self._server.close()
        await self._server.wait_closed()
