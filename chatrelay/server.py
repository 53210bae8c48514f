"""TCP relay that forwards chat frames between named clients."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
from typing import Optional, Sequence

from .protocol import BROADCAST_ID, OnlineUsers, recipient_of

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8989

_CHUNK_SIZE = 64 * 1024
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_OPEN = ord("{")
_CLOSE = ord("}")

log = logging.getLogger(__name__)


class _FrameBuffer:
    """Cuts a byte stream into top-level JSON objects."""

    def __init__(self) -> None:
        self._buf = bytearray()
        self._scanned = 0
        self._start = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def feed(self, data: bytes) -> list[bytes]:
        """Add received bytes and return every object completed by them."""
        self._buf += data
        frames: list[bytes] = []
        for pos, byte in enumerate(self._buf[self._scanned:], self._scanned):
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif byte == _BACKSLASH:
                    self._escaped = True
                elif byte == _QUOTE:
                    self._in_string = False
            elif byte == _QUOTE and self._depth > 0:
                self._in_string = True
            elif byte == _OPEN:
                if self._depth == 0:
                    self._start = pos
                self._depth += 1
            elif byte == _CLOSE and self._depth > 0:
                self._depth -= 1
                if self._depth == 0:
                    frames.append(bytes(self._buf[self._start : pos + 1]))

        if self._depth == 0:
            self._buf.clear()
            self._scanned = 0
            self._start = 0
        else:
            del self._buf[: self._start]
            self._start = 0
            self._scanned = len(self._buf)
        return frames


class RelayServer:
    """Accepts named clients and forwards each frame to its ``receiver``.

    The first chunk a client sends is its user id. Every later frame is a
    JSON object whose ``receiver`` field names the target client, or
    ``BroadcastMessages`` for every client but the sender.
    """

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self.host = host
        self.port = port
        self._server: Optional[asyncio.AbstractServer] = None
        self._clients: dict[str, asyncio.StreamWriter] = {}
        self._online: list[str] = []
        self._connections: set[asyncio.StreamWriter] = set()

    async def start(self) -> None:
        """Start listening; with port 0 the chosen port is stored in ``port``."""
        if self._server is not None:
            return
        self._server = await asyncio.start_server(self._handle, self.host, self.port)
        self.port = self._server.sockets[0].getsockname()[1]
        log.info("relay listening on %s:%d", self.host, self.port)

    async def serve_forever(self) -> None:
        """Start if needed and serve until cancelled."""
        await self.start()
        assert self._server is not None
        try:
            await self._server.serve_forever()
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop listening and drop every connection."""
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        for writer in list(self._connections):
            writer.close()
        await server.wait_closed()

    def online_users(self) -> list[str]:
        """Ids of the users that have logged in and not yet left, in join order."""
        return list(self._online)

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._connections.add(writer)
        client_id: Optional[str] = None
        frames = _FrameBuffer()
        try:
            while True:
                chunk = await reader.read(_CHUNK_SIZE)
                if not chunk:
                    break
                if client_id is None:
                    client_id = chunk.decode("utf-8", errors="replace")
                    await self._register(client_id, writer)
                    continue
                for frame in frames.feed(chunk):
                    await self._route(client_id, frame)
        except ConnectionError as exc:
            log.info("connection lost: %s", exc)
        finally:
            self._connections.discard(writer)
            if client_id is not None:
                self._unregister(client_id)
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()

    async def _register(self, client_id: str, writer: asyncio.StreamWriter) -> None:
        self._clients[client_id] = writer
        self._online.append(client_id)
        announcement = OnlineUsers(tuple(self._online)).to_bytes()
        for peer in list(self._clients.values()):
            await self._send(peer, announcement)
        log.info("user %r online", client_id)

    def _unregister(self, client_id: str) -> None:
        if client_id in self._clients:
            del self._clients[client_id]
            self._online = [user for user in self._online if user != client_id]
            log.info("user %r offline", client_id)

    async def _route(self, sender_id: str, frame: bytes) -> None:
        receiver = recipient_of(frame)
        target = self._clients.get(receiver)
        if target is not None:
            if target.is_closing():
                del self._clients[receiver]
                log.info("receiver %r has disconnected", receiver)
            else:
                await self._send(target, frame)
        elif receiver == BROADCAST_ID:
            for client_id, peer in list(self._clients.items()):
                if peer.is_closing():
                    self._clients.pop(client_id, None)
                    log.info("dropped stale client %r during broadcast", client_id)
                elif client_id != sender_id:
                    await self._send(peer, frame)
        else:
            log.info("receiver %r does not exist", receiver)

    @staticmethod
    async def _send(writer: asyncio.StreamWriter, data: bytes) -> None:
        try:
            writer.write(data)
            await writer.drain()
        except ConnectionError as exc:
            log.warning("could not deliver frame: %s", exc)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the relay until interrupted."""
    parser = argparse.ArgumentParser(prog="chatrelay-server", description="Chat relay server.")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="TCP port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    server = RelayServer(args.host, args.port)
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        pass
    return 0