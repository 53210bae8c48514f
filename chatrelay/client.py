"""Client side of the chat relay: log in, send text and files, receive frames."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections import deque
from typing import AsyncIterator, Optional, Union

from .protocol import (
    FileMessage,
    Message,
    OnlineUsers,
    ProtocolError,
    TextMessage,
    decode,
)
from .server import DEFAULT_PORT, _FrameBuffer

DEFAULT_HOST = "127.0.0.1"

_CHUNK_SIZE = 64 * 1024

log = logging.getLogger(__name__)


class ChatClient:
    """One logged-in user talking to the relay."""

    def __init__(self, name: str, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self.name = name
        self.host = host
        self.port = port
        self.receiver = ""
        self.online: tuple[str, ...] = ()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._frames = _FrameBuffer()
        self._pending: deque[Message] = deque()

    async def __aenter__(self) -> "ChatClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def connect(self) -> None:
        """Connect, send the user name and wait for the first online-user list."""
        self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        self._frames = _FrameBuffer()
        self._pending.clear()
        self._writer.write(self.name.encode("utf-8"))
        await self._writer.drain()
        while not any(isinstance(message, OnlineUsers) for message in self._pending):
            batch = await self._read_batch()
            if batch is None:
                await self.close()
                raise ConnectionError("relay closed the connection during login")
            self._pending.extend(batch)

    async def close(self) -> None:
        """Close the connection; harmless when not connected."""
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        writer.close()
        with contextlib.suppress(ConnectionError, OSError):
            await writer.wait_closed()

    def select_receiver(self, receiver_id: str) -> None:
        """Set the user that later messages and files are addressed to."""
        self.receiver = receiver_id

    async def send_text(self, content: str) -> TextMessage:
        """Send a chat line to the selected receiver and return what was sent."""
        message = TextMessage(sender=self.name, receiver=self.receiver, content=content)
        await self._write(message.to_bytes())
        return message

    async def send_file(self, path: Union[str, os.PathLike]) -> FileMessage:
        """Send a file to the selected receiver and return what was sent."""
        message = FileMessage.from_path(path, sender=self.name, receiver=self.receiver)
        await self._write(message.to_bytes())
        return message

    async def messages(self) -> AsyncIterator[Message]:
        """Yield every understood frame until the relay closes the connection."""
        self._require_connection()
        while True:
            while self._pending:
                yield self._pending.popleft()
            batch = await self._read_batch()
            if batch is None:
                return
            self._pending.extend(batch)

    def _require_connection(self) -> None:
        if self._reader is None or self._writer is None:
            raise ConnectionError("client is not connected")

    async def _write(self, data: bytes) -> None:
        self._require_connection()
        assert self._writer is not None
        self._writer.write(data)
        await self._writer.drain()

    async def _read_batch(self) -> Optional[list[Message]]:
        self._require_connection()
        assert self._reader is not None
        chunk = await self._reader.read(_CHUNK_SIZE)
        if not chunk:
            return None
        batch: list[Message] = []
        for frame in self._frames.feed(chunk):
            try:
                message = decode(frame)
            except ProtocolError as exc:
                log.debug("ignoring frame: %s", exc)
                continue
            if isinstance(message, OnlineUsers):
                self.online = message.users
            batch.append(message)
        return batch