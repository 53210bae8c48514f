import asyncio
import contextlib

import pytest

from chatrelay.client import ChatClient
from chatrelay.protocol import BROADCAST_ID, FileMessage, OnlineUsers, TextMessage
from chatrelay.server import RelayServer


@contextlib.asynccontextmanager
async def running():
    server = RelayServer("127.0.0.1", 0)
    await server.start()
    try:
        yield server
    finally:
        await server.close()


@contextlib.asynccontextmanager
async def fake_relay(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        await server.wait_closed()


async def next_of_type(stream, cls, timeout=2.0):
    while True:
        message = await asyncio.wait_for(stream.__anext__(), timeout)
        if isinstance(message, cls):
            return message


@pytest.mark.asyncio
async def test_connect_reports_online_users():
    async with running() as server:
        async with ChatClient("alice", "127.0.0.1", server.port) as alice:
            assert alice.online == ("alice",)
            assert server.online_users() == ["alice"]


@pytest.mark.asyncio
async def test_online_list_updates_when_someone_joins():
    async with running() as server:
        async with ChatClient("alice", "127.0.0.1", server.port) as alice:
            stream = alice.messages()
            first = await asyncio.wait_for(stream.__anext__(), 2)
            assert first == OnlineUsers(("alice",))
            async with ChatClient("bob", "127.0.0.1", server.port):
                update = await next_of_type(stream, OnlineUsers)
                assert update.users == ("alice", "bob")
                assert alice.online == ("alice", "bob")


@pytest.mark.asyncio
async def test_text_reaches_selected_receiver():
    async with running() as server:
        async with ChatClient("alice", "127.0.0.1", server.port) as alice, ChatClient(
            "bob", "127.0.0.1", server.port
        ) as bob:
            alice.select_receiver("bob")
            sent = await alice.send_text("hi bob")
            assert sent == TextMessage(sender="alice", receiver="bob", content="hi bob")
            received = await next_of_type(bob.messages(), TextMessage)
            assert received == sent


@pytest.mark.asyncio
async def test_file_reaches_selected_receiver(tmp_path):
    content = "line one\nline two\n"
    path = tmp_path / "notes.txt"
    path.write_text(content, encoding="utf-8")
    async with running() as server:
        async with ChatClient("alice", "127.0.0.1", server.port) as alice, ChatClient(
            "bob", "127.0.0.1", server.port
        ) as bob:
            alice.select_receiver("bob")
            sent = await alice.send_file(path)
            received = await next_of_type(bob.messages(), FileMessage)
            assert received == sent
            assert received.name == "notes.txt"
            assert received.suffix == "txt"
            assert received.size == str(len(content.encode("utf-8")))
            assert received.data == content.encode("utf-8")


@pytest.mark.asyncio
async def test_broadcast_reaches_other_users():
    async with running() as server:
        async with ChatClient("alice", "127.0.0.1", server.port) as alice, ChatClient(
            "bob", "127.0.0.1", server.port
        ) as bob, ChatClient("carol", "127.0.0.1", server.port) as carol:
            alice.select_receiver(BROADCAST_ID)
            sent = await alice.send_text("hello all")
            assert await next_of_type(bob.messages(), TextMessage) == sent
            assert await next_of_type(carol.messages(), TextMessage) == sent


@pytest.mark.asyncio
async def test_invalid_frames_are_skipped():
    async def handler(reader, writer):
        await reader.read(100)
        writer.write(
            OnlineUsers(("alice",)).to_bytes()
            + b'{"messageType": "9"}'
            + b'not json {"a": 1}'
            + TextMessage("relay", "alice", "hi").to_bytes()
        )
        await writer.drain()
        writer.close()

    async with fake_relay(handler) as port:
        async with ChatClient("alice", "127.0.0.1", port) as alice:
            received = [message async for message in alice.messages()]
    assert received == [OnlineUsers(("alice",)), TextMessage("relay", "alice", "hi")]


@pytest.mark.asyncio
async def test_login_fails_when_relay_hangs_up():
    async def handler(reader, writer):
        await reader.read(100)
        writer.close()

    async with fake_relay(handler) as port:
        client = ChatClient("alice", "127.0.0.1", port)
        with pytest.raises(ConnectionError):
            await client.connect()


@pytest.mark.asyncio
async def test_send_without_connection_raises():
    client = ChatClient("alice")
    with pytest.raises(ConnectionError):
        await client.send_text("nobody listens")


@pytest.mark.asyncio
async def test_messages_without_connection_raises():
    client = ChatClient("alice")
    with pytest.raises(ConnectionError):
        await client.messages().__anext__()


@pytest.mark.asyncio
async def test_connect_to_closed_port_raises():
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    client = ChatClient("alice", "127.0.0.1", port)
    with pytest.raises(OSError):
        await client.connect()


def test_select_receiver_sets_address():
    client = ChatClient("alice")
    assert client.receiver == ""
    client.select_receiver("bob")
    assert client.receiver == "bob"