import json

import pytest

from chatrelay.protocol import (
    FileMessage,
    MessageType,
    OnlineUsers,
    ProtocolError,
    TextMessage,
    classify_prefixed,
    decode,
    icon_for_suffix,
    recipient_of,
)


def test_text_message_wire_fields():
    frame = TextMessage(sender="alice", receiver="bob", content="hi").to_bytes()
    obj = json.loads(frame)
    assert obj == {"messageType": "0", "receiver": "bob", "sender": "alice", "content": "hi"}


def test_text_message_round_trip():
    message = TextMessage(sender="alice", receiver="bob", content="hello there")
    assert decode(message.to_bytes()) == message


def test_unicode_text_round_trip():
    message = TextMessage(sender="小明", receiver="小红", content="你好，世界")
    assert decode(message.to_bytes()) == message


def test_file_message_from_path(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello")
    message = FileMessage.from_path(path, "alice", "bob")
    assert message.name == "notes.txt"
    assert message.suffix == "txt"
    assert message.size == "5"
    assert message.content == "hello"
    assert message.data == b"hello"
    assert (message.sender, message.receiver) == ("alice", "bob")


def test_file_suffix_uses_last_dot(tmp_path):
    path = tmp_path / "archive.tar.gz"
    path.write_bytes(b"x")
    assert FileMessage.from_path(path, "a", "b").suffix == "gz"


def test_file_without_suffix(tmp_path):
    path = tmp_path / "README"
    path.write_bytes(b"x")
    assert FileMessage.from_path(path, "a", "b").suffix == ""


def test_file_message_round_trip(tmp_path):
    path = tmp_path / "report.docx"
    path.write_text("line one\nline two", encoding="utf-8")
    message = FileMessage.from_path(path, "alice", "bob")
    decoded = decode(message.to_bytes())
    assert decoded == message
    assert json.loads(message.to_bytes())["messageType"] == "1"


def test_file_from_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        FileMessage.from_path(tmp_path / "absent.txt", "a", "b")


def test_online_users_round_trip():
    users = OnlineUsers(["alice", "bob", "carol"])
    obj = json.loads(users.to_bytes())
    assert obj["messageType"] == "3"
    assert obj["onlineUser"] == ["alice", "bob", "carol"]
    assert decode(users.to_bytes()) == users


@pytest.mark.parametrize("frame", [b"", b"not json", b"[1, 2]"])
def test_decode_rejects_malformed(frame):
    with pytest.raises(ProtocolError):
        decode(frame)


def test_decode_rejects_unknown_type():
    with pytest.raises(ProtocolError):
        decode(json.dumps({"messageType": "7"}).encode())


def test_decode_fills_missing_fields_with_empty_strings():
    message = decode(json.dumps({"messageType": "0"}).encode())
    assert message == TextMessage(sender="", receiver="", content="")


def test_recipient_of_reads_receiver():
    frame = TextMessage(sender="alice", receiver="BroadcastMessages", content="x").to_bytes()
    assert recipient_of(frame) == "BroadcastMessages"


@pytest.mark.parametrize("frame", [b"garbage", b"{}", b'"str"'])
def test_recipient_of_missing_is_empty(frame):
    assert recipient_of(frame) == ""


def test_classify_prefixed_text():
    assert classify_prefixed(b"\x00hello") == (MessageType.TEXT, "hello")


def test_classify_prefixed_file():
    assert classify_prefixed(b"\x01abc") == (MessageType.FILE, b"abc")


def test_classify_prefixed_empty():
    assert classify_prefixed(b"") is None


def test_classify_prefixed_invalid_tag():
    with pytest.raises(ProtocolError):
        classify_prefixed(b"\x05payload")


@pytest.mark.parametrize(
    "suffix, icon",
    [
        ("txt", "image/txt.png"),
        ("docx", "image/WORD.png"),
        ("doc", "image/WORD.png"),
        ("pdf", "image/file.png"),
        ("", "image/file.png"),
    ],
)
def test_icon_for_suffix(suffix, icon):
    assert icon_for_suffix(suffix) == icon