"""Wire format of the chat relay: JSON frames tagged with a message type."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

BROADCAST_ID = "BroadcastMessages"

_TEXT_ICON = "image/txt.png"
_WORD_ICON = "image/WORD.png"
_FILE_ICON = "image/file.png"


class ProtocolError(ValueError):
    """Raised when a frame cannot be understood."""


class MessageType(str, Enum):
    """Value of the ``messageType`` field of a frame."""

    TEXT = "0"
    FILE = "1"
    ONLINE = "3"


def _encode(obj: dict) -> bytes:
    return (json.dumps(obj, indent=4, sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8")


def _suffix_of(name: str) -> str:
    """Text after the last dot of a file name, or an empty string."""
    _, dot, suffix = name.rpartition(".")
    return suffix if dot else ""


@dataclass(frozen=True)
class TextMessage:
    """A chat line sent from one user to another (or to everyone)."""

    sender: str
    receiver: str
    content: str

    message_type = MessageType.TEXT

    def to_bytes(self) -> bytes:
        return _encode(
            {
                "messageType": MessageType.TEXT.value,
                "receiver": self.receiver,
                "sender": self.sender,
                "content": self.content,
            }
        )


@dataclass(frozen=True)
class FileMessage:
    """A whole file carried inline as text."""

    sender: str
    receiver: str
    name: str
    size: str
    suffix: str
    content: str

    message_type = MessageType.FILE

    @property
    def data(self) -> bytes:
        """The file contents as bytes, ready to be written to disk."""
        return self.content.encode("utf-8")

    def to_bytes(self) -> bytes:
        return _encode(
            {
                "messageType": MessageType.FILE.value,
                "receiver": self.receiver,
                "sender": self.sender,
                "size": self.size,
                "name": self.name,
                "content": self.content,
                "suffix": self.suffix,
            }
        )

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike], sender: str, receiver: str) -> "FileMessage":
        """Read a file from disk and wrap it in a frame."""
        file_path = Path(path)
        raw = file_path.read_bytes()
        return cls(
            sender=sender,
            receiver=receiver,
            name=file_path.name,
            size=str(file_path.stat().st_size),
            suffix=_suffix_of(file_path.name),
            content=raw.decode("utf-8", errors="replace"),
        )


@dataclass(frozen=True)
class OnlineUsers:
    """The list of users currently connected to the relay."""

    users: tuple[str, ...] = field(default_factory=tuple)

    message_type = MessageType.ONLINE

    def __post_init__(self) -> None:
        object.__setattr__(self, "users", tuple(self.users))

    def to_bytes(self) -> bytes:
        return _encode({"onlineUser": list(self.users), "messageType": MessageType.ONLINE.value})


Message = Union[TextMessage, FileMessage, OnlineUsers]


def _as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def _parse_object(data: bytes) -> dict:
    try:
        obj = json.loads(data)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"frame is not valid JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise ProtocolError("frame is not a JSON object")
    return obj


def decode(data: bytes) -> Message:
    """Turn one received frame into a message object."""
    if not data:
        raise ProtocolError("empty frame")
    obj = _parse_object(data)
    raw_type = _as_str(obj.get("messageType"))
    try:
        kind = MessageType(raw_type)
    except ValueError:
        raise ProtocolError(f"unknown message type {raw_type!r}") from None

    if kind is MessageType.TEXT:
        return TextMessage(
            sender=_as_str(obj.get("sender")),
            receiver=_as_str(obj.get("receiver")),
            content=_as_str(obj.get("content")),
        )
    if kind is MessageType.FILE:
        return FileMessage(
            sender=_as_str(obj.get("sender")),
            receiver=_as_str(obj.get("receiver")),
            name=_as_str(obj.get("name")),
            size=_as_str(obj.get("size")),
            suffix=_as_str(obj.get("suffix")),
            content=_as_str(obj.get("content")),
        )
    users = obj.get("onlineUser")
    if not isinstance(users, list):
        users = []
    return OnlineUsers(tuple(_as_str(user) for user in users))


def recipient_of(data: bytes) -> str:
    """The ``receiver`` of a frame, or an empty string when it has none."""
    try:
        obj = json.loads(data)
    except (ValueError, UnicodeDecodeError):
        return ""
    if not isinstance(obj, dict):
        return ""
    return _as_str(obj.get("receiver"))


def classify_prefixed(data: bytes):
    """Split a frame whose first byte tags it as text (0) or file (1).

    Returns ``None`` for an empty frame, ``(MessageType.TEXT, str)`` or
    ``(MessageType.FILE, bytes)`` otherwise.
    """
    if not data:
        return None
    tag, payload = data[0], bytes(data[1:])
    if tag == 0:
        return MessageType.TEXT, payload.decode("utf-8", errors="replace")
    if tag == 1:
        return MessageType.FILE, payload
    raise ProtocolError(f"invalid data type: {tag}")


def icon_for_suffix(suffix: str) -> str:
    """Icon resource shown next to a file with the given suffix."""
    if suffix == "txt":
        return _TEXT_ICON
    if suffix in ("docx", "doc"):
        return _WORD_ICON
    return _FILE_ICON