"""Client-side chat state: contacts, open conversations and received files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from .protocol import (
    BROADCAST_ID,
    FileMessage,
    Message,
    OnlineUsers,
    TextMessage,
    icon_for_suffix,
)

_SELF_LABEL = "我"


def format_history_line(content: str, when: Optional[datetime] = None) -> str:
    """One line of a plain-text chat history, written as sent by the local user."""
    stamp = (when or datetime.now()).strftime("%H:%M:%S")
    return f"[{stamp}] {_SELF_LABEL}: {content}"


def _file_label(name: str, size: str) -> str:
    return f"{name}||{size}b"


@dataclass
class ChatEntry:
    """One item in a conversation: a chat line or a file."""

    content: str
    outgoing: bool
    timestamp: Optional[datetime] = None
    icon: Optional[str] = None
    file_index: Optional[int] = None


@dataclass
class Contact:
    """A user in the contact list; offline users are shown greyed out."""

    user_id: str
    icon_path: str
    online: bool = False


class ChatBook:
    """Conversations of one logged-in user, keyed by the other user's id."""

    def __init__(self, username: str) -> None:
        self.username = username
        self.contacts: dict[str, Contact] = {}
        self.online: tuple[str, ...] = ()
        self.receiver = ""
        self.current_chat: Optional[str] = None
        self._chats: dict[str, list[ChatEntry]] = {}
        self._files: dict[int, bytes] = {}
        self._file_counter = 0

    @property
    def open_chats(self) -> list[str]:
        """Ids of the open conversations, in the order they were opened."""
        return list(self._chats)

    def add_contacts(self, contacts: Mapping[str, str]) -> None:
        """Add contacts given as ``user id -> icon path``, in id order."""
        for user_id in sorted(contacts):
            self.contacts[user_id] = Contact(
                user_id=user_id,
                icon_path=contacts[user_id],
                online=user_id == BROADCAST_ID,
            )

    def update_online(self, users: Iterable[str]) -> None:
        """Record the relay's online-user list and light up those contacts."""
        self.online = tuple(users)
        present = set(self.online)
        for contact in self.contacts.values():
            if contact.user_id in present:
                contact.online = True

    def open_chat(self, user_id: str) -> list[ChatEntry]:
        """Open (or switch to) the conversation with ``user_id``."""
        entries = self._chats.setdefault(user_id, [])
        self.current_chat = user_id
        return entries

    def close_chat(self, user_id: str) -> bool:
        """Close a conversation and drop its history; False if it was not open."""
        if user_id not in self._chats:
            return False
        order = list(self._chats)
        position = order.index(user_id)
        del self._chats[user_id]
        if self.current_chat == user_id:
            remaining = list(self._chats)
            if remaining:
                self.current_chat = remaining[min(position, len(remaining) - 1)]
            else:
                self.current_chat = None
        return True

    def select(self, user_id: str) -> None:
        """Make ``user_id`` the receiver of later messages and show its chat."""
        self.receiver = user_id
        self.open_chat(user_id)

    def _require_receiver(self) -> str:
        if not self.receiver:
            raise ValueError("no receiver selected")
        return self.receiver

    def _append(self, user_id: str, entry: ChatEntry) -> ChatEntry:
        if user_id in self._chats:
            self._chats[user_id].append(entry)
        else:
            self.open_chat(user_id).append(entry)
        return entry

    def send_text(self, text: str) -> TextMessage:
        """Record an outgoing chat line and return the frame to send."""
        receiver = self._require_receiver()
        if receiver == BROADCAST_ID:
            for user in self.online:
                self._append(user, ChatEntry(text, outgoing=True, timestamp=datetime.now()))
        else:
            self._append(receiver, ChatEntry(text, outgoing=True, timestamp=datetime.now()))
        return TextMessage(sender=self.username, receiver=receiver, content=text)

    def send_file(self, path: Union[str, os.PathLike]) -> FileMessage:
        """Record an outgoing file and return the frame to send."""
        receiver = self._require_receiver()
        message = FileMessage.from_path(path, sender=self.username, receiver=receiver)
        entry = ChatEntry(
            _file_label(message.name, message.size),
            outgoing=True,
            timestamp=datetime.now(),
            icon=icon_for_suffix(message.suffix),
        )
        self._append(receiver, entry)
        return message

    def receive(self, message: Message) -> Optional[ChatEntry]:
        """Apply a received frame; return the chat entry it produced, if any."""
        if isinstance(message, OnlineUsers):
            self.update_online(message.users)
            return None
        if isinstance(message, TextMessage):
            entry = ChatEntry(message.content, outgoing=False, timestamp=datetime.now())
            return self._append(message.sender, entry)
        self._file_counter += 1
        index = self._file_counter
        self._files[index] = message.data
        entry = ChatEntry(
            _file_label(message.name, message.size),
            outgoing=False,
            timestamp=datetime.now(),
            icon=icon_for_suffix(message.suffix),
            file_index=index,
        )
        return self._append(message.sender, entry)

    def history(self, user_id: str) -> list[ChatEntry]:
        """Entries of an open conversation; KeyError if it is not open."""
        return list(self._chats[user_id])

    def save_file(self, index: int, path: Union[str, os.PathLike]) -> Path:
        """Write a received file to ``path``; KeyError for an unknown index."""
        data = self._files[index]
        target = Path(path)
        target.write_bytes(data)
        return target