import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .messages import ReceiveMessage, SendMessage

logger = logging.getLogger(__name__)


class EntryKind(str, enum.Enum):
    OWN = "own"
    OTHER = "other"
    SYSTEM = "system"


@dataclass(frozen=True)
class ChatEntry:
    sender: str
    text: str
    kind: EntryKind = EntryKind.OTHER
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def display_sender(self) -> str:
        return "You" if self.kind is EntryKind.OWN else self.sender


class ChatView:
    """Append-only log of what the participant sees in the chat panel."""

    def __init__(self):
        self.entries: List[ChatEntry] = []

    def append(self, entry: ChatEntry) -> ChatEntry:
        self.entries.append(entry)
        return entry

    def texts(self, kind: Optional[EntryKind] = None) -> List[str]:
        return [e.text for e in self.entries if kind is None or e.kind is kind]

    def __len__(self):
        return len(self.entries)


class ChatChannel:
    """Text chat carried over the signaling connection.

    Own messages are shown as soon as they are sent; the relay never echoes
    them back.
    """

    def __init__(self, room_id: str, name: str, send: Callable[[SendMessage], None],
                 view: Optional[ChatView] = None):
        self.room_id = room_id
        self.name = name
        self._send = send
        self.view = view if view is not None else ChatView()

    def send(self, text: str) -> Optional[ChatEntry]:
        text = text.strip()
        if not text:
            return None
        entry = self.view.append(ChatEntry(sender=self.name, text=text, kind=EntryKind.OWN))
        self._send(SendMessage(room_id=self.room_id, text=text, name=self.name))
        return entry

    def on_receive(self, message: ReceiveMessage) -> ChatEntry:
        return self.view.append(ChatEntry(sender=message.name, text=message.text,
                                          kind=EntryKind.OTHER, timestamp=message.timestamp))

    def notice(self, text: str, sender: str = "") -> ChatEntry:
        return self.view.append(ChatEntry(sender=sender, text=text, kind=EntryKind.SYSTEM))
