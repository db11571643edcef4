import asyncio
import json
import logging
from typing import Callable, Optional

import websockets

from .chat import ChatChannel
from .media import VideoGrid
from .messages import (
    ErrorNotice,
    InvalidMessage,
    JoinRoom,
    ReceiveMessage,
    RoomState,
    UserConnected,
    UserDisconnected,
    encode,
    parse_server_message,
)
from .negotiation import Negotiator
from .peers import PeerLinkManager
from .session import ConnectionSession

logger = logging.getLogger(__name__)


class RoomClient:
    """One participant's signaling connection to a room.

    Inbound messages go through a dispatch table keyed by message type that
    is built once, when the client is created.
    """

    def __init__(self, session: ConnectionSession, room_id: str, negotiator: Negotiator,
                 send: Optional[Callable[[dict], None]] = None, grid: Optional[VideoGrid] = None):
        self.session = session
        self.room_id = room_id
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._send = send if send is not None else self._outbox.put_nowait
        self.peers = PeerLinkManager(session, negotiator, grid)
        self.chat = ChatChannel(room_id, session.name, self.send)
        self._handlers = {
            RoomState: self._on_room_state,
            UserConnected: self._on_user_connected,
            UserDisconnected: self._on_user_disconnected,
            ReceiveMessage: self.chat.on_receive,
            ErrorNotice: self._on_error,
        }
        if session.media_error:
            self.chat.notice(session.media_error)
        self.peers.show_local()

    def send(self, message):
        self._send(encode(message))

    def join(self):
        self.send(JoinRoom(room_id=self.room_id, link_id=self.session.own_link_id(), name=self.session.name))

    def handle(self, raw):
        if isinstance(raw, dict):
            raw = json.dumps(raw)
        try:
            message = parse_server_message(raw)
        except InvalidMessage as e:
            logger.warning(f"Ignoring malformed frame in room '{self.room_id}': {e}")
            return None
        return self._handlers[type(message)](message)

    def leave(self):
        self.peers.close_all()

    async def run(self, url: str):
        """Connect to the relay at ``url``, join and process events until it closes."""
        async with websockets.connect(url) as ws:
            writer = asyncio.create_task(self._drain(ws))
            try:
                self.join()
                async for raw in ws:
                    self.handle(raw)
            except websockets.ConnectionClosed as e:
                logger.info(f"Signaling connection closed: {e}")
            finally:
                writer.cancel()
                try:
                    await writer
                except asyncio.CancelledError:
                    pass
                except websockets.ConnectionClosed as e:
                    logger.info(f"Signaling connection closed while sending: {e}")
                self.leave()

    async def _drain(self, ws):
        while True:
            payload = await self._outbox.get()
            await ws.send(json.dumps(payload))

    def _on_room_state(self, message: RoomState):
        logger.info(f"Joined room '{message.room_id}' with {len(message.participants)} other participant(s).")

    def _on_user_connected(self, message: UserConnected):
        self.chat.notice(f"{message.name or 'A user'} joined the call", sender=message.name)
        return self.peers.on_user_connected(message.link_id, message.name)

    def _on_user_disconnected(self, message: UserDisconnected):
        self.chat.notice(f"{message.name or 'A user'} left the call", sender=message.name)
        return self.peers.on_user_disconnected(message.link_id, message.name)

    def _on_error(self, message: ErrorNotice):
        logger.warning(f"Relay reported an error in room '{self.room_id}': {message.detail}")
