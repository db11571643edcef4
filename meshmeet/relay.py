import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import Dict, Optional

from starlette.websockets import WebSocket, WebSocketState

from .identity import default_display_name
from .messages import (
    ParticipantInfo,
    ReceiveMessage,
    RoomState,
    UserConnected,
    UserDisconnected,
    encode,
)
from .rooms import DuplicateLinkError, Participant, RoomRegistry

logger = logging.getLogger(__name__)


class SignalRelay:
    """Fans out join, leave and chat events to the members of a room.

    Each room has its own lock. Membership changes and the broadcast they
    trigger happen under it, so every recipient sees a room's events in the
    order they were broadcast. Delivery is best-effort and at-most-once.
    """

    def __init__(self, registry: Optional[RoomRegistry] = None):
        self.registry = registry if registry is not None else RoomRegistry()
        self._connections: Dict[str, WebSocket] = {}
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[room_id] = lock
        return lock

    @asynccontextmanager
    async def room_lock(self, room_id: str):
        lock = self._lock_for(room_id)
        async with lock:
            yield

    # --- connection lifecycle ---

    def attach(self, conn_id: str, websocket: WebSocket):
        self._connections[conn_id] = websocket

    async def detach(self, conn_id: str):
        """Forget a connection; any room it was in sees it leave."""
        await self.leave(conn_id)
        self._connections.pop(conn_id, None)

    def is_attached(self, conn_id: str) -> bool:
        return conn_id in self._connections

    # --- room operations ---

    async def join(self, conn_id: str, room_id: str, link_id: str, name: str = "") -> bool:
        """Admit a connection to a room and tell the others about it.

        Returns False when the connection was already a member of the room;
        nothing is broadcast in that case. A connection that is still in a
        different room leaves it first, unless the new room would refuse it.
        """
        current = self.registry.room_of(conn_id)
        if current is not None and current != room_id:
            if self.registry.link_in_use(room_id, link_id, conn_id):
                raise DuplicateLinkError(room_id, link_id)
            await self.leave(conn_id)

        participant = Participant(conn_id=conn_id, link_id=link_id, name=name.strip() or default_display_name())
        async with self.room_lock(room_id):
            if not self.registry.join(room_id, participant):
                return False
            await self._send(conn_id, RoomState(
                room_id=room_id,
                participants=[ParticipantInfo(link_id=p.link_id, name=p.name)
                              for p in self.registry.members(room_id) if p.conn_id != conn_id],
            ))
            await self.broadcast_join(room_id, participant)
        return True

    async def leave(self, conn_id: str) -> Optional[Participant]:
        room_id = self.registry.room_of(conn_id)
        if room_id is None:
            return None
        async with self.room_lock(room_id):
            participant = self.registry.leave(room_id, conn_id)
            if participant is not None:
                await self.broadcast_leave(room_id, participant)
        return participant

    # --- fan-out; callers hold the room lock ---

    async def broadcast_join(self, room_id: str, participant: Participant):
        await self._broadcast(room_id, UserConnected(link_id=participant.link_id, name=participant.name),
                              exclude_conn_id=participant.conn_id)

    async def broadcast_leave(self, room_id: str, participant: Participant):
        await self._broadcast(room_id, UserDisconnected(link_id=participant.link_id, name=participant.name),
                              exclude_conn_id=participant.conn_id)

    async def relay_chat(self, room_id: str, sender_conn_id: str, text: str, name: str = "") -> int:
        """Send a chat line to everyone in the room but its sender.

        Returns the number of recipients it was handed to.
        """
        async with self.room_lock(room_id):
            sender = self.registry.member(room_id, sender_conn_id)
            if sender is None:
                logger.warning(f"Connection {sender_conn_id} sent chat to room '{room_id}' without being a member.")
                return 0
            message = ReceiveMessage(sender_conn_id=sender_conn_id, name=name.strip() or sender.name, text=text)
            return await self._broadcast(room_id, message, exclude_conn_id=sender_conn_id)

    async def _broadcast(self, room_id: str, message, exclude_conn_id: Optional[str] = None) -> int:
        payload = encode(message)
        delivered = 0
        for participant in self.registry.members(room_id):
            if participant.conn_id == exclude_conn_id:
                continue
            if await self._deliver(participant.conn_id, payload):
                delivered += 1
        return delivered

    async def _send(self, conn_id: str, message) -> bool:
        return await self._deliver(conn_id, encode(message))

    async def _deliver(self, conn_id: str, payload: dict) -> bool:
        ws = self._connections.get(conn_id)
        if ws is None or ws.client_state != WebSocketState.CONNECTED:
            logger.warning(f"WS for {conn_id} not connected, dropping '{payload.get('type')}'.")
            return False
        try:
            await ws.send_json(payload)
        except Exception as e:  # Includes RuntimeError if the connection closes during send
            logger.warning(f"Delivery of '{payload.get('type')}' to {conn_id} failed: {e}")
            return False
        return True
