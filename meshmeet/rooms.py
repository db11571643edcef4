import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class DuplicateLinkError(Exception):
    """Another connection in the room already uses this link id."""

    def __init__(self, room_id: str, link_id: str):
        super().__init__(f"Link id '{link_id}' is already in use in room '{room_id}'")
        self.room_id = room_id
        self.link_id = link_id


@dataclass(frozen=True)
class Participant:
    conn_id: str
    link_id: str
    name: str
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RoomRegistry:
    """In-memory room id -> members map.

    Rooms exist only while they have members. A connection is a member of at
    most one room; callers move it with ``leave`` before joining elsewhere.
    The registry does no locking and sends nothing: SignalRelay serialises
    access per room and owns notifications.
    """

    def __init__(self):
        # room_id -> conn_id -> Participant, dicts keep join order
        self._rooms: Dict[str, Dict[str, Participant]] = {}
        self._memberships: Dict[str, str] = {}

    def join(self, room_id: str, participant: Participant) -> bool:
        members = self._rooms.get(room_id, {})
        if participant.conn_id in members:
            logger.debug(f"Connection {participant.conn_id} already in room '{room_id}', ignoring join.")
            return False
        if self.link_in_use(room_id, participant.link_id):
            raise DuplicateLinkError(room_id, participant.link_id)
        current = self._memberships.get(participant.conn_id)
        if current is not None:
            raise ValueError(f"Connection {participant.conn_id} is still a member of room '{current}'")

        if room_id not in self._rooms:
            logger.info(f"Room '{room_id}' created by {participant.name}({participant.link_id}).")
        self._rooms.setdefault(room_id, {})[participant.conn_id] = participant
        self._memberships[participant.conn_id] = room_id
        logger.info(
            f"User {participant.name}({participant.link_id}) joined room '{room_id}'. Total: {len(self._rooms[room_id])}")
        return True

    def leave(self, room_id: str, conn_id: str) -> Optional[Participant]:
        members = self._rooms.get(room_id)
        if not members or conn_id not in members:
            return None
        participant = members.pop(conn_id)
        del self._memberships[conn_id]
        logger.info(f"User {participant.name}({participant.link_id}) left room '{room_id}'.")
        if not members:
            del self._rooms[room_id]
            logger.info(f"Room '{room_id}' is empty and closed.")
        return participant

    def members(self, room_id: str) -> List[Participant]:
        return list(self._rooms.get(room_id, {}).values())

    def member(self, room_id: str, conn_id: str) -> Optional[Participant]:
        return self._rooms.get(room_id, {}).get(conn_id)

    def link_in_use(self, room_id: str, link_id: str, conn_id: Optional[str] = None) -> bool:
        """True when a connection other than ``conn_id`` holds ``link_id`` in the room."""
        return any(p.link_id == link_id and p.conn_id != conn_id for p in self._rooms.get(room_id, {}).values())

    def count(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, ()))

    def room_of(self, conn_id: str) -> Optional[str]:
        return self._memberships.get(conn_id)

    def rooms(self) -> List[str]:
        return list(self._rooms)

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
