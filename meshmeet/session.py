import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .identity import default_display_name
from .media import MediaCaptureError, MediaHandle

logger = logging.getLogger(__name__)

CAPTURE_DENIED_NOTICE = "Please allow camera and microphone access"


class LinkDirection(str, enum.Enum):
    OUTBOUND = "outbound"  # this side initiated
    INBOUND = "inbound"  # this side answered


class LinkState(str, enum.Enum):
    NEGOTIATING = "negotiating"
    ESTABLISHED = "established"
    CLOSED = "closed"


@dataclass
class PeerLink:
    link_id: str
    direction: LinkDirection
    name: str
    handle: Any = None
    state: LinkState = LinkState.NEGOTIATING
    stream: Any = None


class ConnectionSession:
    """Local state of one participant for the lifetime of its connection."""

    def __init__(self, link_id: str, name: Optional[str] = None, media: Optional[MediaHandle] = None):
        self.link_id = link_id
        self.name = (name or "").strip() or default_display_name()
        self.media = media
        self.media_error: Optional[str] = None
        self._links: Dict[str, PeerLink] = {}
        self._lock = threading.RLock()

    @classmethod
    def open(cls, link_id: str, name: Optional[str], capture: Callable[[], MediaHandle]) -> "ConnectionSession":
        """Create a session, capturing local media with ``capture``.

        A capture failure leaves the session without media and records a
        notice for the user instead of raising.
        """
        session = cls(link_id, name)
        try:
            session.media = capture()
        except MediaCaptureError as e:
            logger.error(f"Local media capture failed for {session.name}: {e}")
            session.media_error = CAPTURE_DENIED_NOTICE
        return session

    def own_link_id(self) -> str:
        return self.link_id

    def local_media_handle(self) -> Optional[MediaHandle]:
        return self.media

    # PeerLink map, mutated only by PeerLinkManager

    def locked(self):
        """Hold the link map lock across several steps, e.g. a check and the update it guards."""
        return self._lock

    def get_link(self, link_id: str) -> Optional[PeerLink]:
        with self._lock:
            return self._links.get(link_id)

    def put_link(self, link: PeerLink) -> Optional[PeerLink]:
        """Store ``link``, returning the one it replaced."""
        with self._lock:
            previous = self._links.get(link.link_id)
            self._links[link.link_id] = link
            return previous

    def pop_link(self, link_id: str, handle=None) -> Optional[PeerLink]:
        """Drop the link for ``link_id``.

        With ``handle`` given, only drop it while that handle is still the
        current one, so callbacks from a replaced link cannot remove its
        successor.
        """
        with self._lock:
            link = self._links.get(link_id)
            if link is None or (handle is not None and link.handle is not handle):
                return None
            return self._links.pop(link_id)

    def links(self) -> List[PeerLink]:
        with self._lock:
            return list(self._links.values())
