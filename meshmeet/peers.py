import logging
from typing import Optional

from .media import VideoGrid
from .negotiation import NegotiatedLink, Negotiator
from .session import ConnectionSession, LinkDirection, LinkState, PeerLink

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_NAME = "Participant"


class PeerLinkManager:
    """Turns relay events and negotiation callbacks into peer links.

    Per remote link id a link goes Absent -> Negotiating (outbound when we
    were told the peer joined, inbound when the peer called us) ->
    Established (first remote stream) -> Closed (leave notice or link close).
    Every established link has exactly one surface in the grid, keyed by the
    remote link id; closing a link removes its surface.
    """

    def __init__(self, session: ConnectionSession, negotiator: Negotiator, grid: Optional[VideoGrid] = None):
        self.session = session
        self.negotiator = negotiator
        self.grid = grid if grid is not None else VideoGrid()
        negotiator.on_incoming(self.on_incoming_link)

    def show_local(self):
        media = self.session.local_media_handle()
        if media is None:
            return None
        return self.grid.attach(self.session.own_link_id(), media, label=self.session.name, muted=True)

    def on_user_connected(self, link_id: str, name: str = "") -> Optional[PeerLink]:
        media = self.session.local_media_handle()
        if media is None:
            logger.warning(f"No local media, not calling {name}({link_id}).")
            return None
        if link_id == self.session.own_link_id():
            return None
        existing = self.session.get_link(link_id)
        if existing is not None and existing.state != LinkState.CLOSED:
            logger.debug(f"Link to {link_id} already {existing.state.value}, ignoring join notice.")
            return existing

        handle = self.negotiator.initiate_link(link_id, media, {"name": self.session.name})
        link = PeerLink(link_id=link_id, direction=LinkDirection.OUTBOUND,
                        name=name or DEFAULT_REMOTE_NAME, handle=handle)
        self._track(link)
        logger.info(f"Calling {link.name}({link_id}).")
        return link

    def on_incoming_link(self, handle: NegotiatedLink) -> PeerLink:
        link_id = handle.peer
        name = (handle.metadata or {}).get("name") or DEFAULT_REMOTE_NAME
        media = self.session.local_media_handle()
        if media is None:
            logger.warning(f"No local media, answering {name}({link_id}) receive-only.")
        link = PeerLink(link_id=link_id, direction=LinkDirection.INBOUND, name=name, handle=handle)
        self._track(link)
        handle.answer(media)
        logger.info(f"Answered call from {name}({link_id}).")
        return link

    def on_user_disconnected(self, link_id: str, name: str = "") -> Optional[PeerLink]:
        return self.close_link(link_id)

    def close_link(self, link_id: str, handle: Optional[NegotiatedLink] = None) -> Optional[PeerLink]:
        with self.session.locked():
            link = self.session.pop_link(link_id, handle)
            if link is None:
                return None
            link.state = LinkState.CLOSED
            self.grid.remove(link_id)
        logger.info(f"Link to {link.name}({link_id}) closed.")
        # our own close callback finds the link already gone
        link.handle.close()
        return link

    def close_all(self):
        for link in self.session.links():
            self.close_link(link.link_id)

    def toggle_video(self) -> Optional[bool]:
        return self._toggle("video")

    def toggle_audio(self) -> Optional[bool]:
        return self._toggle("audio")

    def _toggle(self, kind: str) -> Optional[bool]:
        media = self.session.local_media_handle()
        if media is None:
            return None
        tracks = [t for t in media.tracks if t.kind == kind]
        enabled = not all(t.enabled for t in tracks) if tracks else True
        media.set_enabled(kind, enabled)
        return enabled

    def _track(self, link: PeerLink):
        with self.session.locked():
            previous = self.session.put_link(link)
            replaced = previous is not None and previous.handle is not link.handle
            if replaced:
                self.grid.remove(previous.link_id)
                previous.state = LinkState.CLOSED
        if replaced:
            previous.handle.close()
        handle = link.handle
        handle.on_stream(lambda stream: self._on_remote_stream(link.link_id, handle, stream))
        handle.on_close(lambda: self.close_link(link.link_id, handle))

    def _on_remote_stream(self, link_id: str, handle: NegotiatedLink, stream):
        # a close on another thread waits until the surface is in place, then removes it
        with self.session.locked():
            link = self.session.get_link(link_id)
            if link is None or link.handle is not handle:
                logger.debug(f"Stream for stale link {link_id} ignored.")
                return
            link.stream = stream
            link.state = LinkState.ESTABLISHED
            self.grid.attach(link_id, stream, label=link.name)
