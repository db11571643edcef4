"""Interface to the peer-to-peer media negotiation library.

Offer/answer/ICE handling lives outside this package. An adapter for a
concrete library implements these two classes; PeerLinkManager only sees
them.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from .media import MediaHandle


class NegotiatedLink(ABC):
    """One media link to a remote participant, outbound or inbound."""

    #: link id of the remote participant
    peer: str
    #: metadata the initiating side attached, e.g. ``{"name": "Ann"}``
    metadata: Dict[str, Any]

    @abstractmethod
    def answer(self, media: Optional[MediaHandle]):
        """Accept an inbound link, sending ``media`` (None to only receive)."""

    @abstractmethod
    def on_stream(self, callback: Callable[[Any], None]):
        """Call ``callback(stream)`` each time a remote stream arrives."""

    @abstractmethod
    def on_close(self, callback: Callable[[], None]):
        """Call ``callback()`` once the link is closed from either side."""

    @abstractmethod
    def close(self):
        pass


class Negotiator(ABC):

    @abstractmethod
    def initiate_link(self, remote_link_id: str, media: MediaHandle, metadata: Dict[str, Any]) -> NegotiatedLink:
        pass

    @abstractmethod
    def on_incoming(self, callback: Callable[[NegotiatedLink], None]):
        """Call ``callback(link)`` for every inbound link request."""
