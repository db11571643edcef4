"""Local media handles and the video surfaces bound to link ids."""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class MediaCaptureError(Exception):
    """Camera/microphone access was denied or failed."""


@dataclass
class MediaTrack:
    kind: str  # "audio" or "video"
    enabled: bool = True
    source: Any = None


@dataclass
class MediaHandle:
    """A captured local stream: the tracks handed to each negotiated link."""

    tracks: List[MediaTrack] = field(default_factory=list)

    def video_tracks(self) -> List[MediaTrack]:
        return [t for t in self.tracks if t.kind == "video"]

    def audio_tracks(self) -> List[MediaTrack]:
        return [t for t in self.tracks if t.kind == "audio"]

    def set_enabled(self, kind: str, enabled: bool):
        for track in self.tracks:
            if track.kind == kind:
                track.enabled = enabled


@dataclass
class VideoSurface:
    link_id: str
    stream: Any
    label: str
    muted: bool = False


class VideoGrid:
    """Holds at most one VideoSurface per link id.

    Attaching a stream for a link id that already has a surface swaps the
    stream and label on that surface instead of adding a second one.
    """

    def __init__(self):
        self._surfaces: Dict[str, VideoSurface] = {}
        self._lock = threading.Lock()

    def attach(self, link_id: str, stream, label: Optional[str] = None, muted: bool = False) -> VideoSurface:
        with self._lock:
            surface = self._surfaces.get(link_id)
            if surface is not None:
                surface.stream = stream
                surface.label = label or surface.label
                return surface
            surface = VideoSurface(link_id=link_id, stream=stream, label=label or "Participant", muted=muted)
            self._surfaces[link_id] = surface
        logger.debug(f"Video surface added for {link_id}. Total: {len(self)}")
        return surface

    def remove(self, link_id: str) -> Optional[VideoSurface]:
        with self._lock:
            return self._surfaces.pop(link_id, None)

    def get(self, link_id: str) -> Optional[VideoSurface]:
        return self._surfaces.get(link_id)

    def clear(self):
        with self._lock:
            self._surfaces.clear()

    @property
    def single_user(self) -> bool:
        """Layout hint: only one tile is on screen."""
        return len(self._surfaces) == 1

    def __contains__(self, link_id) -> bool:
        return link_id in self._surfaces

    def __iter__(self):
        return iter(list(self._surfaces.values()))

    def __len__(self) -> int:
        return len(self._surfaces)
