# core/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Tuple


@dataclass(frozen=True)
class SourceIdentity:
    bundle_id: Optional[str] = None
    parent_bundle_id: Optional[str] = None
    process_id: Optional[int] = None

    @property
    def effective_bundle_id(self) -> Optional[str]:
        return self.parent_bundle_id or self.bundle_id


@dataclass(frozen=True)
class NowPlayingSnapshot:
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    duration_seconds: Optional[float] = None
    elapsed_seconds: Optional[float] = None  # valid as of sampled_at_ms
    sampled_at_ms: Optional[float] = None
    playback_rate: Optional[float] = None
    source_identity: Optional[SourceIdentity] = None
    is_reported_playing: bool = False

    @property
    def is_actively_playing(self) -> bool:
        return (
            self.is_reported_playing
            and self.playback_rate is not None
            and self.playback_rate > 0
        )

    @property
    def track_identity(self) -> "TrackIdentity":
        return TrackIdentity(self.title, self.artist, self.album)


class TrackIdentity(NamedTuple):
    title: Optional[str]
    artist: Optional[str]
    album: Optional[str]


class MediaSource(Enum):
    TELEGRAM = "telegram"
    YOUTUBE_MUSIC = "youtube_music"
    NONE = "none"

    @property
    def label(self) -> str:
        return _SOURCE_LABELS[self]

    @property
    def asset_key(self) -> str:
        # Image key uploaded under Rich Presence > Art Assets
        return self.value


_SOURCE_LABELS = {
    MediaSource.TELEGRAM: "Telegram",
    MediaSource.YOUTUBE_MUSIC: "YouTube Music",
    MediaSource.NONE: "Nothing",
}


@dataclass(frozen=True)
class SearchResult:
    track_name: str = ""
    artist_name: str = ""
    artwork_urls: Tuple[str, ...] = field(default_factory=tuple)  # best first


@dataclass(frozen=True)
class PresenceState:
    title: str
    subtitle: str
    start_timestamp: int  # epoch ms
    end_timestamp: Optional[int]
    large_image: str
    large_text: str
    small_image: str
    small_text: str


class ControlEvent(Enum):
    PAUSE = "pause"
    RESUME = "resume"
    QUIT = "quit"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
