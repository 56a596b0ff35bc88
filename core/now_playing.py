# core/now_playing.py
import math
from typing import Any, Mapping, Optional

from .debug import log
from .models import NowPlayingSnapshot, SourceIdentity


INFO_TITLE = "kMRMediaRemoteNowPlayingInfoTitle"
INFO_ARTIST = "kMRMediaRemoteNowPlayingInfoArtist"
INFO_ALBUM = "kMRMediaRemoteNowPlayingInfoAlbum"
INFO_DURATION = "kMRMediaRemoteNowPlayingInfoDuration"
INFO_ELAPSED = "kMRMediaRemoteNowPlayingInfoElapsedTime"
INFO_RATE = "kMRMediaRemoteNowPlayingInfoPlaybackRate"
INFO_TIMESTAMP = "kMRMediaRemoteNowPlayingInfoTimestamp"

EMPTY_SNAPSHOT = NowPlayingSnapshot()


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value if value.strip() else None


def _number(value: Any, non_negative: bool = False) -> Optional[float]:
    # bool is an int subclass; JSON true/false is never a number here.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    if non_negative and value < 0:
        return None
    return value


def _pid(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None or number <= 0 or number != int(number):
        return None
    return int(number)


def _identity(client: Any) -> Optional[SourceIdentity]:
    if not isinstance(client, Mapping):
        return None
    identity = SourceIdentity(
        bundle_id=_text(client.get("bundleIdentifier")),
        parent_bundle_id=_text(client.get("parentApplicationBundleIdentifier")),
        process_id=_pid(client.get("processIdentifier")),
    )
    if identity.bundle_id is None and identity.parent_bundle_id is None:
        return None
    return identity


def normalize_snapshot(raw: Any) -> NowPlayingSnapshot:
    """
    Turn a raw now-playing dump into a NowPlayingSnapshot.

    Anything missing or malformed becomes None. A failed query (None, not a
    mapping, or carrying an "error" key) yields the empty snapshot.
    """
    if raw is None:
        log("Music", "Now Playing query returned nothing")
        return EMPTY_SNAPSHOT
    if not isinstance(raw, Mapping):
        log("Music", f"Unexpected Now Playing payload: {type(raw).__name__}")
        return EMPTY_SNAPSHOT
    if raw.get("error"):
        log("Music", f"Now Playing query failed: {raw.get('error')}")
        return EMPTY_SNAPSHOT

    info = raw.get("info")
    if not isinstance(info, Mapping):
        info = {}

    return NowPlayingSnapshot(
        title=_text(info.get(INFO_TITLE)),
        artist=_text(info.get(INFO_ARTIST)),
        album=_text(info.get(INFO_ALBUM)),
        duration_seconds=_number(info.get(INFO_DURATION), non_negative=True),
        elapsed_seconds=_number(info.get(INFO_ELAPSED), non_negative=True),
        sampled_at_ms=_number(info.get(INFO_TIMESTAMP)),
        playback_rate=_number(info.get(INFO_RATE)),
        source_identity=_identity(raw.get("client")),
        is_reported_playing=raw.get("isPlaying") is True,
    )
