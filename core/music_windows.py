# core/music_windows.py
import asyncio
from typing import Any, Dict, Optional

from .debug import debug_log
from .now_playing import (
    INFO_ALBUM,
    INFO_ARTIST,
    INFO_DURATION,
    INFO_ELAPSED,
    INFO_RATE,
    INFO_TIMESTAMP,
    INFO_TITLE,
)

try:
    from winsdk.windows.media.control import (
        GlobalSystemMediaTransportControlsSessionManager as MediaManager,
        GlobalSystemMediaTransportControlsSessionPlaybackStatus as PlaybackStatus,
    )
except Exception:  # winsdk not installed or not on Windows
    MediaManager = None
    PlaybackStatus = None


def _timespan_seconds(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.total_seconds())
    except Exception:
        pass
    try:
        # Some WinRT bindings expose a "duration" in 100ns ticks.
        return float(value.duration) / 10_000_000.0
    except Exception:
        return None


def _datetime_ms(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.timestamp()) * 1000.0
    except Exception:
        return None


async def _get_now_playing_async() -> Dict[str, Any]:
    manager = await MediaManager.request_async()
    session = manager.get_current_session()
    if session is None:
        return {"isPlaying": False, "client": None, "info": {}}

    try:
        app_id = session.source_app_user_model_id or None
    except Exception:
        app_id = None

    info: Dict[str, Any] = {}
    try:
        props = await session.try_get_media_properties_async()
        info[INFO_TITLE] = getattr(props, "title", None)
        info[INFO_ARTIST] = getattr(props, "artist", None)
        info[INFO_ALBUM] = getattr(props, "album_title", None)
    except Exception as e:
        debug_log(f"Media properties unavailable: {e}")

    is_playing = False
    try:
        playback = session.get_playback_info()
        is_playing = playback.playback_status == PlaybackStatus.PLAYING
        rate = playback.playback_rate
        # GSMTC leaves the rate empty for most players; status is authoritative.
        if rate is None:
            rate = 1.0 if is_playing else 0.0
        info[INFO_RATE] = rate
    except Exception as e:
        debug_log(f"Playback info unavailable: {e}")

    try:
        timeline = session.get_timeline_properties()
        info[INFO_DURATION] = _timespan_seconds(timeline.end_time)
        info[INFO_ELAPSED] = _timespan_seconds(timeline.position)
        info[INFO_TIMESTAMP] = _datetime_ms(timeline.last_updated_time)
    except Exception as e:
        debug_log(f"Timeline unavailable: {e}")

    return {
        "isPlaying": is_playing,
        "client": {"bundleIdentifier": app_id} if app_id else None,
        "info": {k: v for k, v in info.items() if v is not None},
    }


def get_now_playing(timeout: float = 5.0) -> Dict[str, Any]:
    if MediaManager is None:
        return {"error": "winsdk is not available"}

    async def _bounded():
        return await asyncio.wait_for(_get_now_playing_async(), timeout)

    try:
        return asyncio.run(_bounded())
    except asyncio.TimeoutError:
        return {"error": f"media session query timed out after {timeout:g}s"}
    except Exception as e:
        return {"error": f"media session query failed: {e}"}
