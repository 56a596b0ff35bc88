# core/sources.py
import sys
from typing import Callable, Mapping, Optional

import psutil

from cachetools import TTLCache

from .cache import ttl_cache
from .debug import debug_log, log
from .models import MediaSource, NowPlayingSnapshot


# Compared case-insensitively against the effective bundle id.
KNOWN_BUNDLE_IDS = {
    "ru.keepcoder.telegram": MediaSource.TELEGRAM,  # Telegram for macOS (native)
    "org.telegram.desktop": MediaSource.TELEGRAM,  # Telegram Desktop
    "com.tdesktop.telegram": MediaSource.TELEGRAM,
    "telegram.telegramdesktop": MediaSource.TELEGRAM,  # Windows AUMID
    "com.github.th-ch.youtube-music": MediaSource.YOUTUBE_MUSIC,
    "com.google.chrome.app.cinhimbnkkaeohfgghhklpknlkffjgod": MediaSource.YOUTUBE_MUSIC,
}

# Generic wrappers shared by several players; the process command line tells
# them apart.
AMBIGUOUS_LOADERS = {
    "com.github.electron": MediaSource.YOUTUBE_MUSIC,
}

YOUTUBE_MUSIC_MARKER = "youtube-music"


class CommandLineLookup:
    """True when the process command line mentions `marker`."""

    def __init__(self, marker: str = YOUTUBE_MUSIC_MARKER):
        self.marker = marker.lower()

    def __call__(self, pid: int) -> bool:
        cmdline = " ".join(psutil.Process(pid).cmdline())
        return self.marker in cmdline.lower()


class SourceClassifier:
    def __init__(
        self,
        lookup: Optional[Callable[[int], bool]] = None,
        cache: Optional[TTLCache] = None,
        known_bundle_ids: Mapping[str, MediaSource] = KNOWN_BUNDLE_IDS,
        ambiguous_loaders: Mapping[str, MediaSource] = AMBIGUOUS_LOADERS,
    ):
        self.lookup = lookup or CommandLineLookup()
        self.cache = cache if cache is not None else ttl_cache(30.0)
        self.known_bundle_ids = {k.lower(): v for k, v in known_bundle_ids.items()}
        self.ambiguous_loaders = {k.lower(): v for k, v in ambiguous_loaders.items()}

    def classify(self, snapshot: NowPlayingSnapshot) -> MediaSource:
        identity = snapshot.source_identity
        if identity is None:
            return MediaSource.NONE

        bundle_id = identity.effective_bundle_id
        if not bundle_id:
            return MediaSource.NONE
        bundle_id = bundle_id.lower()

        source = self.known_bundle_ids.get(bundle_id)
        if source is not None:
            return source

        source = self.ambiguous_loaders.get(bundle_id)
        if source is not None and identity.process_id is not None:
            if self._loader_matches(identity.process_id):
                return source

        return MediaSource.NONE

    def _loader_matches(self, pid: int) -> bool:
        if pid in self.cache:
            return self.cache[pid]

        try:
            matched = bool(self.lookup(pid))
        except (psutil.Error, OSError) as e:
            # Fail closed; the next tick retries.
            log("Music", f"Process lookup for pid {pid} failed: {e}")
            return False

        debug_log(f"pid {pid} loader match: {matched}")
        self.cache[pid] = matched
        return matched


def load_media_query() -> Optional[Callable[..., dict]]:
    if sys.platform == "win32":
        from .music_windows import MediaManager, get_now_playing

        return get_now_playing if MediaManager is not None else None
    if sys.platform == "darwin":
        from .music_macos import get_now_playing

        return get_now_playing
    return None
