# core/presence.py
import queue
from typing import Any, Callable, Optional

from .artwork_lookup import ArtworkResolver, DeezerProvider, ITunesProvider
from .cache import ttl_cache
from .debug import debug_log, log
from .discord_rpc import FIELD_LIMITS, DiscordPresence, fit_text
from .elapsed import format_duration, reconstruct_window
from .models import (
    ControlEvent,
    MediaSource,
    NowPlayingSnapshot,
    PresenceState,
    TrackIdentity,
)
from .now_playing import normalize_snapshot
from .scheduler import SystemClock
from .sources import SourceClassifier


class PresenceController:
    """
    Presence lifecycle: cleared -> active -> cleared.

    Everything here runs on the polling thread. Other threads talk to it
    through post(), which is drained at the start of every tick.
    """

    def __init__(
        self,
        media_query: Callable[[], Any],
        client: DiscordPresence,
        classifier: Optional[SourceClassifier] = None,
        resolver: Optional[ArtworkResolver] = None,
        clock: Optional[SystemClock] = None,
        on_quit: Optional[Callable[[], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self.media_query = media_query
        self.client = client
        self.classifier = classifier or SourceClassifier()
        self.resolver = resolver or ArtworkResolver()
        self.clock = clock or SystemClock()
        self.on_quit = on_quit
        self.on_status = on_status

        self._inbox: "queue.Queue[ControlEvent]" = queue.Queue()
        self.paused = False
        self.quitting = False
        self.active = False
        self.last_track: Optional[TrackIdentity] = None
        self.track_start_ms: Optional[float] = None
        self.last_state: Optional[PresenceState] = None
        self._status = ""

        client.on_connection_changed = self._on_connection_changed

    # inbound messages

    def post(self, event: ControlEvent) -> None:
        self._inbox.put(event)

    def _on_connection_changed(self, connected: bool) -> None:
        self.post(ControlEvent.CONNECTED if connected else ControlEvent.DISCONNECTED)

    def _drain(self) -> None:
        while True:
            try:
                event = self._inbox.get_nowait()
            except queue.Empty:
                return
            self._handle(event)

    def _handle(self, event: ControlEvent) -> None:
        if event is ControlEvent.PAUSE:
            if not self.paused:
                self.paused = True
                self._clear()
                log("Music", "Paused")
                self._report("Paused")
        elif event is ControlEvent.RESUME:
            if self.paused:
                self.paused = False
                log("Music", "Resumed")
                self._report("Resumed")
        elif event is ControlEvent.QUIT:
            if not self.quitting:
                self.quitting = True
                self._clear()
                if self.on_quit:
                    self.on_quit()
        elif event is ControlEvent.CONNECTED:
            self._report("Discord connected")
        elif event is ControlEvent.DISCONNECTED:
            # Discord drops the activity with the pipe.
            self.active = False
            self._reset_track()
            self._report("Discord disconnected")

    # polling

    def tick(self) -> None:
        self._drain()
        if self.paused or self.quitting:
            return

        if not self.client.connected and not self.client.try_reconnect():
            return

        snapshot = normalize_snapshot(self.media_query())
        source = self.classifier.classify(snapshot)

        if source is MediaSource.NONE or not snapshot.title or not snapshot.is_actively_playing:
            if self.active:
                log("Music", "Playback stopped or paused")
            self._clear()
            self._report("Waiting for music")
            return

        self._push(snapshot, source)

    def _push(self, snapshot: NowPlayingSnapshot, source: MediaSource) -> None:
        now = self.clock.now_ms()
        track = snapshot.track_identity
        if track != self.last_track:
            self.last_track = track
            self.track_start_ms = now
            log("Music", f"Now Playing: {snapshot.title}")
            if snapshot.artist:
                log("Music", f"   Artist: {snapshot.artist}")
            if snapshot.album:
                log("Music", f"   Album: {snapshot.album}")

        artwork_url = self.resolver.resolve(snapshot.title, snapshot.artist)
        start, end = reconstruct_window(
            snapshot.elapsed_seconds,
            snapshot.sampled_at_ms,
            snapshot.duration_seconds,
            now,
            self.track_start_ms,
        )

        state = build_state(snapshot, source, artwork_url, start, end)
        self.active = self.client.set_activity(state)
        if self.active:
            self.last_state = state
            self._report(f"Playing: {snapshot.title}")
        debug_log(f"Presence push ok={self.active}: {state}")

    def _clear(self) -> None:
        if self.active:
            self.client.clear_activity()
            self.active = False
        self.last_state = None
        self._reset_track()

    def _reset_track(self) -> None:
        self.last_track = None
        self.track_start_ms = None

    def _report(self, status: str) -> None:
        if status == self._status:
            return
        self._status = status
        if self.on_status:
            self.on_status(status)

    def shutdown(self) -> None:
        self._drain()
        self._clear()
        self.client.close()


def build_state(
    snapshot: NowPlayingSnapshot,
    source: MediaSource,
    artwork_url: Optional[str],
    start: int,
    end: Optional[int],
) -> PresenceState:
    subtitle = snapshot.artist or "Unknown Artist"
    if snapshot.duration_seconds:
        subtitle = f"{subtitle} • {format_duration(snapshot.duration_seconds)}"

    return PresenceState(
        title=fit_text(snapshot.title or "Unknown Track", FIELD_LIMITS["details"]),
        subtitle=fit_text(subtitle, FIELD_LIMITS["state"]),
        start_timestamp=start,
        end_timestamp=end,
        large_image=artwork_url or source.asset_key,
        large_text=fit_text(snapshot.album or snapshot.title or source.label, FIELD_LIMITS["large_text"]),
        small_image=source.asset_key,
        small_text=fit_text(f"Playing via {source.label}", FIELD_LIMITS["small_text"]),
    )


def build_controller(settings, media_query, client: DiscordPresence, clock: SystemClock, **kwargs) -> PresenceController:
    return PresenceController(
        media_query=lambda: media_query(timeout=settings.media_query_timeout),
        client=client,
        classifier=SourceClassifier(cache=ttl_cache(settings.process_lookup_ttl, clock)),
        resolver=ArtworkResolver(
            providers=[
                DeezerProvider(timeout=settings.http_timeout),
                ITunesProvider(timeout=settings.http_timeout),
            ]
        ),
        clock=clock,
        **kwargs,
    )
