import pytest

from core.models import PresenceState


T0 = 1_700_000_000_000.0


class FakeClock:
    def __init__(self, now_ms: float = T0):
        self.now = now_ms
        self.waits = []

    def now_ms(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds * 1000.0

    def wait(self, seconds, stop_event) -> bool:
        self.waits.append(seconds)
        self.advance(seconds)
        return stop_event.is_set()


class FakeClient:
    def __init__(self, connected: bool = True):
        self.connected = connected
        self.on_connection_changed = None
        self.pushed: list[PresenceState] = []
        self.clear_calls = 0
        self.reconnect_calls = 0
        self.reconnect_result = False
        self.closed = False

    def set_activity(self, state: PresenceState) -> bool:
        if not self.connected:
            return False
        self.pushed.append(state)
        return True

    def clear_activity(self) -> bool:
        if not self.connected:
            return False
        self.clear_calls += 1
        return True

    def try_reconnect(self) -> bool:
        self.reconnect_calls += 1
        if self.reconnect_result:
            self.connected = True
        return self.connected

    def close(self) -> None:
        self.closed = True
        self.connected = False


class FakeResolver:
    def __init__(self, url=None):
        self.url = url
        self.calls = []

    def resolve(self, title, artist):
        self.calls.append((title, artist))
        return self.url


def raw_now_playing(
    title="Blinding Lights",
    artist="The Weeknd",
    album="After Hours",
    duration=200,
    elapsed=10,
    timestamp=T0,
    rate=1,
    playing=True,
    bundle_id="ru.keepcoder.Telegram",
    parent=None,
    pid=None,
):
    info = {
        "kMRMediaRemoteNowPlayingInfoTitle": title,
        "kMRMediaRemoteNowPlayingInfoArtist": artist,
        "kMRMediaRemoteNowPlayingInfoAlbum": album,
        "kMRMediaRemoteNowPlayingInfoDuration": duration,
        "kMRMediaRemoteNowPlayingInfoElapsedTime": elapsed,
        "kMRMediaRemoteNowPlayingInfoTimestamp": timestamp,
        "kMRMediaRemoteNowPlayingInfoPlaybackRate": rate,
    }
    return {
        "isPlaying": playing,
        "client": {
            "bundleIdentifier": bundle_id,
            "parentApplicationBundleIdentifier": parent,
            "processIdentifier": pid,
        },
        "info": {k: v for k, v in info.items() if v is not None},
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client():
    return FakeClient()
