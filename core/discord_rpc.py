#core/discord_rpc.py
import time
from typing import Any, Callable, Dict, Optional

from pypresence import Presence
from pypresence.exceptions import PyPresenceException
from pypresence.types import ActivityType

from .debug import debug_log, log
from .models import PresenceState
from .scheduler import SystemClock


# Discord rejects fields shorter than 2 characters.
MIN_FIELD_LENGTH = 2
FIELD_LIMITS = {
    "details": 128,
    "state": 128,
    "large_text": 127,
    "small_text": 127,
}

RPC_ERRORS = (PyPresenceException, OSError, RuntimeError)


def fit_text(text: str, limit: int) -> str:
    if len(text) < MIN_FIELD_LENGTH:
        text = text.ljust(MIN_FIELD_LENGTH)
    return text[:limit]


def build_payload(state: PresenceState) -> Dict[str, Any]:
    # Text fields arrive already fitted by build_state.
    payload = {
        "activity_type": ActivityType.LISTENING,
        "details": state.title,
        "state": state.subtitle,
        "start": state.start_timestamp // 1000,
        "large_image": state.large_image,
        "large_text": state.large_text,
        "small_image": state.small_image,
        "small_text": state.small_text,
    }
    if state.end_timestamp is not None:
        payload["end"] = state.end_timestamp // 1000
    return payload


def _close_quietly(rpc) -> None:
    # A half-open client can fail in close() with arbitrary errors.
    try:
        rpc.close()
    except Exception as e:
        debug_log(f"RPC close failed: {e}")


def describe_user(user: Optional[dict]) -> str:
    user = user or {}
    name = user.get("username")
    if not name:
        return "Unknown"
    disc = user.get("discriminator", "")
    return f"{name}#{disc}" if disc and disc != "0" else name


class DiscordPresence:
    """
    pypresence client with a connectivity flag. Calls made while
    disconnected are skipped; pipe errors flip the flag and notify
    `on_connection_changed`.
    """

    def __init__(
        self,
        client_id: str,
        rpc_timeout: float = 5.0,
        reconnect_seconds: float = 30.0,
        clock: Optional[SystemClock] = None,
        presence_factory: Optional[Callable[..., Any]] = None,
    ):
        self.client_id = client_id
        self.rpc_timeout = rpc_timeout
        self.reconnect_seconds = reconnect_seconds
        self.clock = clock or SystemClock()
        self._presence_factory = presence_factory or Presence
        self._rpc = None
        self._last_attempt_ms: Optional[float] = None
        self.connected = False
        self.on_connection_changed: Optional[Callable[[bool], None]] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.clear_activity()
        self.close()
        return False

    def _set_connected(self, value: bool) -> None:
        if value == self.connected:
            return
        self.connected = value
        if self.on_connection_changed:
            self.on_connection_changed(value)

    def connect(self) -> None:
        """Connect to the local Discord client; raises on failure."""
        self._last_attempt_ms = self.clock.now_ms()
        rpc = self._presence_factory(
            self.client_id,
            connection_timeout=self.rpc_timeout,
            response_timeout=self.rpc_timeout,
        )
        try:
            rpc.connect()
            # Give Discord time to send READY payload
            time.sleep(0.3)
        except BaseException:
            _close_quietly(rpc)
            raise

        self._rpc = rpc
        log("RPC", f"Connected as {describe_user(getattr(rpc, 'user', None))}")
        self._set_connected(True)

    def try_reconnect(self) -> bool:
        if self.connected:
            return True
        now = self.clock.now_ms()
        if (
            self._last_attempt_ms is not None
            and now - self._last_attempt_ms < self.reconnect_seconds * 1000.0
        ):
            return False
        try:
            self.connect()
        except RPC_ERRORS as e:
            log("RPC", f"Reconnect failed: {e}. Retrying in {self.reconnect_seconds:g}s")
            return False
        return True

    def set_activity(self, state: PresenceState) -> bool:
        if not self.connected or self._rpc is None:
            return False
        try:
            self._rpc.update(**build_payload(state))
        except RPC_ERRORS as e:
            self._lost(e)
            return False
        return True

    def clear_activity(self) -> bool:
        if not self.connected or self._rpc is None:
            return False
        try:
            self._rpc.clear()
        except RPC_ERRORS as e:
            self._lost(e)
            return False
        return True

    def _lost(self, error: Exception) -> None:
        log("RPC", f"Disconnected from Discord: {error}")
        self._drop_pipe()
        self._set_connected(False)

    def _drop_pipe(self) -> None:
        rpc, self._rpc = self._rpc, None
        if rpc is not None:
            _close_quietly(rpc)

    def close(self) -> None:
        self._drop_pipe()
        self._set_connected(False)
