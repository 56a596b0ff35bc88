# ui/worker.py
from PySide6.QtCore import QThread, Signal

from core.config import Settings
from core.debug import debug_log
from core.discord_rpc import RPC_ERRORS, DiscordPresence
from core.models import ControlEvent
from core.presence import build_controller
from core.scheduler import PollScheduler, SystemClock


class PresenceWorker(QThread):
    """Owns the Discord pipe and the poll loop; nothing else touches them."""

    status = Signal(str)

    def __init__(self, settings: Settings, media_query, parent=None):
        super().__init__(parent)
        self.settings = settings
        clock = SystemClock()
        self.client = DiscordPresence(
            settings.client_id,
            rpc_timeout=settings.rpc_timeout,
            reconnect_seconds=settings.reconnect_seconds,
            clock=clock,
        )
        self.controller = build_controller(
            settings,
            media_query,
            self.client,
            clock,
            on_quit=self._on_quit,
            on_status=self.status.emit,
        )
        self.scheduler = PollScheduler(self.controller.tick, settings.poll_seconds, clock)

    def post(self, event: ControlEvent) -> None:
        self.controller.post(event)

    def stop(self):
        self.controller.post(ControlEvent.QUIT)
        self.scheduler.stop()

    def _on_quit(self):
        self.scheduler.stop()

    def _connect_with_retry(self) -> bool:
        while not self.scheduler.stopped:
            try:
                self.status.emit("Connecting to Discord…")
                self.client.connect()
                return True
            except RPC_ERRORS as e:
                delay = self.settings.reconnect_seconds
                self.status.emit(f"Discord connect failed, retrying in {delay:g}s")
                debug_log(f"Discord connect failed: {e}")
                if self.scheduler.sleep(delay):
                    return False
        return False

    def run(self):
        try:
            if not self._connect_with_retry():
                return
            self.scheduler.run()
        finally:
            self.controller.shutdown()
