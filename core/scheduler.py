# core/scheduler.py
import threading
import time
import traceback
from typing import Callable, Optional

from .debug import debug_log, log


class SystemClock:
    def now_ms(self) -> float:
        return time.time() * 1000.0

    def wait(self, seconds: float, stop_event: threading.Event) -> bool:
        """Block for up to `seconds`; True when woken by stop_event."""
        return stop_event.wait(seconds)


class PollScheduler:
    """
    Runs `tick` on a fixed interval until stopped. A tick always finishes
    before the next one is scheduled.
    """

    def __init__(
        self,
        tick: Callable[[], None],
        interval_seconds: float,
        clock: Optional[SystemClock] = None,
    ):
        self._tick = tick
        self.interval_seconds = interval_seconds
        self.clock = clock or SystemClock()
        self._stop = threading.Event()
        self.ticks = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def sleep(self, seconds: float) -> bool:
        """Interruptible sleep on the scheduler clock; True if stopped."""
        return self.clock.wait(seconds, self._stop)

    def run_once(self) -> None:
        try:
            self._tick()
        except Exception as e:
            log("Music", f"Poll failed: {e}")
            debug_log(traceback.format_exc())
        self.ticks += 1

    def run(self, max_ticks: Optional[int] = None) -> None:
        while not self._stop.is_set():
            self.run_once()
            if max_ticks is not None and self.ticks >= max_ticks:
                return
            if self._stop.is_set():
                return
            if self.clock.wait(self.interval_seconds, self._stop):
                return
