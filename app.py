import signal
import sys
from typing import Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication, QSystemTrayIcon

from core import debug
from core.config import ConfigError, Settings, load_settings, setup_hint
from core.sources import load_media_query
from ui.tray import APP_NAME, PresenceTray, load_tray_icon
from ui.worker import PresenceWorker


def main(settings: Optional[Settings] = None) -> int:
    if settings is None:
        try:
            settings = load_settings()
        except ConfigError as e:
            print(f"[Config] {e}")
            print(setup_hint())
            return 1
        debug.set_debug(settings.debug)

    media_query = load_media_query()
    if not media_query:
        print("[Music] Unsupported OS or missing Windows dependency (winsdk).")
        return 1

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setWindowIcon(load_tray_icon())
    app.setQuitOnLastWindowClosed(False)

    if not QSystemTrayIcon.isSystemTrayAvailable():
        print("[Tray] System tray is not available on this desktop.")
        return 1

    worker = PresenceWorker(settings, media_query)
    tray = PresenceTray(worker)
    app.aboutToQuit.connect(tray.stop)

    # Qt blocks Python signal handlers unless the interpreter runs now and then.
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    signal.signal(signal.SIGTERM, lambda *_: app.quit())
    wakeup = QTimer()
    wakeup.timeout.connect(lambda: None)
    wakeup.start(250)

    tray.show()
    worker.start()
    print("[Tray] System tray ready")
    print("[Music] Monitoring Telegram / YouTube Music playback…")
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
