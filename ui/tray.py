# ui/tray.py
from PySide6.QtCore import QByteArray, QObject
from PySide6.QtGui import QIcon, QPixmap
from PySide6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from core.models import ControlEvent
from .worker import PresenceWorker

APP_NAME = "Music Discord Presence"

# 44x44 white-on-transparent music note; macOS tints it as a template image.
ICON_PNG_BASE64 = (
    b"iVBORw0KGgoAAAANSUhEUgAAACwAAAAsCAYAAAAehFoBAAAAAXNSR0IArs4c6QAAAHhlWElmTU0AKgAAAAgABAEaAAUAAAABAAAAPgEbAAUAAAABAAAARgEoAAMAAAABAAIAAIdpAAQAAAABAAAATgAAAAAAAACQAAAAAQAAAJAAAAABAAOgAQADAAAAAQABAACgAgAEAAAAAQAAACygAwAEAAAAAQAAACwAAAAALuNfAgAAAAlwSFlzAAAWJQAAFiUBSVIk8AAAASVJREFUWAnt1uEKgzAMBGAde/9X3jwkEEosF63mCvbHWrXq1zODLsvb3gTmTmC9g//bWvTcdWvR+cy5T2by1blHC8k89/KKo5cxsLNpP5qwXxyzKD/fxmUJGwB9Ju2yhD04k7YEGHgWLVESPm2MeyUik7BH99KWTNjj27QlE/bgNm15sMdjLA+eriSmS7gU3H7eFtMeR/Mfr2Eg0Foce/w42GA7Ow8vA3u4jZm+HAxklPZR2UiALdkIbteslwIb6ihdXJcEGzzqpwN/o1Uw59pdFHPPiDlpcBXUFpsqiWos0DRYAUuDVbAUWAlLgTFJqdE1rIJ+wXd/CWrnP+KP19vQZBZJgfHAK+hRWDho8Fn0SGwanEWPxp4C4ya0XoncAd3fOuHvH08dWFF9sJxuAAAAAElFTkSuQmCC"
)


def load_tray_icon() -> QIcon:
    pixmap = QPixmap()
    pixmap.loadFromData(QByteArray.fromBase64(QByteArray(ICON_PNG_BASE64)), "PNG")
    icon = QIcon(pixmap)
    icon.setIsMask(True)
    return icon


class PresenceTray(QObject):
    """Menu bar icon. Menu actions become ControlEvents for the worker."""

    def __init__(self, worker: PresenceWorker, parent=None):
        super().__init__(parent)
        self.worker = worker
        self.paused = False
        self._stopped = False

        tray = QSystemTrayIcon(self)
        tray.setIcon(load_tray_icon())
        tray.setToolTip(APP_NAME)

        menu = QMenu()
        self.action_status = menu.addAction("Telegram / YouTube Music → Discord")
        self.action_status.setEnabled(False)
        menu.addSeparator()
        self.action_pause = menu.addAction("Pause")
        menu.addSeparator()
        action_quit = menu.addAction("Quit")

        self.action_pause.triggered.connect(self._toggle_pause)
        action_quit.triggered.connect(self._quit)
        worker.status.connect(self._on_worker_status)

        tray.setContextMenu(menu)
        self._menu = menu
        self._tray = tray

    def show(self):
        self._tray.show()

    def _on_worker_status(self, msg: str):
        self.action_status.setText(msg)

    def _toggle_pause(self):
        if self.paused:
            self.paused = False
            self.worker.post(ControlEvent.RESUME)
            self.action_pause.setText("Pause")
            self._tray.setToolTip(APP_NAME)
        else:
            self.paused = True
            self.worker.post(ControlEvent.PAUSE)
            self.action_pause.setText("Resume")
            self._tray.setToolTip(f"{APP_NAME} (Paused)")

    def _quit(self):
        self.stop()
        app = QApplication.instance()
        if app:
            app.quit()

    def stop(self):
        if self._stopped:
            return
        self._stopped = True
        self.worker.stop()
        if self.worker.isRunning():
            # The tick in flight (media query, artwork lookup) finishes first,
            # then shutdown clears the activity and closes the pipe.
            self.worker.wait()
        self._tray.hide()
