"""Application entrypoint."""

from __future__ import annotations

import sys

from config import JsonConfigStore
from counter import TasbihCounter, feedback_message, status_message
from errors import describe, is_recoverable
from hotkey import ToggleHotkey
from logger import setup_logger
from matcher import PhraseMatcher
from models import FeedbackKind, SessionStatus
from overlay import CounterOverlay
from recognizer import DashscopeBackend
from session_controller import RecognitionSessionController

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

log = setup_logger()


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_COLORS = {
    SessionStatus.IDLE: "#888888",
    SessionStatus.LISTENING: "#2EAD5B",
    SessionStatus.PROCESSING: "#2E7DAD",
    SessionStatus.ERROR: "#FF8800",
}


class UIBridge(QObject):
    toggle_signal = Signal()
    count_signal = Signal(int)  # counter session at detection time
    status_signal = Signal(str)
    feedback_signal = Signal(str, str)  # kind, detected text
    error_signal = Signal(str, str)  # category, message


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.matcher = PhraseMatcher(self.config_store.get_phrase_dictionary())
        self.counter = TasbihCounter(goal=self.config_store.get_goal())
        self.overlay = CounterOverlay()
        self.ui = UIBridge()
        self.ui.toggle_signal.connect(self.controller_toggle)
        self.ui.count_signal.connect(self._on_count_ui)
        self.ui.status_signal.connect(self._on_status_ui)
        self.ui.feedback_signal.connect(self._on_feedback_ui)
        self.ui.error_signal.connect(self._on_error_ui)

        self.target_phrase = self.config_store.get_target_phrase()
        self.controller = self._build_controller()
        self.hotkey = ToggleHotkey(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_COLORS[SessionStatus.IDLE]))
        self.tray.setToolTip("Dhikr Counter: Ready")
        self._setup_menu()
        self.tray.show()
        self._refresh_overlay()

    def _build_controller(self) -> RecognitionSessionController:
        return RecognitionSessionController(
            backend=DashscopeBackend(api_key=self.config_store.get_api_key()),
            target_phrase=self.target_phrase,
            on_phrase_detected=lambda: self.ui.count_signal.emit(self.counter.session),
            on_status_change=lambda status: self.ui.status_signal.emit(status.value),
            on_feedback=lambda kind, text: self.ui.feedback_signal.emit(kind.value, text),
            on_error=self.ui.error_signal.emit,
            matcher=self.matcher,
            settings=self.config_store.get_session_settings(),
            options=self.config_store.get_recognizer_options(),
        )

    def _setup_menu(self) -> None:
        menu = QMenu()

        toggle_action = QAction("Start / Stop Listening", menu)
        toggle_action.triggered.connect(self.controller_toggle)
        menu.addAction(toggle_action)

        phrase_action = QAction("Choose Dhikr", menu)
        phrase_action.triggered.connect(self._choose_phrase)
        menu.addAction(phrase_action)

        reset_action = QAction("Reset Counter", menu)
        reset_action.triggered.connect(self._reset_counter)
        menu.addAction(reset_action)

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def controller_toggle(self) -> None:
        if not self.controller.is_supported:
            self.overlay.show_feedback("error", "Voice not supported: check microphone, dashscope and API key")
            return
        self.controller.toggle()

    def _replace_controller(self) -> None:
        # The target phrase and backend are fixed for a session's lifetime.
        was_listening = self.controller.is_listening
        self.controller.stop()
        self.controller = self._build_controller()
        if was_listening:
            self.controller.start()

    def _choose_phrase(self) -> None:
        names = list(self.matcher.dictionary)
        current = names.index(self.target_phrase) if self.target_phrase in names else 0
        value, ok = QInputDialog.getItem(None, "Dhikr", "Phrase to count", names, current, False)
        if not ok or value == self.target_phrase:
            return
        self.config_store.set_target_phrase(value)
        self.target_phrase = value
        self.counter.reset()
        self._replace_controller()
        self._refresh_overlay()

    def _reset_counter(self) -> None:
        self.counter.reset()
        self._refresh_overlay()

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self._replace_controller()
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _refresh_overlay(self) -> None:
        self.overlay.set_count(self.target_phrase, self.counter.count, self.counter.goal)
        self.overlay.set_status(status_message(self.controller.status, self.target_phrase))

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_count_ui(self, session: int) -> None:
        snapshot = self.counter.increment(session)
        if snapshot is None:
            log.debug("dropped a detection queued before the counter was reset")
            return
        self.overlay.set_count(self.target_phrase, snapshot.count, snapshot.goal)
        if snapshot.goal_reached:
            self.tray.showMessage("Dhikr Counter", f"{self.target_phrase} x{snapshot.goal} complete. Masha'Allah!")

    def _on_status_ui(self, value: str) -> None:
        status = SessionStatus(value)
        self.tray.setIcon(_create_icon(ICON_COLORS[status]))
        self.tray.setToolTip(f"Dhikr Counter: {status_message(status, self.target_phrase)}")
        self.overlay.set_status(status_message(status, self.target_phrase))

    def _on_feedback_ui(self, kind: str, text: str) -> None:
        self.overlay.show_feedback(kind, feedback_message(FeedbackKind(kind), text))

    def _on_error_ui(self, category: str, message: str) -> None:
        if is_recoverable(category):
            return
        self.overlay.show_feedback("error", f"{describe(category)} ({message})", hide_after_ms=4000)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_toggle=self.ui.toggle_signal.emit)
        except Exception as exc:
            log.warning("hotkey disabled: %s", exc)
            self.overlay.show_feedback("error", f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.stop()
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
