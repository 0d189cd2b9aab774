"""Always-on-top counter overlay."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_BOX = "font-size: 18px; padding: 12px 16px; background: rgba(0,0,0,190); border-radius: 12px;"

FEEDBACK_COLORS = {
    "correct": "#7CFC9A",
    "wrong": "#FFB347",
    "unclear": "#D0D0D0",
    "error": "#FF6B6B",
}


class CounterOverlay(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool)
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(420)

        self._count_label = QLabel("")
        self._count_label.setAlignment(Qt.AlignCenter)
        self._count_label.setStyleSheet(f"color: white; {_BOX} font-size: 28px;")

        self._status_label = QLabel("")
        self._status_label.setAlignment(Qt.AlignCenter)
        self._status_label.setWordWrap(True)
        self._status_label.setStyleSheet(f"color: white; {_BOX}")

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)
        layout.addWidget(self._count_label)
        layout.addWidget(self._status_label)
        self.setLayout(layout)

        self._feedback_timer: QTimer | None = None
        self._status_text = ""

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        self.move(geom.x() + (geom.width() - self.width()) // 2, geom.y() + 40)

    def set_count(self, phrase: str, count: int, goal: int) -> None:
        self._count_label.setText(f"{phrase}  {count} / {goal}")
        self._center_top()
        self.show()

    def set_status(self, text: str) -> None:
        """Persistent status line, restored after each feedback flash."""
        self._status_text = text
        if self._feedback_timer is None:
            self._show_status(text, "white")

    def show_feedback(self, kind: str, text: str, hide_after_ms: int = 2000) -> None:
        """Flash a feedback message, then fall back to the status line."""
        self._cancel_feedback_timer()
        self._show_status(text, FEEDBACK_COLORS.get(kind, "white"))
        if QTimer is not None:
            self._feedback_timer = QTimer()
            self._feedback_timer.setSingleShot(True)
            self._feedback_timer.timeout.connect(self._restore_status)
            self._feedback_timer.start(hide_after_ms)

    def _show_status(self, text: str, color: str) -> None:
        self._status_label.setStyleSheet(f"color: {color}; {_BOX}")
        self._status_label.setText(text)
        self._center_top()
        self.show()

    def _restore_status(self) -> None:
        self._feedback_timer = None
        self._show_status(self._status_text, "white")

    def _cancel_feedback_timer(self) -> None:
        if self._feedback_timer is not None:
            self._feedback_timer.stop()
            self._feedback_timer = None
