"""Tasbih counter state and the user-facing feedback lines."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from models import FeedbackKind, SessionStatus


@dataclass
class CountSnapshot:
    count: int
    goal: int
    goal_reached: bool


class TasbihCounter:
    """Counts accepted utterances toward a goal; keeps counting past it.

    ``session`` changes on every :meth:`reset`. Detections are tagged with the
    session current when they were emitted, so a detection still queued for
    delivery when the counter is reset does not leak into the new count.
    """

    def __init__(self, goal: int = 33) -> None:
        self.goal = goal
        self._count = 0
        self._session = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    @property
    def session(self) -> int:
        return self._session

    def increment(self, session: Optional[int] = None) -> Optional[CountSnapshot]:
        """Count one detection; ``None`` when ``session`` has been reset since."""
        with self._lock:
            if session is not None and session != self._session:
                return None
            self._count += 1
            return CountSnapshot(self._count, self.goal, self._count == self.goal)

    def reset(self) -> None:
        with self._lock:
            self._count = 0
            self._session += 1


def feedback_message(kind: FeedbackKind, detected_text: str) -> str:
    if kind == FeedbackKind.CORRECT:
        return "Voice count success!"
    if kind == FeedbackKind.WRONG:
        return f'Wrong phrase: "{detected_text}"'
    return f'Unclear speech: "{detected_text}"'


def status_message(status: SessionStatus, target_phrase: str) -> str:
    if status == SessionStatus.LISTENING:
        return f'Listening for "{target_phrase}"'
    if status == SessionStatus.PROCESSING:
        return "Processing..."
    if status == SessionStatus.ERROR:
        return "Voice recognition hiccup, retrying..."
    return "Voice off"
