"""Timer scheduling backed by ``threading.Timer``."""

from __future__ import annotations

import threading
from typing import Callable


class ThreadingScheduler:
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(delay_s, 0.0), callback)
        timer.daemon = True
        timer.start()
        return timer
