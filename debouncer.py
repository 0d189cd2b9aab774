"""Coalesces bursts of final transcripts into a single classification."""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

from interfaces import TimerHandle
from models import FeedbackKind

T = TypeVar("T")

CallLater = Callable[[float, Callable[[], None]], TimerHandle]


class _Pending(Generic[T]):
    __slots__ = ("item", "handle")

    def __init__(self, item: T) -> None:
        self.item = item
        self.handle: Optional[TimerHandle] = None


class DetectionDebouncer(Generic[T]):
    """Classify only the last item submitted before a quiet window elapses.

    Not thread-safe on its own: the owner must serialize ``submit``,
    ``cancel`` and the timer callbacks produced by ``call_later``.
    """

    def __init__(
        self,
        call_later: CallLater,
        classify: Callable[[T], FeedbackKind],
        on_outcome: Callable[[T, FeedbackKind], None],
        delay_s: float = 0.5,
    ) -> None:
        self._call_later = call_later
        self._classify = classify
        self._on_outcome = on_outcome
        self._delay_s = delay_s
        self._pending: Optional[_Pending[T]] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def submit(self, item: T) -> None:
        self.cancel()
        pending = _Pending(item)
        self._pending = pending
        pending.handle = self._call_later(self._delay_s, lambda: self._fire(pending))

    def cancel(self) -> None:
        pending = self._pending
        self._pending = None
        if pending is not None and pending.handle is not None:
            pending.handle.cancel()

    def _fire(self, pending: _Pending[T]) -> None:
        # A superseded timer that could not be cancelled in time.
        if pending is not self._pending:
            return
        self._pending = None
        outcome = self._classify(pending.item)
        self._on_outcome(pending.item, outcome)
