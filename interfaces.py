"""Protocol interfaces between the session controller and its collaborators."""

from __future__ import annotations

from queue import Queue
from typing import Callable, Protocol

from models import AudioFrame, RecognitionEvent, RecognizerOptions


class Recorder(Protocol):
    sample_rate: int

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...


class SpeechRecognizer(Protocol):
    def start(self, on_event: Callable[[RecognitionEvent], None]) -> None: ...

    def stop(self) -> None: ...


class SpeechRecognizerBackend(Protocol):
    def is_available(self) -> bool: ...

    def create(self, options: RecognizerOptions) -> SpeechRecognizer: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...

