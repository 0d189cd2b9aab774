"""Streaming speech recognizer backed by the DashScope realtime ASR API.

Microphone frames are pushed by :class:`SoundDeviceRecorder` onto a queue; a
worker thread forwards them to ``dashscope.audio.asr.Recognition``. SDK
callbacks are translated into :class:`RecognitionEvent` values:

    on_open             -> started
    on_event (sentence) -> result (final once the sentence has ended)
    on_error            -> error, with a category from :mod:`errors`
    on_complete/close   -> ended (delivered once per recognizer)

``stop()`` never waits on the engine, so it is safe to call while the session
controller holds its lock. Callbacks arriving after ``stop()`` are dropped.
"""

from __future__ import annotations

import os
import threading
from queue import Empty, Queue
from typing import Any, Callable, Optional

import recorder as recorder_module
from errors import NETWORK, NO_SPEECH, NOT_ALLOWED, SERVICE_ERROR
from interfaces import Recorder
from logger import get_logger
from models import AudioFrame, RecognitionEvent, RecognitionKind, RecognizerOptions, TranscriptAlternative
from recorder import SoundDeviceRecorder

try:
    import dashscope
    from dashscope.audio.asr import Recognition, RecognitionCallback
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore
    Recognition = None  # type: ignore
    RecognitionCallback = object  # type: ignore

log = get_logger("recognizer")

DEFAULT_MODEL = "paraformer-realtime-v2"

_IDLE_MARKERS = ("no valid audio", "no speech", "request timeout after")
_AUTH_MARKERS = ("401", "403", "auth", "api key", "access denied")
_NETWORK_MARKERS = ("timeout", "network", "connection", "websocket")


def _language_hints(language: str) -> list[str]:
    """``ar-SA`` -> ``["ar"]``; the engine takes bare language codes."""
    code = language.split("-")[0].strip().lower()
    return [code] if code else []


def _is_sentence_end(sentence: dict) -> bool:
    if "sentence_end" in sentence:
        return bool(sentence["sentence_end"])
    return sentence.get("end_time") is not None


def categorize_error(message: str) -> str:
    """Map an SDK/network error message to a recognizer error category."""
    low = message.lower()
    if any(marker in low for marker in _IDLE_MARKERS):
        return NO_SPEECH
    if any(marker in low for marker in _AUTH_MARKERS):
        return NOT_ALLOWED
    if any(marker in low for marker in _NETWORK_MARKERS):
        return NETWORK
    return SERVICE_ERROR


class _EngineCallback(RecognitionCallback):
    def __init__(self, owner: "DashscopeRecognizer") -> None:
        super().__init__()
        self._owner = owner

    def on_open(self) -> None:
        self._owner._emit(RecognitionEvent(kind=RecognitionKind.STARTED.value))

    def on_event(self, result: Any) -> None:
        self._owner._handle_sentence(result.get_sentence())

    def on_error(self, result: Any) -> None:
        message = str(getattr(result, "message", "") or result)
        self._owner._emit(
            RecognitionEvent(
                kind=RecognitionKind.ERROR.value,
                error=categorize_error(message),
                message=message,
            )
        )
        self._owner._engine_done.set()
        self._owner._emit_ended()

    def on_complete(self) -> None:
        self._owner._engine_done.set()
        self._owner._emit_ended()

    def on_close(self) -> None:
        self._owner._engine_done.set()
        self._owner._emit_ended()


class DashscopeRecognizer:
    def __init__(
        self,
        api_key: str,
        options: Optional[RecognizerOptions] = None,
        model: str = DEFAULT_MODEL,
        recorder: Optional[Recorder] = None,
        queue_maxsize: int = 50,
    ) -> None:
        self._api_key = api_key
        self._options = options or RecognizerOptions()
        self._model = model
        self._recorder = recorder or SoundDeviceRecorder()
        self._queue_maxsize = queue_maxsize
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._engine_done = threading.Event()
        self._audio_queue: Optional[Queue[AudioFrame | None]] = None
        self._on_event: Optional[Callable[[RecognitionEvent], None]] = None
        self._ended = False

    def start(self, on_event: Callable[[RecognitionEvent], None]) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            if dashscope is None or Recognition is None:
                raise RuntimeError("dashscope is not installed")
            api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
            if not api_key:
                raise RuntimeError("No API key configured")
            self._on_event = on_event
            self._ended = False
            self._stop_event.clear()
            self._engine_done.clear()
            self._audio_queue = Queue(maxsize=self._queue_maxsize)
            self._recorder.start(self._audio_queue)
            self._thread = threading.Thread(target=self._worker, args=(api_key,), daemon=True)
            self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        with self._lock:
            self._on_event = None
        self._safe_stop_recorder()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _worker(self, api_key: str) -> None:
        """Stream microphone frames to the engine until stopped."""
        audio_queue = self._audio_queue
        if audio_queue is None:
            return
        try:
            dashscope.api_key = api_key
            recognition = Recognition(
                model=self._model,
                format="pcm",
                sample_rate=self._recorder.sample_rate,
                callback=_EngineCallback(self),
                language_hints=_language_hints(self._options.language),
            )
            recognition.start()
        except Exception as exc:
            self._emit(self._to_error_event(exc))
            self._safe_stop_recorder()
            self._emit_ended()
            return

        try:
            while not self._stop_event.is_set() and not self._engine_done.is_set():
                try:
                    frame = audio_queue.get(timeout=0.2)
                except Empty:
                    continue
                if frame is None:  # Sentinel
                    break
                recognition.send_audio_frame(frame.pcm16_bytes)
        except Exception as exc:
            if not self._engine_done.is_set():
                self._emit(self._to_error_event(exc))
        finally:
            self._safe_stop_recorder()
            if not self._engine_done.is_set():
                try:
                    recognition.stop()
                except Exception:
                    log.debug("engine stop raised", exc_info=True)
            self._emit_ended()

    def _handle_sentence(self, sentence: Any) -> None:
        sentences = sentence if isinstance(sentence, list) else [sentence]
        for item in sentences:
            if not isinstance(item, dict):
                continue
            text = str(item.get("text", "")).strip()
            if not text:
                continue
            # The realtime engine reports no per-sentence confidence.
            self._emit(
                RecognitionEvent(
                    kind=RecognitionKind.RESULT.value,
                    alternatives=[TranscriptAlternative(text=text, confidence=1.0)],
                    is_final=_is_sentence_end(item),
                )
            )

    def _emit(self, event: RecognitionEvent) -> None:
        with self._lock:
            on_event = self._on_event
        if on_event is None:
            return
        on_event(event)

    def _emit_ended(self) -> None:
        with self._lock:
            if self._ended:
                return
            self._ended = True
        self._emit(RecognitionEvent(kind=RecognitionKind.ENDED.value))

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception:
            log.exception("microphone did not close cleanly")

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        message = str(exc)
        return RecognitionEvent(
            kind=RecognitionKind.ERROR.value,
            error=categorize_error(message),
            message=message,
        )


class DashscopeBackend:
    """Creates a fresh :class:`DashscopeRecognizer` per recognition run."""

    def __init__(
        self,
        api_key: str = "",
        model: str = DEFAULT_MODEL,
        recorder_factory: Callable[[], Recorder] = SoundDeviceRecorder,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._recorder_factory = recorder_factory

    def is_available(self) -> bool:
        if dashscope is None or Recognition is None:
            return False
        if not recorder_module.is_available():
            return False
        return bool(self._api_key or os.getenv("DASHSCOPE_API_KEY", ""))

    def create(self, options: RecognizerOptions) -> DashscopeRecognizer:
        return DashscopeRecognizer(
            api_key=self._api_key,
            options=options,
            model=self._model,
            recorder=self._recorder_factory(),
        )
