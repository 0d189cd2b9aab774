"""State-machine based voice recognition session.

The controller owns one live recognizer at a time, feeds final transcripts
through the debouncer and phrase matcher, and restarts the recognizer when it
drops out while the caller still wants to listen. Every recognizer event,
timer callback and public call runs under one re-entrant lock, so callbacks
are observed in a single serialized order no matter which thread the backend
delivers them on.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from debouncer import DetectionDebouncer
from errors import SERVICE_ERROR, START_FAILED, describe, is_recoverable
from interfaces import Scheduler, SpeechRecognizer, SpeechRecognizerBackend, TimerHandle
from logger import get_logger
from matcher import PhraseMatcher
from models import (
    FeedbackKind,
    RecognitionEvent,
    RecognitionKind,
    RecognizerOptions,
    SessionSettings,
    SessionStatus,
    TranscriptAlternative,
)
from scheduler import ThreadingScheduler

log = get_logger("session")

PhraseCallback = Callable[[], None]
StatusCallback = Callable[[SessionStatus], None]
FeedbackCallback = Callable[[FeedbackKind, str], None]
PartialCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]


class RecognitionSessionController:
    def __init__(
        self,
        backend: SpeechRecognizerBackend,
        target_phrase: str,
        on_phrase_detected: PhraseCallback,
        on_status_change: Optional[StatusCallback] = None,
        on_feedback: Optional[FeedbackCallback] = None,
        on_partial: Optional[PartialCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        matcher: Optional[PhraseMatcher] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[SessionSettings] = None,
        options: Optional[RecognizerOptions] = None,
    ) -> None:
        self._backend = backend
        self._target_phrase = target_phrase
        self._on_phrase_detected = on_phrase_detected
        self._on_status_change = on_status_change
        self._on_feedback = on_feedback
        self._on_partial = on_partial
        self._on_error = on_error
        self._matcher = matcher or PhraseMatcher()
        self._scheduler = scheduler or ThreadingScheduler()
        self._settings = settings or SessionSettings()
        self._options = options or RecognizerOptions()

        self._lock = threading.RLock()
        self._status = SessionStatus.IDLE
        # Bumped by stop(); timers armed under an older generation are inert.
        self._generation = 0
        self._desired_listening = False
        self._recognizer: Optional[SpeechRecognizer] = None
        self._restart_handle: Optional[TimerHandle] = None
        self._last_detected_text = ""
        self._last_error = ""
        self._debouncer: DetectionDebouncer[TranscriptAlternative] = DetectionDebouncer(
            call_later=self._call_later,
            classify=self._classify,
            on_outcome=self._deliver_outcome,
            delay_s=self._settings.debounce_s,
        )
        self._is_supported = self._probe_support()

    @property
    def target_phrase(self) -> str:
        return self._target_phrase

    @property
    def is_supported(self) -> bool:
        return self._is_supported

    @property
    def is_listening(self) -> bool:
        return self._desired_listening

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def last_detected_text(self) -> str:
        return self._last_detected_text

    @property
    def last_error(self) -> str:
        return self._last_error

    def start(self) -> None:
        with self._lock:
            if not self._is_supported:
                log.debug("start ignored: speech recognition is not supported here")
                return
            if self._desired_listening:
                return
            self._desired_listening = True
            self._last_error = ""
            log.info("listening for %r", self._target_phrase)
            self._spawn_recognizer()

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            self._desired_listening = False
            self._debouncer.cancel()
            self._cancel_restart()
            self._release_recognizer()
            self._transition(SessionStatus.IDLE)

    def toggle(self) -> None:
        with self._lock:
            if self._desired_listening:
                self.stop()
            else:
                self.start()

    # ------------------------------------------------------------------
    # Recognizer lifecycle
    # ------------------------------------------------------------------

    def _probe_support(self) -> bool:
        try:
            supported = bool(self._backend.is_available())
        except Exception:
            log.exception("speech capability check failed")
            return False
        if not supported:
            log.warning("speech recognition is not available in this environment")
        return supported

    def _spawn_recognizer(self) -> None:
        recognizer: Optional[SpeechRecognizer] = None
        try:
            recognizer = self._backend.create(self._options)
            self._recognizer = recognizer
            recognizer.start(self._make_event_handler(recognizer))
        except Exception as exc:
            log.exception("failed to start speech recognition")
            if recognizer is not None and self._recognizer is recognizer:
                self._release_recognizer()
            self._desired_listening = False
            self._report_error(START_FAILED, str(exc))
            return
        # The recognizer may already have failed synchronously inside start().
        if self._recognizer is recognizer:
            self._transition(SessionStatus.LISTENING)

    def _release_recognizer(self) -> None:
        recognizer = self._recognizer
        self._recognizer = None
        if recognizer is None:
            return
        try:
            recognizer.stop()
        except Exception:
            log.exception("recognizer did not stop cleanly")

    def _make_event_handler(self, recognizer: SpeechRecognizer) -> Callable[[RecognitionEvent], None]:
        def _on_event(event: RecognitionEvent) -> None:
            with self._lock:
                if recognizer is not self._recognizer:
                    log.debug("dropping %s event from a detached recognizer", event.kind)
                    return
                self._dispatch(event)

        return _on_event

    def _dispatch(self, event: RecognitionEvent) -> None:
        kind = event.kind
        if kind == RecognitionKind.STARTED.value:
            if self._status != SessionStatus.PROCESSING:
                self._transition(SessionStatus.LISTENING)
        elif kind == RecognitionKind.RESULT.value:
            self._handle_result(event)
        elif kind == RecognitionKind.ERROR.value:
            self._handle_recognizer_error(event.error or SERVICE_ERROR, event.message)
        elif kind == RecognitionKind.ENDED.value:
            self._handle_ended()

    def _handle_result(self, event: RecognitionEvent) -> None:
        best = event.best
        if best is None:
            return
        if not event.is_final:
            if self._on_partial:
                self._safe_call(self._on_partial, best.text)
            return
        log.info("heard %r (confidence %.2f)", best.text, best.confidence)
        self._last_detected_text = best.text
        self._transition(SessionStatus.PROCESSING)
        self._debouncer.submit(best)

    def _handle_recognizer_error(self, category: str, message: str) -> None:
        log.warning("recognizer error %s: %s", category, message or describe(category))
        self._release_recognizer()
        self._report_error(category, message)
        if is_recoverable(category) and self._desired_listening:
            self._schedule_restart(self._settings.error_restart_delay_s)
        else:
            self._desired_listening = False
            self._cancel_restart()

    def _handle_ended(self) -> None:
        self._release_recognizer()
        # Read the live flag: stop() may have run since this recognizer started.
        if not self._desired_listening:
            return
        self._schedule_restart(self._settings.end_restart_delay_s)

    def _schedule_restart(self, delay_s: float) -> None:
        if self._restart_handle is not None:
            return
        log.debug("restarting recognizer in %.2fs", delay_s)
        self._restart_handle = self._call_later(delay_s, self._restart)

    def _cancel_restart(self) -> None:
        handle = self._restart_handle
        self._restart_handle = None
        if handle is not None:
            handle.cancel()

    def _restart(self) -> None:
        self._restart_handle = None
        if not self._desired_listening or self._recognizer is not None:
            return
        log.info("restarting speech recognition")
        self._spawn_recognizer()

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def _classify(self, alternative: TranscriptAlternative) -> FeedbackKind:
        if alternative.confidence < self._settings.min_confidence:
            return FeedbackKind.UNCLEAR
        return self._matcher.classify(alternative.text, self._target_phrase)

    def _deliver_outcome(self, alternative: TranscriptAlternative, kind: FeedbackKind) -> None:
        log.info("%s: %r for target %r", kind.value, alternative.text, self._target_phrase)
        if kind == FeedbackKind.CORRECT:
            self._safe_call(self._on_phrase_detected)
        if self._on_feedback:
            self._safe_call(self._on_feedback, kind, alternative.text)
        if self._status == SessionStatus.PROCESSING:
            self._transition(SessionStatus.LISTENING)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        generation = self._generation

        def _fire() -> None:
            with self._lock:
                if generation != self._generation:
                    return
                callback()

        return self._scheduler.call_later(delay_s, _fire)

    def _report_error(self, category: str, message: str) -> None:
        self._last_error = category
        self._transition(SessionStatus.ERROR)
        if self._on_error:
            self._safe_call(self._on_error, category, message or describe(category))

    def _transition(self, to_status: SessionStatus) -> None:
        if self._status == to_status:
            return
        log.debug("status %s -> %s", self._status.value, to_status.value)
        self._status = to_status
        if self._on_status_change:
            self._safe_call(self._on_status_change, to_status)

    def _safe_call(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            log.exception("session callback %r raised", callback)
