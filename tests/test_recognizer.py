"""Tests for DashscopeRecognizer and DashscopeBackend."""

from __future__ import annotations

import time
from queue import Queue
from unittest.mock import MagicMock, patch

import pytest

from errors import NETWORK, NO_SPEECH, NOT_ALLOWED, SERVICE_ERROR
from models import AudioFrame, RecognitionEvent, RecognitionKind, RecognizerOptions
from recognizer import DashscopeBackend, DashscopeRecognizer, _language_hints, categorize_error


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

class FakeRecorder:
    """Pushes a fixed list of frames on start, a sentinel on stop."""

    sample_rate = 16000

    def __init__(self, frames: list[AudioFrame | None] | None = None) -> None:
        self.frames = frames or []
        self.queue: Queue[AudioFrame | None] | None = None
        self.started = False
        self.stop_calls = 0

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        self.started = True
        self.queue = audio_queue
        for frame in self.frames:
            audio_queue.put_nowait(frame)

    def stop(self) -> None:
        self.stop_calls += 1
        if self.queue is not None:
            self.queue.put_nowait(None)


def _frame(payload: bytes) -> AudioFrame:
    return AudioFrame(pcm16_bytes=payload)


def _wait_for(predicate, *, timeout: float = 3.0) -> None:  # noqa: ANN001
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return
        time.sleep(0.02)
    raise AssertionError("condition not met in time")


def _kinds(events: list[RecognitionEvent]) -> list[str]:
    return [e.kind for e in events]


def _sentence_result(text: str, end: bool) -> MagicMock:
    result = MagicMock()
    result.get_sentence.return_value = {"text": text, "sentence_end": end, "begin_time": 0, "end_time": None}
    return result


# ---------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------

@pytest.mark.parametrize(
    "message, category",
    [
        ("Request timeout after 23 seconds.", NO_SPEECH),
        ("401 Unauthorized: invalid api key", NOT_ALLOWED),
        ("websocket connection closed", NETWORK),
        ("network timeout", NETWORK),
        ("InternalError: model overloaded", SERVICE_ERROR),
    ],
)
def test_categorize_error(message: str, category: str) -> None:
    assert categorize_error(message) == category


def test_language_hints() -> None:
    assert _language_hints("ar-SA") == ["ar"]
    assert _language_hints("en") == ["en"]
    assert _language_hints("") == []


# ---------------------------------------------------------------
# Start preconditions
# ---------------------------------------------------------------

@patch("recognizer.Recognition", None)
def test_start_raises_without_dashscope() -> None:
    adapter = DashscopeRecognizer(api_key="test-key", recorder=FakeRecorder())
    with pytest.raises(RuntimeError, match="not installed"):
        adapter.start(lambda e: None)


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition", MagicMock())
@patch.dict("os.environ", {"DASHSCOPE_API_KEY": ""}, clear=False)
def test_start_raises_without_api_key() -> None:
    recorder = FakeRecorder()
    adapter = DashscopeRecognizer(api_key="", recorder=recorder)
    with pytest.raises(RuntimeError, match="No API key"):
        adapter.start(lambda e: None)
    assert recorder.started is False


# ---------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------

@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition")
def test_frames_are_streamed_until_sentinel(mock_recognition_cls: MagicMock) -> None:
    engine = mock_recognition_cls.return_value
    recorder = FakeRecorder([_frame(b"\x01\x00"), _frame(b"\x02\x00"), None])
    events: list[RecognitionEvent] = []

    adapter = DashscopeRecognizer(
        api_key="test-key",
        options=RecognizerOptions(language="ar-SA"),
        recorder=recorder,
    )
    adapter.start(events.append)
    _wait_for(lambda: RecognitionKind.ENDED.value in _kinds(events))

    kwargs = mock_recognition_cls.call_args.kwargs
    assert kwargs["format"] == "pcm"
    assert kwargs["sample_rate"] == 16000
    assert kwargs["language_hints"] == ["ar"]
    engine.start.assert_called_once()
    assert [c.args[0] for c in engine.send_audio_frame.call_args_list] == [b"\x01\x00", b"\x02\x00"]
    engine.stop.assert_called_once()
    assert _kinds(events) == [RecognitionKind.ENDED.value]


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition")
def test_callbacks_map_to_recognition_events(mock_recognition_cls: MagicMock) -> None:
    events: list[RecognitionEvent] = []
    adapter = DashscopeRecognizer(api_key="test-key", recorder=FakeRecorder())
    adapter.start(events.append)
    _wait_for(lambda: mock_recognition_cls.call_args is not None)
    callback = mock_recognition_cls.call_args.kwargs["callback"]

    callback.on_open()
    callback.on_event(_sentence_result("alham", end=False))
    callback.on_event(_sentence_result("alhamdulillah", end=True))
    error = MagicMock()
    error.message = "Request timeout after 23 seconds."
    callback.on_error(error)
    callback.on_close()

    assert _kinds(events) == [
        RecognitionKind.STARTED.value,
        RecognitionKind.RESULT.value,
        RecognitionKind.RESULT.value,
        RecognitionKind.ERROR.value,
        RecognitionKind.ENDED.value,
    ]
    assert events[1].is_final is False
    assert events[1].best is not None and events[1].best.text == "alham"
    assert events[2].is_final is True
    assert events[2].best is not None and events[2].best.text == "alhamdulillah"
    assert events[3].error == NO_SPEECH

    adapter.stop()


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition")
def test_blank_sentences_are_skipped(mock_recognition_cls: MagicMock) -> None:
    events: list[RecognitionEvent] = []
    adapter = DashscopeRecognizer(api_key="test-key", recorder=FakeRecorder())
    adapter.start(events.append)
    _wait_for(lambda: mock_recognition_cls.call_args is not None)
    callback = mock_recognition_cls.call_args.kwargs["callback"]

    callback.on_event(_sentence_result("   ", end=True))

    assert events == []
    adapter.stop()


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition")
def test_stop_detaches_callbacks(mock_recognition_cls: MagicMock) -> None:
    events: list[RecognitionEvent] = []
    recorder = FakeRecorder()
    adapter = DashscopeRecognizer(api_key="test-key", recorder=recorder)
    adapter.start(events.append)
    _wait_for(lambda: mock_recognition_cls.call_args is not None)
    callback = mock_recognition_cls.call_args.kwargs["callback"]

    adapter.stop()
    callback.on_event(_sentence_result("alhamdulillah", end=True))
    callback.on_complete()

    assert events == []
    assert recorder.stop_calls >= 1


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition")
def test_engine_start_failure_emits_error_then_ended(mock_recognition_cls: MagicMock) -> None:
    mock_recognition_cls.return_value.start.side_effect = ConnectionError("connection refused")
    events: list[RecognitionEvent] = []

    adapter = DashscopeRecognizer(api_key="test-key", recorder=FakeRecorder())
    adapter.start(events.append)
    _wait_for(lambda: RecognitionKind.ENDED.value in _kinds(events))

    assert _kinds(events) == [RecognitionKind.ERROR.value, RecognitionKind.ENDED.value]
    assert events[0].error == NETWORK
    assert "connection refused" in events[0].message


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition")
def test_engine_construction_failure_emits_error_then_ended(mock_recognition_cls: MagicMock) -> None:
    mock_recognition_cls.side_effect = ValueError("unsupported model")
    recorder = FakeRecorder()
    events: list[RecognitionEvent] = []

    adapter = DashscopeRecognizer(api_key="test-key", recorder=recorder)
    adapter.start(events.append)
    _wait_for(lambda: RecognitionKind.ENDED.value in _kinds(events))

    assert _kinds(events) == [RecognitionKind.ERROR.value, RecognitionKind.ENDED.value]
    assert events[0].error == SERVICE_ERROR
    assert "unsupported model" in events[0].message
    assert recorder.stop_calls >= 1


# ---------------------------------------------------------------
# Backend
# ---------------------------------------------------------------

@patch("recognizer.dashscope", None)
def test_backend_unavailable_without_dashscope() -> None:
    assert DashscopeBackend(api_key="test-key").is_available() is False


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition", MagicMock())
@patch("recorder.sd", None)
def test_backend_unavailable_without_sounddevice() -> None:
    assert DashscopeBackend(api_key="test-key").is_available() is False


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition", MagicMock())
@patch("recorder.sd", MagicMock())
@patch("recorder.np", MagicMock())
@patch.dict("os.environ", {"DASHSCOPE_API_KEY": ""}, clear=False)
def test_backend_requires_api_key() -> None:
    assert DashscopeBackend(api_key="").is_available() is False
    assert DashscopeBackend(api_key="test-key").is_available() is True


@patch("recognizer.dashscope", MagicMock())
@patch("recognizer.Recognition", MagicMock())
@patch("recorder.sd", MagicMock())
@patch("recorder.np", MagicMock())
@patch.dict("os.environ", {"DASHSCOPE_API_KEY": "env-key"}, clear=False)
def test_backend_accepts_env_api_key() -> None:
    assert DashscopeBackend(api_key="").is_available() is True


def test_backend_creates_fresh_recognizer_each_time() -> None:
    recorders: list[FakeRecorder] = []

    def make_recorder() -> FakeRecorder:
        recorders.append(FakeRecorder())
        return recorders[-1]

    backend = DashscopeBackend(api_key="test-key", recorder_factory=make_recorder)
    first = backend.create(RecognizerOptions())
    second = backend.create(RecognizerOptions())

    assert first is not second
    assert len(recorders) == 2
