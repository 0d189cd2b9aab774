"""Tests for SoundDeviceRecorder."""

from __future__ import annotations

from queue import Queue
from unittest.mock import MagicMock, patch

import pytest

import recorder as rec_mod
from models import AudioFrame
from recorder import SoundDeviceRecorder


class _FakeNp:
    """Minimal numpy stand-in so recorder._on_audio doesn't bail."""

    int16 = "int16"

    @staticmethod
    def asarray(data, dtype=None):  # noqa: ANN001, ANN205
        return data


class _FakeAudioInput:
    """Fake audio input similar to what the sounddevice callback provides."""

    def __init__(self, n_samples: int = 1600) -> None:
        self._data = b"\x00\x00" * n_samples

    def tobytes(self) -> bytes:
        return self._data


@patch("recorder.sd")
def test_start_opens_int16_stream_on_device(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    recorder = SoundDeviceRecorder(sample_rate=16000, chunk_ms=100, device="USB Mic")
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)

    kwargs = mock_sd.InputStream.call_args.kwargs
    assert kwargs["samplerate"] == 16000
    assert kwargs["dtype"] == "int16"
    assert kwargs["blocksize"] == 1600
    assert kwargs["device"] == "USB Mic"
    mock_stream.start.assert_called_once()
    assert recorder.running is True

    recorder.stop()
    mock_stream.stop.assert_called_once()
    mock_stream.close.assert_called_once()
    assert recorder.running is False
    assert q.get_nowait() is None


@patch("recorder.sd")
def test_start_is_idempotent(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.start(q)

    assert mock_sd.InputStream.call_count == 1
    recorder.stop()


@patch("recorder.sd")
def test_stop_twice_does_not_reclose_stream(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.stop()
    recorder.stop()

    mock_stream.close.assert_called_once()
    assert q.get_nowait() is None


@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_callback_pushes_audio_frames(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder(sample_rate=16000, channels=1, chunk_ms=100)
    q: Queue[AudioFrame | None] = Queue(maxsize=50)
    recorder.start(q)

    recorder._on_audio(_FakeAudioInput(1600), frames=1600, time_info=None, status=None)

    frame = q.get_nowait()
    assert isinstance(frame, AudioFrame)
    assert frame.sample_rate == 16000
    assert frame.channels == 1
    assert len(frame.pcm16_bytes) == 1600 * 2
    recorder.stop()


@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_full_queue_counts_dropped_chunks(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue(maxsize=1)
    recorder.start(q)

    recorder._on_audio(_FakeAudioInput(), frames=1600, time_info=None, status=None)
    assert recorder.dropped_chunks == 0
    recorder._on_audio(_FakeAudioInput(), frames=1600, time_info=None, status=None)
    assert recorder.dropped_chunks == 1

    recorder.stop()


@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_dropped_chunks_reset_on_restart(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    recorder.dropped_chunks = 7
    recorder.start(Queue())

    assert recorder.dropped_chunks == 0
    recorder.stop()


def test_start_raises_without_sounddevice(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(rec_mod, "sd", None)

    recorder = SoundDeviceRecorder()
    with pytest.raises(RuntimeError, match="sounddevice is not installed"):
        recorder.start(Queue())


def test_is_available_requires_sounddevice_and_numpy(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(rec_mod, "sd", MagicMock())
    monkeypatch.setattr(rec_mod, "np", MagicMock())
    assert rec_mod.is_available() is True

    monkeypatch.setattr(rec_mod, "np", None)
    assert rec_mod.is_available() is False


@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_callback_after_stop_is_noop(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.stop()
    q.get_nowait()  # sentinel

    recorder._on_audio(_FakeAudioInput(), frames=1600, time_info=None, status=None)
    assert q.empty()
