"""Core data models for the voice counter."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SessionStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    ERROR = "error"


class FeedbackKind(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    UNCLEAR = "unclear"


class RecognitionKind(str, Enum):
    STARTED = "started"
    RESULT = "result"
    ERROR = "error"
    ENDED = "ended"


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass
class TranscriptAlternative:
    text: str
    confidence: float = 1.0


@dataclass
class RecognitionEvent:
    kind: str
    alternatives: list[TranscriptAlternative] = field(default_factory=list)
    is_final: bool = False
    error: str = ""
    message: str = ""

    @property
    def best(self) -> TranscriptAlternative | None:
        """Highest-ranked alternative, as ordered by the engine."""
        return self.alternatives[0] if self.alternatives else None


@dataclass
class RecognizerOptions:
    language: str = "ar-SA"
    continuous: bool = True
    interim_results: bool = True
    max_alternatives: int = 3


@dataclass
class SessionSettings:
    debounce_s: float = 0.5
    error_restart_delay_s: float = 1.0
    end_restart_delay_s: float = 0.1
    min_confidence: float = 0.0
