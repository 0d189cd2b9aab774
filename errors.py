"""Recognizer error categories and user-facing messages."""

from __future__ import annotations

NO_SPEECH = "no-speech"
ABORTED = "aborted"
AUDIO_CAPTURE = "audio-capture"
NETWORK = "network"
NOT_ALLOWED = "not-allowed"
SERVICE_ERROR = "service-error"
START_FAILED = "start-failed"

# Categories the session recovers from on its own.
RECOVERABLE_ERRORS = frozenset({NO_SPEECH, ABORTED})

ERROR_MESSAGES = {
    NO_SPEECH: "No speech heard, still listening.",
    ABORTED: "Recognition was interrupted, restarting.",
    AUDIO_CAPTURE: "Microphone is unavailable.",
    NETWORK: "Network failed, please retry.",
    NOT_ALLOWED: "Speech service refused access. Check the API key.",
    SERVICE_ERROR: "Speech service reported an error.",
    START_FAILED: "Could not start voice recognition.",
}


def is_recoverable(category: str) -> bool:
    return category in RECOVERABLE_ERRORS


def describe(category: str) -> str:
    return ERROR_MESSAGES.get(category, ERROR_MESSAGES[SERVICE_ERROR])
