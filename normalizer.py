"""Utterance normalization shared by transcripts and phrase variants."""

from __future__ import annotations

# Latin and Arabic sentence punctuation. Arabic letters and harakat are kept.
PUNCTUATION = ".,!?;:،؛؟۔"

_STRIP_TABLE = str.maketrans("", "", PUNCTUATION)


def normalize(text: str | None) -> str:
    """Return ``text`` in its comparable form.

    Lower-cases, drops the characters in :data:`PUNCTUATION`, collapses runs
    of whitespace to a single space and trims the ends. Never raises;
    ``None`` becomes an empty string.
    """
    if not text:
        return ""
    stripped = str(text).lower().translate(_STRIP_TABLE)
    return " ".join(stripped.split())
