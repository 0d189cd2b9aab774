"""Strict phrase matching over a phrase dictionary.

A transcript counts for the target phrase only when it equals one of the
phrase's variants after normalization, or contains a variant long enough that
containment cannot come from a short common word. Wrong-phrase detection is
looser: it only decides whether to tell the user "that was another dhikr" or
"I did not understand".
"""

from __future__ import annotations

from models import FeedbackKind
from normalizer import normalize
from phrases import DEFAULT_DICTIONARY, PhraseDictionary

# Variants must be longer than this to match by containment.
MIN_CONTAINMENT_LENGTH = 8


class PhraseMatcher:
    def __init__(
        self,
        dictionary: PhraseDictionary = DEFAULT_DICTIONARY,
        min_containment_length: int = MIN_CONTAINMENT_LENGTH,
    ) -> None:
        self._dictionary = dictionary
        self._min_containment_length = min_containment_length

    @property
    def dictionary(self) -> PhraseDictionary:
        return self._dictionary

    def is_target_match(self, transcript: str, target_phrase: str) -> bool:
        detected = normalize(transcript)
        if not detected:
            return False
        for variant in self._dictionary.variants_for(target_phrase):
            candidate = normalize(variant)
            if not candidate:
                continue
            if detected == candidate:
                return True
            if len(candidate) > self._min_containment_length and candidate in detected:
                return True
        return False

    def is_other_known_phrase(self, transcript: str, target_phrase: str) -> bool:
        detected = normalize(transcript)
        if not detected:
            return False
        for name, entry in self._dictionary.items():
            if name == target_phrase:
                continue
            for variant in entry.variants:
                candidate = normalize(variant)
                if candidate and (candidate in detected or detected in candidate):
                    return True
        return False

    def classify(self, transcript: str, target_phrase: str) -> FeedbackKind:
        if self.is_target_match(transcript, target_phrase):
            return FeedbackKind.CORRECT
        if self.is_other_known_phrase(transcript, target_phrase):
            return FeedbackKind.WRONG
        return FeedbackKind.UNCLEAR


_default_matcher = PhraseMatcher()


def is_target_match(transcript: str, target_phrase: str) -> bool:
    return _default_matcher.is_target_match(transcript, target_phrase)


def is_other_known_phrase(transcript: str, target_phrase: str) -> bool:
    return _default_matcher.is_other_known_phrase(transcript, target_phrase)
