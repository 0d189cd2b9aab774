"""Dhikr phrase dictionary: canonical names and their accepted variants."""

from __future__ import annotations

import json
import unicodedata
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from normalizer import normalize


@dataclass(frozen=True)
class PhraseEntry:
    canonical_name: str
    variants: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.variants:
            raise ValueError(f"phrase {self.canonical_name!r} has no variants")
        if not any(normalize(v) for v in self.variants):
            raise ValueError(f"phrase {self.canonical_name!r} has no usable variant")


DEFAULT_PHRASES: dict[str, list[str]] = {
    "Allahu Akbar": [
        "allahu akbar",
        "allah akbar",
        "allahuakbar",
        "god is great",
        "الله أكبر",
        "اللهُ أَكْبَرُ",
    ],
    "SubhanAllah": [
        "subhanallah",
        "subhan allah",
        "subhanollah",
        "subchan allah",
        "subhan",
        "glory to god",
        "glory be to allah",
        "سبحان الله",
        "سُبْحَانَ اللَّهِ",
        "سبحان",
        "سُبْحَانَ",
        "صبحان الله",
        "صبحان",
    ],
    "Alhamdulillah": [
        "alhamdulillah",
        "alhamdu lillah",
        "praise be to god",
        "الحمد لله",
        "الْحَمْدُ لِلَّهِ",
    ],
    "La ilaha illa Allah": [
        "la ilaha illa allah",
        "la ilaha illallah",
        "lailahaillallah",
        "there is no god but allah",
        "لا إله إلا الله",
    ],
    "Astaghfirullah": [
        "astaghfirullah",
        "astagfirullah",
        "astagh firullah",
        "i seek forgiveness from allah",
        "أستغفر الله",
    ],
    "Hasbi Allah": [
        "hasbi allah",
        "hasbiyallahu",
        "hasbi allahu",
        "allah is sufficient for me",
        "حسبي الله",
    ],
}


def _fold(text: str) -> str:
    """Case- and accent-insensitive form used by :meth:`PhraseDictionary.search`."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


class PhraseDictionary(Mapping[str, PhraseEntry]):
    """Read-only table of phrase entries keyed by canonical name."""

    def __init__(self, entries: Mapping[str, PhraseEntry]) -> None:
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def from_mapping(cls, data: Mapping[str, list[str] | tuple[str, ...]]) -> "PhraseDictionary":
        return cls(
            {
                name: PhraseEntry(
                    canonical_name=name,
                    # Variants that normalize to nothing could never match.
                    variants=tuple(dict.fromkeys(v for v in variants if normalize(v))),
                )
                for name, variants in data.items()
            }
        )

    @classmethod
    def load(cls, path: Path) -> "PhraseDictionary":
        """Load ``{"Canonical": ["variant", ...]}`` from a JSON file.

        Raises ``ValueError`` when the file is not an object of string lists.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object of phrase lists")
        for name, variants in data.items():
            if not isinstance(variants, (list, tuple)) or not all(isinstance(v, str) for v in variants):
                raise ValueError(f"{path}: {name!r} must be a list of variants")
        return cls.from_mapping({str(name): list(variants) for name, variants in data.items()})

    def __getitem__(self, name: str) -> PhraseEntry:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def variants_for(self, name: str) -> tuple[str, ...]:
        """Variants of ``name``; unknown phrases match their own lower-cased name."""
        entry = self._entries.get(name)
        if entry is None:
            return (name.lower(),)
        return entry.variants

    def search(self, query: str, limit: int = 50) -> list[str]:
        """Canonical names whose name or any variant contains ``query``."""
        needle = _fold(query.strip())
        if not needle:
            return list(self._entries)[:limit]
        found = []
        for name, entry in self._entries.items():
            haystack = (name,) + entry.variants
            if any(needle in _fold(text) for text in haystack):
                found.append(name)
        return found[:limit]


DEFAULT_DICTIONARY = PhraseDictionary.from_mapping(DEFAULT_PHRASES)
