"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from logger import get_logger
from models import RecognizerOptions, SessionSettings
from phrases import DEFAULT_DICTIONARY, PhraseDictionary

log = get_logger("config")

DEFAULTS: dict[str, Any] = {
    "api_key": "",
    "hotkey": "Key.f8",
    "target_phrase": "SubhanAllah",
    "language": "ar-SA",
    "goal": 33,
    "phrases_path": "",
}


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "dhikr_voice" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        return str(self._get("api_key"))

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        return str(self._get("hotkey"))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_target_phrase(self) -> str:
        return str(self._get("target_phrase"))

    def set_target_phrase(self, phrase: str) -> None:
        self._set("target_phrase", phrase)

    def get_goal(self) -> int:
        try:
            goal = int(self._get("goal"))
        except (TypeError, ValueError):
            return int(DEFAULTS["goal"])
        return goal if goal > 0 else int(DEFAULTS["goal"])

    def get_recognizer_options(self) -> RecognizerOptions:
        return RecognizerOptions(language=str(self._get("language")))

    def get_session_settings(self) -> SessionSettings:
        data = self._read_all()
        settings = SessionSettings()
        for name in ("debounce_s", "error_restart_delay_s", "end_restart_delay_s", "min_confidence"):
            if name not in data:
                continue
            try:
                setattr(settings, name, float(data[name]))
            except (TypeError, ValueError):
                log.warning("ignoring invalid %s=%r in %s", name, data[name], self._path)
        return settings

    def get_phrase_dictionary(self) -> PhraseDictionary:
        """The configured phrase file, or the built-in phrases."""
        raw_path = str(self._get("phrases_path")).strip()
        if not raw_path:
            return DEFAULT_DICTIONARY
        try:
            return PhraseDictionary.load(Path(raw_path).expanduser())
        except (OSError, TypeError, ValueError) as exc:
            log.warning("could not load phrases from %s (%s), using built-in phrases", raw_path, exc)
            return DEFAULT_DICTIONARY

    def _get(self, key: str) -> Any:
        return self._read_all().get(key, DEFAULTS[key])

    def _set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
