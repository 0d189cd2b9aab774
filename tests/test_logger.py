from __future__ import annotations

import logging

from rich.logging import RichHandler

from logger import get_logger, setup_logger


def test_plain_format(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("LOG_FORMAT", "plain")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    logger = setup_logger("dhikr_voice_test_plain")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0], RichHandler)
    assert logger.propagate is False


def test_rich_format_and_idempotent(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("LOG_FORMAT", "rich")

    logger = setup_logger("dhikr_voice_test_rich")
    again = setup_logger("dhikr_voice_test_rich")

    assert again is logger
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], RichHandler)


def test_component_loggers_are_children() -> None:
    assert get_logger("session").name == "dhikr_voice.session"
