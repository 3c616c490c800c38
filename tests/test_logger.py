from __future__ import annotations

import logging

from rich.logging import RichHandler

from utils.logger import ROOT_LOGGER_NAME, get_logger, setup_logger


def test_get_logger_configures_root_once(monkeypatch) -> None:
    monkeypatch.setattr(logging.getLogger(), "handlers", [])
    monkeypatch.setattr(logging.getLogger(ROOT_LOGGER_NAME), "handlers", [])

    first = get_logger("regwatch.cli")
    get_logger("regwatch.other")

    assert first.name == "regwatch.cli"
    handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], RichHandler)


def test_get_logger_defers_to_configured_root(monkeypatch) -> None:
    monkeypatch.setattr(logging.getLogger(), "handlers", [logging.NullHandler()])
    monkeypatch.setattr(logging.getLogger(ROOT_LOGGER_NAME), "handlers", [])

    get_logger("regwatch.cli")

    assert logging.getLogger(ROOT_LOGGER_NAME).handlers == []


def test_setup_logger_plain_handler(monkeypatch) -> None:
    monkeypatch.setattr(logging.getLogger("regwatch.plain"), "handlers", [])

    logger = setup_logger("regwatch.plain", level=logging.DEBUG, use_rich=False)

    assert logger.level == logging.DEBUG
    assert type(logger.handlers[0]) is logging.StreamHandler
