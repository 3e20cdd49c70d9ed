from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from chatrelay.core.logging.setup import configure_logging


def test_configure_logging_is_idempotent(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CHATRELAY_LOG_TO_FILE", "off")

    logger = logging.getLogger("chatrelay")
    logger.handlers = []

    configure_logging(tmp_path)
    first_count = len(logger.handlers)

    configure_logging(tmp_path)
    assert len(logger.handlers) == first_count


def test_configure_logging_adds_rotating_file_handler_once(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CHATRELAY_LOG_TO_FILE", "on")
    monkeypatch.setenv("CHATRELAY_LOG_DIR", str(tmp_path / "logs"))

    logger = logging.getLogger("chatrelay")
    logger.handlers = []

    try:
        configure_logging()
        configure_logging()
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert (tmp_path / "logs" / "chatrelay.log").exists()
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
