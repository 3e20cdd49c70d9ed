from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from chatrelay.core.settings import env_int, env_on, env_str

from .json_formatter import JSONFormatter

_LOGGER_NAME = "chatrelay"
_CONFIGURED_ATTR = "_chatrelay_json_logging"


def _parse_level(raw: str) -> int:
    normalized = raw.strip().upper()
    level = getattr(logging, normalized, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(log_dir: Path | None = None) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(_parse_level(env_str("CHATRELAY_LOG_LEVEL", "INFO")))
    logger.propagate = False

    formatter = JSONFormatter()

    if not any(getattr(handler, _CONFIGURED_ATTR, False) for handler in logger.handlers):
        stdout_handler = logging.StreamHandler(stream=sys.stdout)
        stdout_handler.setFormatter(formatter)
        setattr(stdout_handler, _CONFIGURED_ATTR, True)
        logger.addHandler(stdout_handler)

    if env_on("CHATRELAY_LOG_TO_FILE", "off"):
        configured_dir = env_str("CHATRELAY_LOG_DIR")
        target_dir = Path(configured_dir).expanduser() if configured_dir else (log_dir or Path.cwd() / "logs")
        target_dir.mkdir(parents=True, exist_ok=True)
        log_path = target_dir / "chatrelay.log"

        file_exists = any(
            isinstance(handler, RotatingFileHandler)
            and getattr(handler, _CONFIGURED_ATTR, False)
            and Path(handler.baseFilename) == log_path.resolve()
            for handler in logger.handlers
        )
        if not file_exists:
            file_handler = RotatingFileHandler(
                filename=log_path,
                maxBytes=env_int("CHATRELAY_LOG_MAX_BYTES", 5_000_000),
                backupCount=env_int("CHATRELAY_LOG_BACKUP_COUNT", 5),
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            setattr(file_handler, _CONFIGURED_ATTR, True)
            logger.addHandler(file_handler)

    return logger
