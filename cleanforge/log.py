"""
Logging setup.

Console output goes through rich's RichHandler on stderr; an optional
file handler writes one JSON object per line.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

LOGGER_NAME = "cleanforge"


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": time.time(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Attach handlers to the package logger. Safe to call more than once."""
    config = config or LoggingConfig()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_level = logging.WARNING if config.quiet else config.level
    console_handler = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_path=False,
        rich_tracebacks=True,
    )
    logger.addHandler(console_handler)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(JsonLogFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
