"""Logging configuration for the CLI and the web app."""

import logging
import logging.handlers
from pathlib import Path

from lexitrend.config import LoggingSettings


def setup_logging(settings: LoggingSettings | None = None) -> None:
    """Configure the root logger with a console handler and an optional log file."""
    settings = settings or LoggingSettings()

    if settings.file:
        Path(settings.file).parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.level)

    # Replace handlers from an earlier call rather than stacking them
    for handler in list(root_logger.handlers):
        if getattr(handler, "_lexitrend", False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(settings.format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler._lexitrend = True
    root_logger.addHandler(console_handler)

    if settings.file:
        file_handler = logging.handlers.RotatingFileHandler(
            settings.file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler._lexitrend = True
        root_logger.addHandler(file_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging configured at %s", settings.level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)
