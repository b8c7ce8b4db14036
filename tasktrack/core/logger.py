"""Package logging for TaskTrack.

Everything under ``tasktrack.*`` logs through one package logger: always to
stderr, and to a rotating ``<log_dir>/tasktrack.log`` unless file logging
is turned off in settings.
"""

import logging
import logging.handlers
import os

from tasktrack.core.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_BACKUPS = 5


def setup_logger(
    name: str,
    log_dir: str = "./logs",
    level: str = "INFO",
    file_logging: bool = True,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to ``name`` once.

    Calling again only updates the level. Raises ValueError for an unknown level.
    """
    if level.upper() not in LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LEVELS)}")

    logger = logging.getLogger(name)
    logger.setLevel(level.upper())
    if logger.handlers:
        return logger

    handlers = [logging.StreamHandler()]
    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=ROTATE_BYTES,
            backupCount=ROTATE_BACKUPS,
        ))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the package logger from application settings."""
    return setup_logger(
        "tasktrack",
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.file_logging,
    )
