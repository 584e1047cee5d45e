"""
Logger utility for consistent logging across modules
"""

import logging
import sys


class ColorFormatter(logging.Formatter):
    """Formatter with uvicorn-like colored level names (plain text when not attached to a TTY)."""

    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str | None = None, *, use_colors: bool = True) -> None:
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers still see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if self.use_colors:
            color = self.COLORS.get(record.levelno, "")
            # Pad first, then color (escape codes must not affect alignment)
            record.levelname = f"{color}{record.levelname + self.RESET + ':':<13}"
        else:
            record.levelname = f"{record.levelname + ':':<9}"
        return super().format(record)


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Get a logger with a uvicorn-style stdout handler.

    Args:
        name: Logger name (typically __name__)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(
            ColorFormatter(
                "%(levelname)s [%(name)s:%(funcName)s] %(message)s",
                use_colors=sys.stdout.isatty(),
            )
        )
        logger.addHandler(handler)
        logger.propagate = False

    return logger
