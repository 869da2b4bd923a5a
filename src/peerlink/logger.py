"""
Logging setup for peerlink.

All modules log through loguru. Standard library loggers (uvicorn,
websockets, httpx) are routed into loguru so there is a single sink.
"""

import inspect
import logging
import sys
from typing import Optional

from loguru import logger

_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller that issued the logging call
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure loguru sinks and intercept standard logging.

    Args:
        level: Minimum log level name.
        log_file: Optional path for an additional rotating file sink.
    """
    level = level.upper()
    logger.remove()
    logger.configure(extra={"name": "peerlink"})
    logger.add(sys.stderr, level=level, format=_FORMAT)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format=_FORMAT,
            rotation="10 MB",
            retention=3,
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "websockets"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False


def get_logger(name: str):
    """Return a loguru logger bound to a module name."""
    return logger.bind(name=name)
