"""
Centralized logging configuration for the shot list service.

Provides request-scoped logging with a request_id prefix so that the lines of
one document build can be correlated in interleaved output.
"""

import logging
import sys
from typing import Optional


class RequestLogger:
    """
    Logger that prefixes every message with the request identifier.

    Adds contextual information like request_id and stage to all log messages.
    """

    def __init__(
        self,
        name: str,
        request_id: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        """
        Initialize request logger.

        Args:
            name: Logger name (usually __name__)
            request_id: Optional request identifier for correlation
            stage: Optional pipeline stage (e.g., "layout", "render")
        """
        self.logger = logging.getLogger(name)
        self.request_id = request_id
        self.stage = stage

    def _format_message(self, message: str) -> str:
        """Add contextual prefix to message."""
        prefix_parts = []
        if self.request_id:
            prefix_parts.append(f"[req:{self.request_id[:8]}]")
        if self.stage:
            prefix_parts.append(f"[{self.stage}]")

        if prefix_parts:
            return f"{' '.join(prefix_parts)} {message}"
        return message

    def child(self, stage: str) -> "RequestLogger":
        """Same request, different stage tag."""
        return RequestLogger(self.logger.name, self.request_id, stage)

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message), **kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message), **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message), **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message), **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        self.logger.exception(self._format_message(message), **kwargs)


SIMPLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request INFO lines from the HTTP client would drown the build log
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """Send all service logs to stdout in the "simple" or "json" layout."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(JSON_FORMAT if format == "json" else SIMPLE_FORMAT, datefmt=DATE_FORMAT)
    )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(
    name: str,
    request_id: Optional[str] = None,
    stage: Optional[str] = None,
) -> RequestLogger:
    """
    Get a request logger instance.

    Args:
        name: Logger name (usually __name__)
        request_id: Optional request identifier
        stage: Optional stage name

    Returns:
        RequestLogger instance
    """
    return RequestLogger(name, request_id, stage)
