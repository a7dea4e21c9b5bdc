"""
Error taxonomy and per-request issue tracking for the shot list service.

Only validation and persistence failures abort a request. Image fetch
failures and degenerate layout geometry are recovered where they happen and
recorded in an IssueCollector so the request log ends with a summary.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


class ShotListError(Exception):
    """Base class for all shot list service errors."""


class ShotListValidationError(ShotListError):
    """Request carried no usable shots."""

    def __init__(self, message: str, field_lengths: Optional[Dict[str, int]] = None):
        self.message = message
        self.field_lengths = field_lengths or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "field_lengths": self.field_lengths}


class ResourceFetchError(ShotListError):
    """An image could not be retrieved or decoded."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class LayoutDegenerateError(ShotListError):
    """Computed cell or row geometry is not positive."""


class PersistenceError(ShotListError):
    """The finished document could not be written to the output directory."""


@dataclass
class RenderIssue:
    """
    Structured record of a recoverable problem during one document build.

    Provides consistent tracking with severity and recoverability.
    """

    stage: str  # e.g., "render", "layout"
    operation: str  # e.g., "image_fetch", "grid_geometry"
    severity: str  # "critical", "high", "medium", "low"
    message: str
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    recoverable: bool = True
    exception_type: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "stage": self.stage,
            "operation": self.operation,
            "severity": self.severity,
            "message": self.message,
            "timestamp": self.timestamp,
            "recoverable": self.recoverable,
            "exception_type": self.exception_type,
        }


class IssueCollector:
    """
    Collects recoverable issues during one document build.

    Provides aggregation and summary capabilities for issue tracking.
    """

    def __init__(self):
        self.issues: List[RenderIssue] = []

    def add_issue(
        self,
        stage: str,
        operation: str,
        message: str,
        severity: str = "medium",
        recoverable: bool = True,
        exception: Optional[Exception] = None,
    ) -> None:
        """Convenience method to add an issue with parameters."""
        self.issues.append(
            RenderIssue(
                stage=stage,
                operation=operation,
                message=message,
                severity=severity,
                recoverable=recoverable,
                exception_type=type(exception).__name__ if exception else None,
            )
        )

    def count(self, operation: Optional[str] = None) -> int:
        if operation is None:
            return len(self.issues)
        return sum(1 for i in self.issues if i.operation == operation)

    def summary(self) -> dict:
        """Get issue summary statistics."""
        by_severity = {"critical": 0, "high": 0, "medium": 0, "low": 0}
        by_operation: Dict[str, int] = {}
        for issue in self.issues:
            if issue.severity in by_severity:
                by_severity[issue.severity] += 1
            by_operation[issue.operation] = by_operation.get(issue.operation, 0) + 1
        return {
            "total": len(self.issues),
            "by_severity": by_severity,
            "by_operation": by_operation,
        }


def log_on_exception(
    logger: logging.Logger,
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
):
    """
    Context manager for logging exceptions without swallowing them silently.

    Usage:
        with log_on_exception(logger, "PDF publish", level=logging.ERROR, include_traceback=True):
            os.replace(tmp_path, final_path)

    Args:
        logger: Logger instance to use
        operation: Operation description for the log message
        level: Log level (default: WARNING)
        include_traceback: Whether to include stack trace in log
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None:
                if include_traceback:
                    logger.log(level, f"[{operation}] Failed: {exc_val}", exc_info=True)
                else:
                    logger.log(level, f"[{operation}] Failed: {exc_val}")
            # Return False to not suppress the exception
            return False

    return ExceptionLogger()
