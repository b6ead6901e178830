"""
Application logger interface used by every livedoc component.

Components log through an ``AppLogger`` with a ``LogContext`` naming the
component, so output can be filtered per component and rendered either as
JSON records or as plain text.
"""

import json
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass
class LogContext:
    """Structured log context information."""

    component: str
    operation: Optional[str] = None
    request_path: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary, dropping unset fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class AppLogger(Protocol):
    """Protocol for the application logging interface."""

    def debug(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def info(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None: ...


def format_record(
    message: str,
    context: Optional[LogContext] = None,
    structured: bool = True,
    **kwargs,
) -> str:
    """
    Render a log message with its context.

    Args:
        message: Human readable message
        context: Optional component context
        structured: True for a JSON record, False for a single text line
        **kwargs: Additional key/value details

    Returns:
        The formatted message string
    """
    if structured:
        record: Dict[str, Any] = {"message": message, "timestamp": time.time()}
        if context:
            record.update(context.to_dict())
        if kwargs:
            record["additional"] = kwargs
        return json.dumps(record, default=str)

    parts = [message]
    if context:
        parts.append(f"[{context.component}]")
        if context.operation:
            parts.append(f"({context.operation})")
        if context.request_path:
            parts.append(f"path={context.request_path}")
    if kwargs:
        parts.append("[" + ", ".join(f"{k}={v}" for k, v in kwargs.items()) + "]")
    return " ".join(parts)


class NullAppLogger:
    """Logger that discards everything; handy in tests."""

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        pass

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        pass

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        pass

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ):
        pass


_default_logger: Optional[AppLogger] = None


def get_default_logger() -> AppLogger:
    """Get the process default logger, creating it from the environment."""
    global _default_logger
    if _default_logger is None:
        from livedoc.logging_config import create_logger_from_env

        _default_logger = create_logger_from_env()
    return _default_logger


def set_default_logger(logger: AppLogger) -> None:
    """Replace the process default logger."""
    global _default_logger
    _default_logger = logger
