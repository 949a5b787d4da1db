"""
Application logger interface used by every globfeed component.

Components receive an optional AppLogger and log with a LogContext naming the
component (and optionally the operation and connection). Keyword arguments
become structured metadata, rendered as JSON or as ``key=value`` text.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional, Protocol


@dataclass(frozen=True)
class LogContext:
    """Structured log context information."""

    component: str
    operation: Optional[str] = None
    connection_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging, dropping unset fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def for_operation(self, operation: str) -> "LogContext":
        """Return a copy of this context scoped to ``operation``."""
        return replace(self, operation=operation)

    def for_connection(self, connection_id: int) -> "LogContext":
        """Return a copy of this context bound to one connection."""
        return replace(self, connection_id=connection_id)


class AppLogger(Protocol):
    """Protocol for application logging interface."""

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

    def critical(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None: ...


def format_log_message(
    message: str,
    context: Optional[LogContext] = None,
    structured: bool = True,
    **kwargs,
) -> str:
    """
    Render a message with its context and metadata.

    Args:
        message: Human readable message
        context: Optional component context
        structured: True for a JSON document, False for a single text line
        **kwargs: Additional metadata

    Returns:
        The rendered log line
    """
    if structured:
        log_data: Dict[str, Any] = {"message": message, "timestamp": time.time()}
        if context:
            log_data.update(context.to_dict())
        if kwargs:
            log_data["additional"] = kwargs
        return json.dumps(log_data, default=str)

    parts = [message]
    if context:
        parts.append(f"[{context.component}]")
        if context.operation:
            parts.append(f"({context.operation})")
        if context.connection_id is not None:
            parts.append(f"conn={context.connection_id}")
    if kwargs:
        parts.append("[" + ", ".join(f"{k}={v}" for k, v in kwargs.items()) + "]")
    return " ".join(parts)


class StandardAppLogger:
    """AppLogger backed directly by a Python ``logging`` logger."""

    def __init__(self, logger_name: str = "globfeed", format_type: str = "structured"):
        """
        Initialise the standard app logger.

        Args:
            logger_name: Name of the underlying Python logger
            format_type: "structured" for JSON format, "simple" for text format
        """
        self._logger = logging.getLogger(logger_name)
        self._structured = format_type == "structured"

    def _format_message(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> str:
        return format_log_message(message, context, self._structured, **kwargs)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        self._logger.debug(self._format_message(message, context, **kwargs))

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        self._logger.info(self._format_message(message, context, **kwargs))

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._logger.warning(self._format_message(message, context, **kwargs))

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._logger.error(
            self._format_message(message, context, **kwargs), exc_info=exc_info
        )

    def critical(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._logger.critical(
            self._format_message(message, context, **kwargs), exc_info=exc_info
        )


class NullAppLogger:
    """Null object implementation for testing or disabled logging."""

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        pass

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        pass

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        pass

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        pass

    def critical(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        pass


_default_logger: Optional[AppLogger] = None


def get_default_logger() -> AppLogger:
    """Get the process-wide application logger, configuring it from the environment on first use."""
    global _default_logger
    if _default_logger is None:
        from globfeed.logging_config import create_logger_from_env

        _default_logger = create_logger_from_env()
    return _default_logger


def set_default_logger(logger: Optional[AppLogger]) -> None:
    """Set (or with None, reset) the process-wide application logger."""
    global _default_logger
    _default_logger = logger


def resolve_logger(logger: Optional[AppLogger]) -> AppLogger:
    """Return ``logger`` or the default logger when none was injected."""
    return logger if logger is not None else get_default_logger()
