"""
Logging configuration: verbosity, output handlers and formats.

Builds a ConfigurableAppLogger on top of the standard ``logging`` package.
Configuration comes from the CLI options or from ``GLOBFEED_LOG_*``
environment variables.
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from globfeed.app_logger import LogContext, format_log_message

DEFAULT_LOG_FILE = "logs/globfeed.log"


class LogHandler(Enum):
    """Available log handler types."""

    CONSOLE = "console"
    FILE = "file"
    ROTATING_FILE = "rotating_file"
    SYSLOG = "syslog"
    NULL = "null"


class LogFormat(Enum):
    """Available log format types."""

    STRUCTURED = "structured"  # JSON
    SIMPLE = "simple"
    DETAILED = "detailed"  # text with timestamps


class VerbosityLevel(Enum):
    """Verbosity levels for controlling log output."""

    SILENT = 0
    QUIET = 1
    NORMAL = 2
    VERBOSE = 3
    VERY_VERBOSE = 4


_VERBOSITY_LEVELS = {
    VerbosityLevel.SILENT: "CRITICAL",
    VerbosityLevel.QUIET: "WARNING",
    VerbosityLevel.NORMAL: "INFO",
    VerbosityLevel.VERBOSE: "DEBUG",
    VerbosityLevel.VERY_VERBOSE: "DEBUG",
}

VERBOSITY_NAMES = {
    "silent": VerbosityLevel.SILENT,
    "quiet": VerbosityLevel.QUIET,
    "normal": VerbosityLevel.NORMAL,
    "verbose": VerbosityLevel.VERBOSE,
    "very_verbose": VerbosityLevel.VERY_VERBOSE,
    "v": VerbosityLevel.VERBOSE,
    "vv": VerbosityLevel.VERY_VERBOSE,
}

FORMAT_NAMES = {
    "json": LogFormat.STRUCTURED,
    "structured": LogFormat.STRUCTURED,
    "simple": LogFormat.SIMPLE,
    "detailed": LogFormat.DETAILED,
}


@dataclass
class HandlerConfig:
    """Configuration for a single log handler."""

    type: LogHandler
    level: Optional[str] = None  # None: global level
    format: Optional[LogFormat] = None  # None: global format

    filename: Optional[str] = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    facility: str = "local0"
    address: Union[str, Tuple[str, int]] = "/dev/log"

    stream: str = "stderr"
    date_format: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class LoggingConfig:
    """Complete logging configuration."""

    verbosity: VerbosityLevel = VerbosityLevel.NORMAL
    global_level: Optional[str] = None  # None: derived from verbosity
    global_format: LogFormat = LogFormat.SIMPLE
    logger_name: str = "globfeed"
    handlers: List[HandlerConfig] = field(
        default_factory=lambda: [HandlerConfig(type=LogHandler.CONSOLE)]
    )
    component_levels: Dict[str, str] = field(default_factory=dict)
    exclude_components: List[str] = field(default_factory=list)
    include_only_components: Optional[List[str]] = None

    @property
    def effective_level(self) -> str:
        if self.global_level:
            return self.global_level.upper()
        return _VERBOSITY_LEVELS[self.verbosity]


def parse_handler_names(names: str, log_file: Optional[str] = None) -> List[HandlerConfig]:
    """
    Turn a comma-separated handler list into handler configurations.

    Args:
        names: e.g. ``"console,rotating"``
        log_file: Filename for file based handlers

    Returns:
        Handler configurations; unknown names are ignored
    """
    configs = []
    filename = log_file or DEFAULT_LOG_FILE
    for name in names.split(","):
        name = name.strip().lower()
        if name == "console":
            configs.append(HandlerConfig(type=LogHandler.CONSOLE))
        elif name == "file":
            configs.append(HandlerConfig(type=LogHandler.FILE, filename=filename))
        elif name == "rotating":
            configs.append(HandlerConfig(type=LogHandler.ROTATING_FILE, filename=filename))
        elif name == "syslog":
            configs.append(HandlerConfig(type=LogHandler.SYSLOG))
        elif name == "null":
            configs.append(HandlerConfig(type=LogHandler.NULL))
    return configs


def split_components(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [c.strip() for c in value.split(",") if c.strip()]


class ConfigurableAppLogger:
    """Application logger with multiple handlers, verbosity and component filters."""

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self._python_logger = logging.getLogger(self.config.logger_name)
        self._handlers: List[logging.Handler] = []
        self._setup_logging()

    def _setup_logging(self) -> None:
        self._python_logger.setLevel(self.config.effective_level)
        for handler in list(self._python_logger.handlers):
            self._python_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

        for handler_config in self.config.handlers:
            handler = self._create_handler(handler_config)
            if handler:
                self._handlers.append(handler)
                self._python_logger.addHandler(handler)

        # Avoid duplicates through the root logger
        self._python_logger.propagate = False

    def _create_handler(self, config: HandlerConfig) -> Optional[logging.Handler]:
        try:
            if config.type == LogHandler.CONSOLE:
                stream = sys.stdout if config.stream == "stdout" else sys.stderr
                handler: logging.Handler = logging.StreamHandler(stream)
            elif config.type in (LogHandler.FILE, LogHandler.ROTATING_FILE):
                if not config.filename:
                    raise ValueError(f"{config.type.value} handler requires filename")
                Path(config.filename).parent.mkdir(parents=True, exist_ok=True)
                if config.type == LogHandler.FILE:
                    handler = logging.FileHandler(config.filename)
                else:
                    handler = logging.handlers.RotatingFileHandler(
                        filename=config.filename,
                        maxBytes=config.max_bytes,
                        backupCount=config.backup_count,
                    )
            elif config.type == LogHandler.SYSLOG:
                facility = getattr(
                    logging.handlers.SysLogHandler,
                    f"LOG_{config.facility.upper()}",
                    logging.handlers.SysLogHandler.LOG_LOCAL0,
                )
                handler = logging.handlers.SysLogHandler(
                    address=config.address, facility=facility
                )
            elif config.type == LogHandler.NULL:
                return logging.NullHandler()
            else:
                raise ValueError(f"Unknown handler type: {config.type}")
        except (OSError, ValueError) as e:
            print(
                f"Warning: Failed to create {config.type.value} handler: {e}",
                file=sys.stderr,
            )
            if config.type != LogHandler.CONSOLE:
                return self._create_handler(HandlerConfig(type=LogHandler.CONSOLE))
            return None

        handler.setLevel((config.level or self.config.effective_level).upper())
        handler.setFormatter(self._create_formatter(config))
        return handler

    def _create_formatter(self, config: HandlerConfig) -> logging.Formatter:
        format_type = config.format or self.config.global_format
        if format_type == LogFormat.SIMPLE:
            return logging.Formatter("%(levelname)s: %(message)s")
        if format_type == LogFormat.DETAILED:
            return logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s",
                datefmt=config.date_format,
            )
        return logging.Formatter("%(message)s")

    def should_log(self, context: Optional[LogContext], level: int) -> bool:
        """Apply component filters and per-component levels."""
        if context is None:
            return True
        component = context.component
        if component in self.config.exclude_components:
            return False
        if (
            self.config.include_only_components
            and component not in self.config.include_only_components
        ):
            return False
        component_level = self.config.component_levels.get(component)
        if component_level:
            return level >= logging.getLevelName(component_level.upper())
        return True

    def reconfigure(self, new_config: LoggingConfig) -> None:
        self.config = new_config
        self._setup_logging()

    def _log(
        self,
        level: int,
        message: str,
        context: Optional[LogContext],
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        if not self.should_log(context, level):
            return
        structured = self.config.global_format == LogFormat.STRUCTURED
        self._python_logger.log(
            level,
            format_log_message(message, context, structured, **kwargs),
            exc_info=exc_info,
        )

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        self._log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        self._log(logging.INFO, message, context, **kwargs)

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._log(logging.WARNING, message, context, **kwargs)

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._log(logging.ERROR, message, context, exc_info=exc_info, **kwargs)

    def critical(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._log(logging.CRITICAL, message, context, exc_info=exc_info, **kwargs)


def create_logger_from_env() -> ConfigurableAppLogger:
    """Create a logger from ``GLOBFEED_LOG_*`` environment variables."""
    config = LoggingConfig()
    config.verbosity = VERBOSITY_NAMES.get(
        os.getenv("GLOBFEED_LOG_VERBOSITY", "normal").lower(), VerbosityLevel.NORMAL
    )
    if level := os.getenv("GLOBFEED_LOG_LEVEL"):
        config.global_level = level.upper()
    config.global_format = FORMAT_NAMES.get(
        os.getenv("GLOBFEED_LOG_FORMAT", "simple").lower(), LogFormat.SIMPLE
    )

    handlers = parse_handler_names(
        os.getenv("GLOBFEED_LOG_HANDLERS", "console"), os.getenv("GLOBFEED_LOG_FILE")
    )
    if handlers:
        config.handlers = handlers

    config.exclude_components = split_components(os.getenv("GLOBFEED_LOG_EXCLUDE"))
    config.include_only_components = (
        split_components(os.getenv("GLOBFEED_LOG_INCLUDE_ONLY")) or None
    )
    return ConfigurableAppLogger(config)
