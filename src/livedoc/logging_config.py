"""
Logging configuration with verbosity control and multiple handlers.

Supports console, plain file and rotating file handlers, JSON or text
formatting, per-component filtering and configuration from ``LIVEDOC_LOG_*``
environment variables.
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from livedoc.app_logger import LogContext, format_record


class LogHandler(Enum):
    """Available log handler types."""

    CONSOLE = "console"
    FILE = "file"
    ROTATING_FILE = "rotating_file"
    NULL = "null"


class LogFormat(Enum):
    """Available log format types."""

    STRUCTURED = "structured"  # JSON
    SIMPLE = "simple"
    DETAILED = "detailed"  # with timestamps


class VerbosityLevel(Enum):
    """Verbosity levels controlling the effective log level."""

    QUIET = 1  # warnings and errors
    NORMAL = 2
    VERBOSE = 3  # debug, including per-request messages


_VERBOSITY_LEVELS = {
    VerbosityLevel.QUIET: "WARNING",
    VerbosityLevel.NORMAL: "INFO",
    VerbosityLevel.VERBOSE: "DEBUG",
}


@dataclass
class HandlerConfig:
    """Configuration for a single log handler."""

    type: LogHandler
    level: Optional[str] = None
    format: Optional[LogFormat] = None
    filename: Optional[str] = None
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 3
    stream: str = "stderr"
    date_format: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class LoggingConfig:
    """Complete logging configuration."""

    verbosity: VerbosityLevel = VerbosityLevel.NORMAL
    global_level: Optional[str] = None  # overrides verbosity when set
    global_format: LogFormat = LogFormat.SIMPLE
    logger_name: str = "livedoc"
    handlers: List[HandlerConfig] = field(
        default_factory=lambda: [HandlerConfig(type=LogHandler.CONSOLE)]
    )
    exclude_components: List[str] = field(default_factory=list)

    @property
    def effective_level(self) -> str:
        return (self.global_level or _VERBOSITY_LEVELS[self.verbosity]).upper()


class ConfigurableAppLogger:
    """AppLogger driven by a ``LoggingConfig``."""

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self._python_logger = logging.getLogger(self.config.logger_name)
        self._setup_logging()

    def _setup_logging(self) -> None:
        self._python_logger.setLevel(self.config.effective_level)
        for handler in list(self._python_logger.handlers):
            self._python_logger.removeHandler(handler)
            handler.close()

        for handler_config in self.config.handlers:
            self._python_logger.addHandler(self._create_handler(handler_config))

        # Avoid duplicate lines through the root logger
        self._python_logger.propagate = False

    def _create_handler(self, config: HandlerConfig) -> logging.Handler:
        if config.type == LogHandler.CONSOLE:
            stream = sys.stdout if config.stream == "stdout" else sys.stderr
            handler: logging.Handler = logging.StreamHandler(stream)
        elif config.type in (LogHandler.FILE, LogHandler.ROTATING_FILE):
            if not config.filename:
                raise ValueError(f"{config.type.value} handler requires a filename")
            Path(config.filename).parent.mkdir(parents=True, exist_ok=True)
            if config.type == LogHandler.FILE:
                handler = logging.FileHandler(config.filename)
            else:
                handler = logging.handlers.RotatingFileHandler(
                    config.filename,
                    maxBytes=config.max_bytes,
                    backupCount=config.backup_count,
                )
        elif config.type == LogHandler.NULL:
            return logging.NullHandler()
        else:
            raise ValueError(f"Unknown handler type: {config.type}")

        handler.setLevel((config.level or self.config.effective_level).upper())
        handler.setFormatter(
            self._create_formatter(config.format or self.config.global_format, config)
        )
        return handler

    @staticmethod
    def _create_formatter(
        format_type: LogFormat, config: HandlerConfig
    ) -> logging.Formatter:
        if format_type == LogFormat.STRUCTURED:
            # Records are already JSON
            return logging.Formatter("%(message)s")
        if format_type == LogFormat.DETAILED:
            return logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt=config.date_format,
            )
        return logging.Formatter("%(levelname)s: %(message)s")

    def should_log_component(self, context: Optional[LogContext]) -> bool:
        return context is None or context.component not in self.config.exclude_components

    def _format(self, message: str, context: Optional[LogContext], **kwargs) -> str:
        structured = self.config.global_format == LogFormat.STRUCTURED
        return format_record(message, context, structured, **kwargs)

    def debug(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        if self.should_log_component(context):
            self._python_logger.debug(self._format(message, context, **kwargs))

    def info(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        if self.should_log_component(context):
            self._python_logger.info(self._format(message, context, **kwargs))

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        if self.should_log_component(context):
            self._python_logger.warning(self._format(message, context, **kwargs))

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        if self.should_log_component(context):
            self._python_logger.error(
                self._format(message, context, **kwargs), exc_info=exc_info
            )


_FORMATS = {
    "json": LogFormat.STRUCTURED,
    "structured": LogFormat.STRUCTURED,
    "simple": LogFormat.SIMPLE,
    "detailed": LogFormat.DETAILED,
}

_VERBOSITIES = {
    "quiet": VerbosityLevel.QUIET,
    "normal": VerbosityLevel.NORMAL,
    "verbose": VerbosityLevel.VERBOSE,
    "v": VerbosityLevel.VERBOSE,
}


def parse_log_format(name: Optional[str]) -> LogFormat:
    """Map a user supplied format name to a ``LogFormat``."""
    return _FORMATS.get((name or "simple").lower(), LogFormat.SIMPLE)


def build_handler_configs(names: str, log_file: Optional[str]) -> List[HandlerConfig]:
    """
    Build handler configurations from a comma separated list of names.

    Args:
        names: e.g. ``"console,rotating"``
        log_file: Filename used by file based handlers

    Returns:
        Handler configurations, in the order given
    """
    filename = log_file or "logs/livedoc.log"
    configs = []
    for name in names.split(","):
        name = name.strip().lower()
        if name == "console":
            configs.append(HandlerConfig(type=LogHandler.CONSOLE))
        elif name == "file":
            configs.append(HandlerConfig(type=LogHandler.FILE, filename=filename))
        elif name == "rotating":
            configs.append(
                HandlerConfig(type=LogHandler.ROTATING_FILE, filename=filename)
            )
        elif name == "null":
            configs.append(HandlerConfig(type=LogHandler.NULL))
    return configs


def create_logger_from_env() -> ConfigurableAppLogger:
    """Create a logger from ``LIVEDOC_LOG_*`` environment variables."""
    config = LoggingConfig()
    config.verbosity = _VERBOSITIES.get(
        os.getenv("LIVEDOC_LOG_VERBOSITY", "normal").lower(), VerbosityLevel.NORMAL
    )
    if level := os.getenv("LIVEDOC_LOG_LEVEL"):
        config.global_level = level.upper()
    config.global_format = parse_log_format(os.getenv("LIVEDOC_LOG_FORMAT"))

    handler_configs = build_handler_configs(
        os.getenv("LIVEDOC_LOG_HANDLERS", "console"), os.getenv("LIVEDOC_LOG_FILE")
    )
    if handler_configs:
        config.handlers = handler_configs

    if exclude := os.getenv("LIVEDOC_LOG_EXCLUDE"):
        config.exclude_components = [c.strip() for c in exclude.split(",")]

    return ConfigurableAppLogger(config)
