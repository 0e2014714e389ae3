"""Logging setup for the order service.

Records from structlog and from the standard library (protean, SQLAlchemy and
redis all log through it) pass through the same processors, so every line the
process writes has one shape. Production and staging render JSON; elsewhere
records go to the console with rich tracebacks. When ``LOG_DIR`` is set, JSON
lines are also written to a rotating ``orders.log`` in that directory.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import IO

import structlog

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}
_JSON_ENVIRONMENTS = ("production", "staging")
_QUIET_LIBRARIES = ("protean", "sqlalchemy.engine", "redis", "urllib3")

_configured = False


def current_environment() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """``LOG_LEVEL`` if set, otherwise the default for the current environment."""
    return os.getenv("LOG_LEVEL", _LEVELS.get(current_environment(), "INFO")).upper()


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _formatter(*renderers) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return _formatter(structlog.processors.format_exc_info, structlog.processors.JSONRenderer())


def _console_formatter(environment: str, stream: IO) -> structlog.stdlib.ProcessorFormatter:
    if environment in _JSON_ENVIRONMENTS:
        return _json_formatter()
    return _formatter(
        structlog.dev.ConsoleRenderer(
            colors=stream.isatty(),
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
        )
    )


def configure_logging(log_dir: str | Path | None = None, stream: IO | None = None) -> None:
    """Install the console (and optional file) handler on the root logger.

    Replaces whatever handlers the root logger had. ``log_dir`` defaults to
    the ``LOG_DIR`` environment variable; without either no file is written.
    """
    global _configured

    environment = current_environment()
    level = get_log_level()
    stream = stream or sys.stderr

    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(_console_formatter(environment, stream))
    handlers = [console_handler]

    log_dir = log_dir or os.getenv("LOG_DIR")
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / "orders.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(_json_formatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def ensure_logging() -> None:
    """Configure logging once, unless the host application installed its own handlers."""
    if _configured or logging.getLogger().handlers:
        return
    configure_logging()
