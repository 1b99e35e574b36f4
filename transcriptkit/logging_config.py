from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder
from structlog.typing import Processor

from transcriptkit.config import AppSettings

LOGGER_NAME = "transcriptkit"
LOG_FILE_NAME = "transcriptkit.log"

_FILE_CALLSITE_PARAMETERS = {
    CallsiteParameter.PATHNAME,
    CallsiteParameter.LINENO,
    CallsiteParameter.FUNC_NAME,
}


def configure_application_logging(settings: AppSettings) -> Path | None:
    """Attach handlers to the `transcriptkit` logger tree.

    Console output goes to stderr so command output on stdout stays
    machine-readable. Returns the JSON log file path when file logging is on.
    """
    _configure_structlog()

    root_logger = logging.getLogger(LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    root_logger.propagate = False
    _drop_handlers(root_logger)

    root_logger.addHandler(_console_handler(sys.stderr, level=settings.log_level))

    log_file: Path | None = None
    if settings.file_logging_enabled:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = settings.log_dir / LOG_FILE_NAME
        root_logger.addHandler(_json_file_handler(log_file))

    root_logger.debug(
        "logging configured console_level=%s file_enabled=%s path=%s",
        settings.log_level,
        settings.file_logging_enabled,
        log_file,
    )
    return log_file


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _console_handler(stream: TextIO, *, level: str) -> logging.Handler:
    handler = logging.StreamHandler(stream=stream)
    handler.setLevel(_level_number(level))
    handler.setFormatter(
        _formatter(structlog.dev.ConsoleRenderer(colors=_is_interactive(stream)))
    )
    return handler


def _json_file_handler(log_file: Path) -> logging.Handler:
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        _formatter(
            structlog.processors.JSONRenderer(sort_keys=True),
            CallsiteParameterAdder(parameters=_FILE_CALLSITE_PARAMETERS),
            structlog.processors.format_exc_info,
        )
    )
    return handler


def _formatter(renderer: Processor, *extra: Processor) -> structlog.stdlib.ProcessorFormatter:
    # Callsite lookup needs the `_record` key, so extras run before it is removed.
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        ],
        processors=[
            *extra,
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def _level_number(level_name: str) -> int:
    resolved = logging.getLevelName(level_name.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _is_interactive(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (OSError, ValueError):
        return False
