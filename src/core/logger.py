"""
Structured logging for the ingest and detect CLIs.

Two output formats are supported: a colored console layout for interactive
runs and one JSON object per line for log shippers. The format comes from
`--log-format` or the LOG_FORMAT env var.
"""

import logging
import os

import structlog
from dotenv import load_dotenv

load_dotenv()

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_FORMATS = ("console", "json")


def build_processors(log_format: str = "console") -> list:
    """Processor chain shared by both formats, ending with the renderer for log_format

    Raises:
        ValueError: If log_format is not one of LOG_FORMATS
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(
            f"Unknown log format '{log_format}'. Available formats: {', '.join(LOG_FORMATS)}"
        )

    shared = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if log_format == "json":
        # Tracebacks become a string field so each event stays on one line
        return shared + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]

    return shared + [
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback),
    ]


def setup_logging(level: int | None = logging.INFO, log_format: str | None = None) -> None:
    """
    Configure structlog over stdlib logging.

    Args:
        level: The logging level to use. Defaults to INFO.
        log_format: "console" or "json". Defaults to LOG_FORMAT, then console.
    """
    log_format = (log_format or os.getenv("LOG_FORMAT") or "console").lower()

    logging.basicConfig(level=level, format="%(message)s", force=True)

    structlog.configure(
        processors=build_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def level_from_name(name: str | None, default: int = logging.DEBUG) -> int:
    """Map a level name such as 'INFO' to its logging constant"""
    if not name:
        return default
    return LOG_LEVELS.get(name.upper(), default)


setup_logging(level=level_from_name(os.getenv("LOG_LEVEL")))
