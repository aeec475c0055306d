"""
Structured logging for the chat core.

Every module logs key-value events through structlog. Services render JSON
lines; the CLI switches to the colored console renderer. Output goes to
stderr so command results on stdout stay machine readable.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import Processor

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")


def _build_processors(json_format: bool) -> list[Processor]:
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        renderer,
    ]


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structlog and the stdlib root logger once per process.

    Args:
        level: Level name such as "DEBUG" or "WARNING".
        json_format: Render JSON lines instead of console output.
        log_file: Also copy stdlib records to this path.
    """
    threshold = getattr(logging, level.upper())

    structlog.configure(
        processors=_build_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=threshold)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(threshold, logging.WARNING))

    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setLevel(threshold)
        logging.getLogger().addHandler(handler)


def get_logger(name: str) -> structlog.BoundLogger:
    """Return the structlog logger for a module, usually called with __name__."""
    return structlog.get_logger(name)


class LogContext:
    """
    Bind request-scoped keys to every log line emitted inside the block.

    Keys whose value is None are skipped.

    Example:
        >>> with LogContext(request_id="abc", category_id="code_reader_scanner"):
        ...     logger.info("question_parsed")
    """

    def __init__(self, **kwargs):
        self.context = {key: value for key, value in kwargs.items() if value is not None}

    def __enter__(self):
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.unbind_contextvars(*self.context.keys())
