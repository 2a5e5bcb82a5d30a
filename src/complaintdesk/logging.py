"""Structured logging for complaintdesk.

One root handler renders every record, whether it comes from a structlog
logger (``get_logger()``, used by the API) or from a plain
``logging.getLogger(__name__)`` logger (queue, dispatcher, producer).
Both end up as JSON lines in production or colored console lines during
development, with any context bound through ``log_context`` merged in.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from structlog.typing import Processor

_configured = False


def _is_complaintdesk_handler(handler: logging.Handler) -> bool:
    return isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    stream: IO[str] | None = None,
) -> None:
    """Route structlog and stdlib logging through one renderer.

    Calling it again replaces the handler installed by the previous call;
    handlers added by others (pytest's caplog, for instance) are kept.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Unknown
            names fall back to INFO.
        format: "json" for production, "text" for development.
        stream: Where to write. Defaults to stdout.
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)
    as_json = format.lower() == "json"

    # Runs for both structlog events and foreign stdlib records
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Processor
    if as_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None and sys.stdout.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *([structlog.processors.format_exc_info] if as_json else []),
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if _is_complaintdesk_handler(h)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)  # type: ignore[no-any-return]


@contextmanager
def log_context(**values: object) -> Iterator[None]:
    """Attach ``values`` to every log line emitted inside the block.

    Example:
        ```python
        with log_context(job_id=job.id, target=job.target):
            logger.info("Processing webhook job")
        ```
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield
