"""Structured logging for the tracker.

Both ``structlog`` loggers (ingestors, pipeline, CLI) and plain ``logging``
loggers (decoder, normalizers, storage) end up in one stdout handler, rendered
either for the console or as JSON lines.
"""

import logging
import sys
from typing import Optional

import structlog

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]

_QUIET_LOGGERS = ("asyncio", "aiohttp", "sqlalchemy.engine")


def setup_logging(level: str = "INFO", enable_json: bool = False) -> None:
    """Route all tracker logging to stdout at ``level``.

    Raises:
        ValueError: if ``level`` is not a standard logging level name.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    renderer = (
        structlog.processors.JSONRenderer()
        if enable_json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    get_logger(__name__).debug("Logging configured", level=level.upper(), json_output=enable_json)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Structured logger named after the calling module."""
    return structlog.get_logger(name)


class LogContext:
    """Binds key/value pairs to a logger for the duration of a block.

    >>> with LogContext(logger, poll_number=3) as log:
    ...     log.info("Starting poll")
    """

    def __init__(self, logger: Optional[structlog.stdlib.BoundLogger] = None, **context):
        self.context = context
        self.logger = logger or get_logger()

    def __enter__(self):
        self.logger = self.logger.bind(**self.context)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error("Block exited with exception", exc_info=(exc_type, exc_val, exc_tb))
        return False
