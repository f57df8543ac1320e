"""Structured logging: structlog events and stdlib records share one renderer.

Routers and middleware log through structlog; service modules use
``logging.getLogger(__name__)``. Both end up as the same JSON (or console)
lines carrying the bound request id.
"""

import logging

import structlog

from casino.config import Settings

_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio", "uvicorn.access")

_handler: logging.Handler | None = None


def setup_logging(settings: Settings) -> None:
    """Configure structlog and route stdlib logging through its formatter."""
    global _handler  # noqa: PLW0603

    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    _handler = handler

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
