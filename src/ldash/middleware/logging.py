"""structlog setup shared by the API process and the arq worker."""

import logging

import structlog

from ldash.config import Settings

# Chatty third-party loggers kept at WARNING unless debugging.
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "arq.jobs")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.environment != "development":
        shared.append(structlog.processors.CallsiteParameterAdder({structlog.processors.CallsiteParameter.MODULE}))

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.format_exc_info,
            _renderer(settings.log_format),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger("ldash").setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else logging.WARNING)
