"""structlog setup for the Savrii service.

Settings drive the output: JSON lines when debug is off, ConsoleRenderer
when it is on. stdlib records (uvicorn, FastAPI) go through the same
processors, so every line carries the service name and request id.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

from savrii.core.config import Settings, get_settings

# stdlib loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access",)


def add_correlation_id(logger, method, event_dict):
    """Attach the X-Request-ID of the current request, if any."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def service_name_adder(service: str):
    def add_service(logger, method, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


def build_processors(settings: Settings) -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        service_name_adder(settings.app_name),
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_structlog(settings: Settings | None = None) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Safe to call more than once; the last call wins for loggers not yet
    used.
    """
    settings = settings or get_settings()
    processors = build_processors(settings)
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_logs
        else structlog.dev.ConsoleRenderer()
    )

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "savrii": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": processors,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "savrii",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": settings.log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
