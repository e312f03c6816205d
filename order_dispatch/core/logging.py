import logging
import sys
import structlog
from order_dispatch.config import settings

SERVICE_NAME = "order-dispatch"


def _add_service(_, __, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("env", settings.ENV)
    return event_dict


def configure_logging(level: str = None, debug: bool = None):
    """
    Send stdlib and structlog output to stdout at one level.

    Every event carries the service name plus whatever request or task context
    was bound with ``bind_context``. Debug runs render for the console, anything
    else one JSON object per line.
    """
    level = getattr(logging, (level or settings.LOG_LEVEL).upper())
    debug = settings.DEBUG if debug is None else debug

    # uvicorn, celery and sqlalchemy still log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def bind_context(**values):
    """Start a fresh logging context for the current request or task."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_context():
    structlog.contextvars.clear_contextvars()


logger = structlog.get_logger()
