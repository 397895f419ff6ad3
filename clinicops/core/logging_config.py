import logging
import sys
from typing import IO, Optional

import structlog

from ..config import settings

# stdlib loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


def _add_app_name(logger, method_name, event_dict):
    event_dict.setdefault("app", settings.APP_NAME)
    return event_dict


def setup_logging(stream: Optional[IO[str]] = None, level: Optional[str] = None):
    """Route structlog events as JSON lines through stdlib logging.

    The API logs to stdout. Command line tools that print their own output
    pass ``sys.stderr`` so the two streams stay separable.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=numeric_level,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            _add_app_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger("clinicops").info("logging_initialized", level=logging.getLevelName(numeric_level))
