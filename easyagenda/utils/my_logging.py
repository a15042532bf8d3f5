# easyagenda/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from easyagenda.config.settings import get_settings
from easyagenda.core.middleware import correlation_id_var

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"

# Loggers that drown booking activity at INFO
NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "httpx",
    "openai",
    "celery",
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
]


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the correlation ID of the request being served"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True):
    """Configure application logging; worker processes log with correlation ID '-'"""
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler])

    if not verbose:
        for name in NOISY_LOGGERS:
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False
