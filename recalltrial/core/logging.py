import logging
import sys
from logging.config import dictConfig

from recalltrial.config import settings

CTX_FIELDS = ("reminder_id", "trial_id", "rid")


def setup_logging() -> None:
    """Base logging setup for the worker and the web app."""
    level = settings.log_level.upper()

    if settings.log_json:
        formatter = {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(reminder_id)s %(trial_id)s %(rid)s",
            "json_ensure_ascii": False,
        }
    else:
        formatter = {
            "format": (
                "%(asctime)s | %(levelname)5s | %(name)s | %(message)s "
                "| reminder=%(reminder_id)s trial=%(trial_id)s rid=%(rid)s"
            ),
        }

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"ctx": {"()": CtxFilter}},
        "formatters": {"default": formatter},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
                "filters": ["ctx"],
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {
            # SQL echo for debugging
            "sqlalchemy.engine": {"level": settings.log_sql.upper()},
            "apscheduler": {"level": "WARNING"},
            "httpx": {"level": "WARNING"},
            "uvicorn": {"level": level},
            "uvicorn.error": {"level": level},
            "uvicorn.access": {"level": level},
            "recalltrial": {"level": level},
        },
    })


class CtxFilter(logging.Filter):
    """Fills context fields so the formatter never fails when there is no extra."""
    def filter(self, record: logging.LogRecord) -> bool:
        for k in CTX_FIELDS:
            if not hasattr(record, k):
                setattr(record, k, "-")
        return True
