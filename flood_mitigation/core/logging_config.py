import logging
import logging.config
import sys

from flood_mitigation.core.config import settings


class RequestIdFilter(logging.Filter):
    """
    Filter to inject request_id into log records.
    Relies on contextvar set by middleware.
    """

    def filter(self, record):
        from flood_mitigation.core.middleware import request_id_context

        record.request_id = request_id_context.get() or "system"
        return True


def build_logging_config(level: str = None, log_format: str = None) -> dict:
    """Build the dictConfig mapping used by every entry point."""
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format
    handlers = ["console"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "console": {
                "format": "%(asctime)s - %(levelname)s - [%(request_id)s] - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(request_id)s %(name)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "json" if log_format == "json" else "console",
                "filters": ["request_id"],
                "level": level,
            },
        },
        "loggers": {
            "root": {"handlers": handlers, "level": level, "propagate": False},
            "flood_mitigation": {
                "handlers": handlers,
                "level": level,
                "propagate": False,
            },
            "uvicorn": {"handlers": handlers, "level": "INFO", "propagate": False},
            "uvicorn.access": {
                "handlers": handlers,
                "level": "INFO",
                "propagate": False,
            },
            # paho logs every reconnect attempt at DEBUG
            "paho": {"handlers": handlers, "level": "WARNING", "propagate": False},
            "urllib3": {"handlers": handlers, "level": "WARNING", "propagate": False},
        },
    }


def setup_logging(level: str = None, log_format: str = None):
    """
    Configure logging using logging.dictConfig.
    """
    logging.config.dictConfig(build_logging_config(level, log_format))
