import logging
from logging.config import dictConfig


def configure_logging(level: str = "INFO"):
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s: %(name)s: %(message)s"
            },
            "error": {
                "format": "%(asctime)s %(levelname)s: %(name)s: %(funcName)s: %(message)s"
            }
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
            "info": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "level": "INFO",
                "filters": ["below_error"],
            },
            "error": {
                "formatter": "error",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": "ERROR"
            }
        },
        "filters": {
            "below_error": {
                "()": BelowErrorFilter,
            }
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["default"],
                "level": "INFO"
            },
            "uvicorn.error": {
                "handlers": ["error"],
                "level": "ERROR"
            },
            "fastapi": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            },
            "sqlalchemy": {
                "handlers": ["error"],
                "level": "ERROR",
                "propagate": False
            },
            "app": {  # Application logger used by routes and the scheduling core
                "handlers": ["info", "error"],
                "level": level,
                "propagate": False
            },
            "db": {  # Persistence helpers (db.occurrences, ...)
                "handlers": ["info", "error"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "handlers": ["default"],
            "level": "INFO"
        }
    }
    dictConfig(log_config)


class BelowErrorFilter(logging.Filter):
    """Keep ERROR and above off stdout; the error handler sends them to stderr."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR
