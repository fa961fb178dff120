"""Logging setup for the API process."""

from logging.config import dictConfig

from app.core.config import Settings


def configure_logging(settings: Settings) -> None:
    level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                # googleapiclient logs every discovery-cache miss at WARNING
                "googleapiclient.discovery_cache": {"level": "ERROR"},
            },
        }
    )
