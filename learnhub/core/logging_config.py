import logging.config

from learnhub.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure root logging once at startup."""
    level = settings.log_level.upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "learnhub": {"level": level, "handlers": ["console"], "propagate": False},
                "sqlalchemy.engine": {
                    "level": "INFO" if settings.debug else "WARNING",
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
        }
    )
