"""Process-wide logging setup."""

import logging.config


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service.

    Args:
        level: Log level name applied to the root logger
    """
    logging.config.dictConfig(
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
            "root": {"handlers": ["console"], "level": level.upper()},
            "loggers": {
                "httpx": {"level": "WARNING"},
            },
        }
    )
