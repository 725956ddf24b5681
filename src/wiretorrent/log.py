"""
Logging setup for the command line entry point.
"""
import logging
import logging.config


def setup_logging(level: str = "WARNING") -> None:
    """Send wiretorrent log records to stderr at ``level``."""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "wiretorrent": {
                "level": level,
                "handlers": ["stderr"],
                "propagate": False,
            },
        },
    })
