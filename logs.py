import logging
import logging.config
import os

import config


def setup_logging(level: str = config.LOG_LEVEL, log_dir: str = config.LOG_DIR) -> None:
    """Console output plus combined.log and error.log under ``log_dir``."""
    os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {"format": "%(levelname)s: %(message)s"},
            "file": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
            },
            "combined": {
                "class": "logging.FileHandler",
                "filename": os.path.join(log_dir, "combined.log"),
                "formatter": "file",
            },
            "error": {
                "class": "logging.FileHandler",
                "filename": os.path.join(log_dir, "error.log"),
                "formatter": "file",
                "level": "ERROR",
            },
        },
        "root": {"level": level, "handlers": ["console", "combined", "error"]},
    })
