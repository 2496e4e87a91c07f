"""Logging setup for the CLI and HTTP entry points."""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level="INFO"):
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, force=True)

    # Suppress noisy loggers
    for name in ("anthropic", "httpx", "httpcore", "werkzeug"):
        logging.getLogger(name).setLevel(logging.WARNING)
