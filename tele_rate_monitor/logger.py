"""Logging helpers for tele_rate_monitor."""
import logging
import os


def setup_logging() -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(handler)
    root.setLevel(level)

    # Polling and upstream HTTP clients are chatty at INFO
    for name in ("httpx", "httpcore", "telegram", "urllib3", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["setup_logging"]
