"""Logger setup shared by the build hooks."""

from __future__ import annotations

import logging

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": SUCCESS,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``mediasync`` hierarchy."""
    if name == "mediasync" or name.startswith("mediasync."):
        return logging.getLogger(name)
    return logging.getLogger(f"mediasync.{name}")


def log_success(logger: logging.Logger, msg: str, *args: object) -> None:
    logger.log(SUCCESS, msg, *args)


def configure_logging(level: str = "info") -> None:
    resolved = _LEVELS.get(level.strip().lower())
    if resolved is None:
        raise ValueError(f"unknown log level: {level}")
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("mediasync").setLevel(resolved)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
