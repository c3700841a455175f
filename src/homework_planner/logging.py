from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .core import ensure_data_dir

LOG_FILE_NAME = "homework_planner.log"

# Chatty third-party loggers kept at WARNING unless the planner itself runs at DEBUG.
_NOISY_LOGGERS = ("hypercorn.access", "httpx", "mcp")

_INITIALIZED = False


def configure_logging(
    level: str = "INFO",
    *,
    log_dir: Optional[Path] = None,
    log_path: Optional[Path] = None,
) -> Path:
    """Attach a rotating file handler and a stderr console handler to the root logger.

    Only the first call has an effect; later calls return the log file chosen then.
    """

    global _INITIALIZED
    log_file = log_path or ensure_data_dir(log_dir) / LOG_FILE_NAME
    if _INITIALIZED:
        return log_file

    log_file.parent.mkdir(parents=True, exist_ok=True)
    resolved_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(str(log_file), maxBytes=1_000_000, backupCount=5)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(max(resolved_level, logging.WARNING))

    root = logging.getLogger()
    root.setLevel(resolved_level)
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    if resolved_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _INITIALIZED = True
    logging.getLogger(__name__).debug("Logging configured. Output file: %s", log_file)
    return log_file


__all__ = ["LOG_FILE_NAME", "configure_logging"]
