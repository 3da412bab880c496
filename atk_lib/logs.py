from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _resolve_level(value: str | None) -> int:
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logger(name: str, log_path: Path | None = None, *, console: bool = False) -> logging.Logger:
    """Attach a file handler (and optionally stderr) to the ``atk`` logger tree.

    Progress lines go to stdout via ``print``; this logger keeps the command
    trail for triage. Returns ``logging.getLogger(name)``.
    """

    root = logging.getLogger("atk")
    logger = logging.getLogger(name)
    if root.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []

    file_handler_error: Exception | None = None
    if log_path is not None:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
        except OSError as exc:
            file_handler_error = exc
        else:
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

    if console or not handlers:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        if not console:
            stream_handler.setLevel(logging.WARNING)
        handlers.append(stream_handler)

    for handler in handlers:
        root.addHandler(handler)

    root.setLevel(_resolve_level(os.getenv("ATK_LOG_LEVEL")))
    root.propagate = False

    if file_handler_error:
        logger.warning(
            "Falling back to stderr logging because %s could not be opened: %s",
            log_path,
            file_handler_error,
        )

    return logger


def reset_logging() -> None:
    root = logging.getLogger("atk")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
