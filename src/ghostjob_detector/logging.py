"""Package-wide log output for ghostjob-detector.

Importing this module attaches one stderr handler to the
``ghostjob_detector`` logger.  Module loggers (``getLogger(__name__)``)
are its children and need no setup of their own.

The CLI's ``--log-file`` flag calls :func:`configure_file_logging` so a
failed judge call or store write can be read back after the terminal
has scrolled away.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

DEFAULT_LOG_DIR = "data/logs"
LOG_FILE_PREFIX = "ghostjob-detector"

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("ghostjob_detector")


def _formatter() -> logging.Formatter:
    return logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)


def _attach_stderr_handler() -> None:
    # Re-importing (e.g. under importlib.reload) must not double every line
    if any(getattr(h, "_ghostjob_stderr", False) for h in logger.handlers):
        return
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.INFO)
    stderr_handler.setFormatter(_formatter())
    stderr_handler._ghostjob_stderr = True  # type: ignore[attr-defined]
    logger.addHandler(stderr_handler)
    logger.setLevel(logging.INFO)


_attach_stderr_handler()


def configure_file_logging(
    log_dir: str = DEFAULT_LOG_DIR,
    *,
    level: int = logging.INFO,
) -> logging.FileHandler:
    """Also write package logs to ``<log_dir>/ghostjob-detector_<timestamp>.log``.

    The directory is created when missing.  The stderr handler stays in
    place.  The new handler is returned so tests can detach and close it.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")

    file_handler = logging.FileHandler(
        str(directory / f"{LOG_FILE_PREFIX}_{stamp}.log"), encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(_formatter())

    # A DEBUG file handler sees nothing while the logger itself filters at INFO
    logger.setLevel(min(logger.level, level))
    logger.addHandler(file_handler)
    return file_handler


__all__ = ["DEFAULT_LOG_DIR", "configure_file_logging", "logger"]
