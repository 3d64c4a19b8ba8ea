"""Logging helpers for aws-exec-cmd.

All diagnostics go to stderr (and optionally a file) so that the wrapped
command's stdout is never mixed with ours.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from aws_exec_cmd.config import load_settings

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure process logging; *level* overrides the configured level."""
    settings = load_settings()
    level_name = (level or settings.logging.level).upper()
    resolved_level = getattr(logging, level_name, logging.WARNING)

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    handlers.append(stream_handler)

    file_error: OSError | None = None
    if settings.logging.file:
        try:
            Path(settings.logging.file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.logging.file)
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as exc:
            file_error = exc

    logging.basicConfig(level=resolved_level, handlers=handlers, force=True)
    # botocore logs request details at DEBUG; keep it one notch quieter.
    logging.getLogger("botocore").setLevel(max(resolved_level, logging.INFO))

    if file_error is not None:
        _logger.warning("Failed to open log file %s: %s", settings.logging.file, file_error)
