"""
Structured Logging Utilities

Central logging setup for FileFetch: a console handler for humans and, when a
log directory is supplied, a rotating JSON-lines file whose records carry the
``extra`` fields (``stage``, ``mechanism``, ``uri`` ...) attached by the fetch
pipeline.  Anonymous FTP passwords and other secrets are masked before they
are written.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from .settings import LoggingConfiguration

LOGGER_NAME = "FileFetch"

_SENSITIVE_KEYS = {"authorization", "password", "passwd", "token", "secret", "from_email"}
_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Return a copy of ``payload`` with credential-like values replaced.

    Examples:
        >>> mask_sensitive_data({"password": "me@example.com", "status": "ok"})
        {'password': '***masked***', 'status': 'ok'}
    """

    masked: Dict[str, object] = {}
    for key, value in payload.items():
        lower = key.lower()
        if lower in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        elif isinstance(value, str) and value.lower().startswith("-auth=anonymous:"):
            masked[key] = "-auth=anonymous:***masked***"
        else:
            masked[key] = value
    return masked


def generate_correlation_id() -> str:
    """Create a twelve character identifier linking the records of one fetch."""

    return uuid.uuid4().hex[:12]


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_obj[key] = value
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


def setup_logging(
    config: Optional[LoggingConfiguration] = None,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Configure the ``FileFetch`` logger.

    Handlers installed by earlier calls are replaced, so the function can be
    invoked repeatedly (for example once per CLI invocation in tests).

    Args:
        config: Logging configuration; defaults to :class:`LoggingConfiguration`.
        log_dir: Directory for the JSON-lines log file. No file handler is
            installed when omitted.

    Returns:
        The configured package logger.
    """

    config = config or LoggingConfiguration()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_filefetch_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._filefetch_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            log_dir / f"filefetch-{today}.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._filefetch_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


__all__ = ["JSONFormatter", "generate_correlation_id", "mask_sensitive_data", "setup_logging"]
