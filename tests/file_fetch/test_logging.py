"""Logging helper coverage: masking, JSON records and handler management."""

from __future__ import annotations

import json
import logging

from FileFetch.logging_utils import JSONFormatter, generate_correlation_id, mask_sensitive_data, setup_logging
from FileFetch.settings import LoggingConfiguration


def test_mask_sensitive_data_masks_passwords_and_auth_arguments():
    masked = mask_sensitive_data(
        {
            "password": "me@example.org",
            "argument": "-auth=anonymous:me@example.org",
            "nested": {"token": "abc", "status": "ok"},
            "mechanism": "lynx",
        }
    )
    assert masked["password"] == "***masked***"
    assert masked["argument"] == "-auth=anonymous:***masked***"
    assert masked["nested"] == {"token": "***masked***", "status": "ok"}
    assert masked["mechanism"] == "lynx"


def test_json_formatter_includes_extra_fields():
    record = logging.makeLogRecord(
        {"msg": "trying mechanism", "levelname": "INFO", "name": "FileFetch.fetch"}
    )
    record.mechanism = "wget"
    record.stage = "fetch"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "trying mechanism"
    assert payload["mechanism"] == "wget"
    assert payload["stage"] == "fetch"
    assert payload["timestamp"].endswith("Z")


def test_correlation_ids_are_short_and_unique():
    first, second = generate_correlation_id(), generate_correlation_id()
    assert len(first) == 12
    assert first != second


def test_setup_logging_writes_json_lines(tmp_path):
    logger = setup_logging(LoggingConfiguration(level="DEBUG"), log_dir=tmp_path)
    logging.getLogger("FileFetch.fetch").info("fetched file", extra={"mechanism": "curl"})
    for handler in logger.handlers:
        handler.flush()

    files = list(tmp_path.glob("filefetch-*.jsonl"))
    assert len(files) == 1
    lines = [json.loads(line) for line in files[0].read_text().splitlines()]
    assert any(line["message"] == "fetched file" and line["mechanism"] == "curl" for line in lines)


def test_setup_logging_replaces_managed_handlers():
    logger = setup_logging(LoggingConfiguration())
    setup_logging(LoggingConfiguration())
    managed = [h for h in logger.handlers if getattr(h, "_filefetch_managed", False)]
    assert len(managed) == 1
    assert logger.level == logging.INFO
