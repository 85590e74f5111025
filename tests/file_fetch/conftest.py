"""Shared fixtures for the file_fetch test suite."""

from __future__ import annotations

import logging

import pytest

from FileFetch.net import reset_http_client
from FileFetch.registry import MechanismRegistry, reset_default_registry
from FileFetch.settings import FetchSettings

_ENV_KEYS = (
    "FILEFETCH_PASSIVE_FTP",
    "FILEFETCH_DEBUG",
    "FILEFETCH_FROM_EMAIL",
    "FILEFETCH_USER_AGENT",
    "FILEFETCH_TIMEOUT_SEC",
    "FILEFETCH_BLACKLIST",
    "FILEFETCH_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch):
    """Keep environment overrides, the default registry and the HTTP client per-test."""

    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_default_registry()
    reset_http_client()
    yield
    reset_default_registry()
    reset_http_client()


@pytest.fixture
def settings() -> FetchSettings:
    return FetchSettings(timeout_sec=5.0)


@pytest.fixture
def empty_registry() -> MechanismRegistry:
    """Registry with no adapters, no tables and an empty blacklist."""

    return MechanismRegistry(blacklist=[])


@pytest.fixture
def fetch_logger() -> logging.Logger:
    logger = logging.getLogger("FileFetch.tests")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by ``setup_logging`` (CLI tests swap stdio streams)."""

    yield
    logger = logging.getLogger("FileFetch")
    for handler in list(logger.handlers):
        if getattr(handler, "_filefetch_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)
