"""Settings defaults, validation and ``FILEFETCH_*`` environment overrides."""

from __future__ import annotations

import pytest

from FileFetch import __version__
from FileFetch.errors import ConfigurationError
from FileFetch.settings import DEFAULT_METHODS, FetchSettings, LoggingConfiguration, get_settings


def test_defaults():
    settings = FetchSettings()
    assert settings.passive_ftp is True
    assert settings.debug is False
    assert settings.from_email == "filefetch@example.com"
    assert settings.user_agent == f"FileFetch/{__version__}"
    assert settings.blacklist == ["ftp"]
    assert settings.methods == DEFAULT_METHODS


def test_default_tables_are_not_shared_between_instances():
    first = FetchSettings()
    first.methods["http"].append("extra")
    assert FetchSettings().methods["http"] == ["httpx", "wget", "curl", "lynx"]


def test_names_are_normalised():
    settings = FetchSettings(blacklist=[" Lynx", "lynx", "CURL"], methods={"HTTP": ["Wget", "curl"]})
    assert settings.blacklist == ["lynx", "curl"]
    assert settings.methods == {"http": ["wget", "curl"]}


def test_invalid_from_email_is_rejected():
    with pytest.raises(ConfigurationError):
        get_settings(from_email="not-an-address")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FILEFETCH_PASSIVE_FTP", "0")
    monkeypatch.setenv("FILEFETCH_DEBUG", "true")
    monkeypatch.setenv("FILEFETCH_FROM_EMAIL", "ops@example.org")
    monkeypatch.setenv("FILEFETCH_BLACKLIST", "lynx, Curl")
    monkeypatch.setenv("FILEFETCH_LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.passive_ftp is False
    assert settings.debug is True
    assert settings.from_email == "ops@example.org"
    assert settings.blacklist == ["lynx", "curl"]
    assert settings.logging.level == "DEBUG"


def test_keyword_overrides_win_and_none_falls_through(monkeypatch):
    monkeypatch.setenv("FILEFETCH_TIMEOUT_SEC", "12.5")
    monkeypatch.setenv("FILEFETCH_DEBUG", "1")

    settings = get_settings(timeout_sec=3.0, debug=None)

    assert settings.timeout_sec == 3.0
    assert settings.debug is True


def test_invalid_environment_value_raises(monkeypatch):
    monkeypatch.setenv("FILEFETCH_TIMEOUT_SEC", "soon")
    with pytest.raises(ConfigurationError):
        get_settings()


def test_fetch_context_snapshot():
    settings = FetchSettings(passive_ftp=False, debug=True, timeout_sec=4.0)
    context = settings.fetch_context()
    settings.passive_ftp = True
    assert context.passive_ftp is False
    assert context.debug is True
    assert context.timeout_sec == 4.0


def test_build_registry_applies_tables_and_blacklist():
    settings = FetchSettings(blacklist=["wget"], methods={"http": ["curl", "wget"]})
    registry = settings.build_registry()
    assert registry.mechanisms_for("http") == ("curl", "wget")
    assert registry.mechanisms_for("ftp") == ()
    assert not registry.is_allowed("wget")
    assert registry.is_allowed("ftp")


def test_logging_level_validation():
    assert LoggingConfiguration(level="warning").level == "WARNING"
    with pytest.raises(ValueError):
        LoggingConfiguration(level="chatty")
