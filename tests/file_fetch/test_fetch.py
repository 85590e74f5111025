"""Fetch orchestration: ordering, failure memoisation and verification."""

from __future__ import annotations

import logging
import stat
import os
from pathlib import Path

import pytest

from FileFetch import fetch as fetch_uri
from FileFetch.errors import DirectoryCreateError, NoMechanismSucceeded, UriParseError
from FileFetch.fetch import Fetcher, ensure_directory
from FileFetch.mechanisms import NotApplicable, Success, TransferFailure, Unavailable
from FileFetch.registry import MechanismRegistry, default_registry
from FileFetch.settings import FetchSettings
from FileFetch.testing import StubMechanism
from FileFetch.uri import SourceDescriptor


def _registry(scheme: str, *stubs: StubMechanism) -> MechanismRegistry:
    registry = MechanismRegistry(blacklist=[])
    for stub in stubs:
        registry.register(stub, schemes=[scheme])
    return registry


def test_skips_failed_continues_past_transfer_failure(tmp_path, settings):
    a = StubMechanism("a", [Success(Path("unused"))])
    b = StubMechanism("b", [TransferFailure("connection reset")])
    c = StubMechanism("c", [Success(Path("unused"))])
    registry = _registry("http", a, b, c)
    registry.mark_failed("a")

    source = SourceDescriptor.from_uri("http://example.test/a/b.txt")
    result = Fetcher(registry, settings).fetch(source, tmp_path)

    assert result == (tmp_path / "b.txt").resolve()
    assert a.calls == []
    assert len(b.calls) == 1
    assert len(c.calls) == 1
    assert not registry.is_failed("b")


def test_end_to_end_unavailable_failure_is_memoised(tmp_path, settings):
    failing = StubMechanism("stub_fails", [Unavailable("library missing")])
    succeeding = StubMechanism("stub_succeeds", [Success(Path("unused"))], payload=b"hello")
    registry = _registry("http", failing, succeeding)
    destination = tmp_path / "fresh"

    result = Fetcher(registry, settings).fetch("http://example.test/a/b.txt", destination)

    assert result == (destination / "b.txt").resolve()
    assert result.is_absolute()
    assert result.read_bytes() == b"hello"
    assert registry.is_failed("stub_fails")

    Fetcher(registry, settings).fetch("http://example.test/a/b.txt", destination)
    assert len(failing.calls) == 1
    assert len(succeeding.calls) == 2


def test_end_to_end_transfer_failure_is_not_memoised(tmp_path, settings):
    failing = StubMechanism("stub_fails", [TransferFailure("timeout")])
    succeeding = StubMechanism("stub_succeeds", [Success(Path("unused"))])
    registry = _registry("http", failing, succeeding)

    Fetcher(registry, settings).fetch("http://example.test/a/b.txt", tmp_path)
    Fetcher(registry, settings).fetch("http://example.test/a/b.txt", tmp_path)

    assert not registry.is_failed("stub_fails")
    assert len(failing.calls) == 2


def test_exhaustion_raises_and_creates_no_file(tmp_path, settings):
    a = StubMechanism("stub_a", [TransferFailure("boom")])
    b = StubMechanism("stub_b", [TransferFailure("boom")])
    registry = _registry("ftp", a, b)

    with pytest.raises(NoMechanismSucceeded) as excinfo:
        Fetcher(registry, settings).fetch("ftp://example.test/pub/file.txt", tmp_path)

    assert excinfo.value.uri == "ftp://example.test/pub/file.txt"
    assert list(tmp_path.iterdir()) == []


def test_unknown_scheme_fails_with_no_mechanism(tmp_path, settings, empty_registry):
    with pytest.raises(NoMechanismSucceeded):
        Fetcher(empty_registry, settings).fetch("gopher://example.test/a.txt", tmp_path)


def test_first_success_stops_the_chain(tmp_path, settings):
    first = StubMechanism("first", [Success(Path("unused"))])
    second = StubMechanism("second", [Success(Path("unused"))])
    registry = _registry("http", first, second)

    Fetcher(registry, settings).fetch("http://example.test/x.bin", tmp_path)

    assert len(first.calls) == 1
    assert second.calls == []


def test_unverified_success_marks_mechanism_failed(tmp_path, settings, caplog):
    liar = StubMechanism("liar", [Success(Path("unused"))], payload=None)
    honest = StubMechanism("honest", [Success(Path("unused"))])
    registry = _registry("http", liar, honest)
    caplog.set_level(logging.WARNING, logger="FileFetch")

    result = Fetcher(registry, settings).fetch("http://example.test/x.bin", tmp_path)

    assert result.name == "x.bin"
    assert registry.is_failed("liar")
    assert any("but it was not created" in record.getMessage() for record in caplog.records)


def test_empty_file_counts_as_unverified(tmp_path, settings):
    empty = StubMechanism("empty", [Success(Path("unused"))], payload=b"")
    registry = _registry("http", empty)

    with pytest.raises(NoMechanismSucceeded):
        Fetcher(registry, settings).fetch("http://example.test/x.bin", tmp_path)
    assert registry.is_failed("empty")


def test_not_applicable_is_not_memoised(tmp_path, settings):
    declines = StubMechanism("declines", [NotApplicable("passive mode")])
    works = StubMechanism("works", [Success(Path("unused"))])
    registry = _registry("ftp", declines, works)

    Fetcher(registry, settings).fetch("ftp://example.test/x.bin", tmp_path)

    assert not registry.is_failed("declines")


def test_blacklisted_mechanism_is_never_invoked(tmp_path, settings):
    banned = StubMechanism("banned", [Success(Path("unused"))])
    allowed = StubMechanism("allowed", [Success(Path("unused"))])
    registry = _registry("http", banned, allowed)
    registry.blacklist_mechanism("banned")

    attempt = Fetcher(registry, settings).fetch_with_report("http://example.test/x.bin", tmp_path)

    assert banned.calls == []
    assert attempt.steps == [("banned", "skipped"), ("allowed", "success")]
    assert attempt.succeeded


def test_mechanism_without_adapter_is_skipped(tmp_path, settings):
    works = StubMechanism("works", [Success(Path("unused"))])
    registry = _registry("http", works)
    registry.set_methods("http", ["ghost", "works"])

    attempt = Fetcher(registry, settings).fetch_with_report("http://example.test/x.bin", tmp_path)

    assert attempt.steps == [("ghost", "missing"), ("works", "success")]
    assert not registry.is_failed("ghost")


def test_raising_adapter_is_treated_as_transfer_failure(tmp_path, settings):
    class Exploding(StubMechanism):
        def attempt(self, source, target, context):
            raise RuntimeError("adapter bug")

    registry = _registry(
        "http",
        Exploding("exploding", [TransferFailure()]),
        StubMechanism("works", [Success(Path("unused"))]),
    )

    attempt = Fetcher(registry, settings).fetch_with_report("http://example.test/x.bin", tmp_path)

    assert attempt.steps[0] == ("exploding", "transfer_failure")
    assert not registry.is_failed("exploding")


def test_fetch_with_report_returns_trail_on_exhaustion(tmp_path, settings):
    registry = _registry("http", StubMechanism("only", [Unavailable("missing")]))

    attempt = Fetcher(registry, settings).fetch_with_report("http://example.test/x.bin", tmp_path)

    assert not attempt.succeeded
    assert attempt.path is None
    assert attempt.steps == [("only", "unavailable")]


def test_context_carries_settings(tmp_path):
    stub = StubMechanism("stub", [Success(Path("unused"))])
    registry = _registry("ftp", stub)
    settings = FetchSettings(passive_ftp=False, debug=True, from_email="me@example.org")

    Fetcher(registry, settings).fetch("ftp://example.test/pub/x.bin", tmp_path)

    _, target, context = stub.calls[0]
    assert target == tmp_path / "x.bin"
    assert context.passive_ftp is False
    assert context.debug is True
    assert context.from_email == "me@example.org"


def test_passive_mode_does_not_touch_process_environment(tmp_path, settings, monkeypatch):
    monkeypatch.delenv("FTP_PASSIVE", raising=False)
    registry = _registry("ftp", StubMechanism("stub", [Success(Path("unused"))]))

    Fetcher(registry, settings).fetch("ftp://example.test/pub/x.bin", tmp_path)

    assert "FTP_PASSIVE" not in os.environ


def test_uri_without_filename_is_rejected(tmp_path, settings):
    stub = StubMechanism("stub", [Success(Path("unused"))])
    with pytest.raises(UriParseError):
        Fetcher(_registry("http", stub), settings).fetch("http://example.test/dir/", tmp_path)
    assert stub.calls == []


def test_destination_directory_is_created(tmp_path, settings):
    destination = tmp_path / "a" / "b" / "c"
    registry = _registry("http", StubMechanism("stub", [Success(Path("unused"))]))

    result = Fetcher(registry, settings).fetch("http://example.test/x.bin", destination)

    assert destination.is_dir()
    assert result.parent == destination.resolve()


def test_destination_that_is_a_file_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(DirectoryCreateError) as excinfo:
        ensure_directory(blocker / "sub")
    assert excinfo.value.path == blocker / "sub"


@pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
def test_unwritable_parent_raises(tmp_path):
    locked = tmp_path / "locked"
    locked.mkdir()
    locked.chmod(stat.S_IRUSR | stat.S_IXUSR)
    try:
        with pytest.raises(DirectoryCreateError):
            ensure_directory(locked / "child")
    finally:
        locked.chmod(stat.S_IRWXU)


def test_defaults_to_current_directory(tmp_path, settings, monkeypatch):
    monkeypatch.chdir(tmp_path)
    registry = _registry("http", StubMechanism("stub", [Success(Path("unused"))]))

    result = Fetcher(registry, settings).fetch("http://example.test/x.bin")

    assert result == (tmp_path / "x.bin").resolve()


def test_module_level_fetch_uses_given_registry(tmp_path, settings):
    registry = _registry("file", StubMechanism("stub", [Success(Path("unused"))]))
    result = fetch_uri("file:///srv/data/x.bin", tmp_path, registry=registry, settings=settings)
    assert result.name == "x.bin"


def test_file_scheme_with_settings_registry(tmp_path, settings):
    source = tmp_path / "src" / "payload.txt"
    source.parent.mkdir()
    source.write_text("payload")
    destination = tmp_path / "dest"

    result = fetch_uri(f"file://{source}", destination, settings=settings)

    assert result == (destination / "payload.txt").resolve()
    assert result.read_text() == "payload"


def test_settings_tables_and_blacklist_apply_without_explicit_registry(tmp_path):
    source = tmp_path / "src" / "p.txt"
    source.parent.mkdir()
    source.write_text("payload")
    settings = FetchSettings(blacklist=["httpx"], methods={"file": ["httpx"]}, timeout_sec=5.0)

    attempt = Fetcher(settings=settings).fetch_with_report(f"file://{source}", tmp_path / "dest")

    assert attempt.steps == [("httpx", "skipped")]
    assert attempt.path is None
    with pytest.raises(NoMechanismSucceeded):
        fetch_uri(f"file://{source}", tmp_path / "dest", settings=settings)


def test_without_settings_the_process_registry_is_shared(tmp_path):
    assert Fetcher().registry is default_registry()
