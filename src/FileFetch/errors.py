"""Exception hierarchy shared across URI parsing, mechanism probing, and fetching.

Fetching a file touches several layers: decomposing the caller's URI,
preparing the destination directory, and walking the per-scheme chain of
retrieval mechanisms.  Failures inside a single mechanism are recovered by the
orchestrator and never escape; the classes below describe the few outcomes that
do reach callers, plus the configuration and probing errors raised while
wiring the registry together.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

__all__ = [
    "FileFetchError",
    "UriParseError",
    "DirectoryCreateError",
    "FetchError",
    "NoMechanismSucceeded",
    "ConfigurationError",
    "MechanismUnavailable",
]


class FileFetchError(RuntimeError):
    """Base exception for URI parsing, configuration, or fetch failures."""


class UriParseError(FileFetchError):
    """Raised when a URI cannot be decomposed into scheme, host, path and file."""

    def __init__(self, message: str, *, uri: Optional[str] = None) -> None:
        super().__init__(message)
        self.uri = uri


class DirectoryCreateError(FileFetchError):
    """Raised when the destination directory is missing and cannot be created."""

    def __init__(self, message: str, *, path: Union[str, Path, None] = None) -> None:
        super().__init__(message)
        self.path = path


class FetchError(FileFetchError):
    """Base class for terminal fetch outcomes."""


class NoMechanismSucceeded(FetchError):
    """Raised when every candidate mechanism for a scheme has been exhausted.

    The message intentionally omits which mechanisms ran; enable debug mode on
    the settings to get a per-mechanism trail in the logs.
    """

    def __init__(self, uri: str) -> None:
        super().__init__(f"Unable to fetch '{uri}': no retrieval mechanism succeeded")
        self.uri = uri


class ConfigurationError(FileFetchError):
    """Raised when settings or registry wiring are invalid."""


class MechanismUnavailable(FileFetchError):
    """Raised when a mechanism's library or executable is missing."""

    def __init__(self, mechanism: str, reason: str) -> None:
        super().__init__(f"{mechanism}: {reason}")
        self.mechanism = mechanism
        self.reason = reason
# === NAVMAP v1 ===
# {
#   "module": "FileFetch.errors",
#   "purpose": "Define the exception hierarchy used across URI parsing, configuration, and fetching",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "parse", "name": "URI & Destination Errors", "anchor": "PAR", "kind": "api"},
#     {"id": "fetch", "name": "Fetch Outcomes", "anchor": "FET", "kind": "api"},
#     {"id": "configuration", "name": "Configuration & Probing Errors", "anchor": "CFG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
