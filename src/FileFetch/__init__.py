"""Fetch a single file by URI using a prioritised chain of retrieval mechanisms.

The package decomposes ``http``, ``ftp`` and ``file`` URIs, then walks the
per-scheme mechanism list (the HTTPX client, :mod:`ftplib`, ``wget``, ``curl``,
``lynx``, ``ncftpget`` and the ``ftp`` client) until one of them produces a
non-empty file.  Mechanisms that cannot run in the current environment are
remembered for the life of the process.

Example:
    >>> from FileFetch import fetch
    >>> fetch("http://example.org/dir/file.txt", to="/tmp/downloads")  # doctest: +SKIP
    PosixPath('/tmp/downloads/file.txt')
"""

from __future__ import annotations

__version__ = "0.2.0"

from .errors import (  # noqa: E402
    ConfigurationError,
    DirectoryCreateError,
    FetchError,
    FileFetchError,
    MechanismUnavailable,
    NoMechanismSucceeded,
    UriParseError,
)
from .uri import SourceDescriptor, SourceFields, parse_uri  # noqa: E402
from .mechanisms import (  # noqa: E402
    FetchContext,
    FetchMechanism,
    NotApplicable,
    Success,
    TransferFailure,
    Unavailable,
)
from .settings import FetchSettings, get_settings  # noqa: E402
from .registry import MechanismRegistry, default_registry, reset_default_registry  # noqa: E402
from .fetch import FetchAttempt, Fetcher, fetch  # noqa: E402

__all__ = [
    "ConfigurationError",
    "DirectoryCreateError",
    "FetchAttempt",
    "FetchContext",
    "FetchError",
    "FetchMechanism",
    "FetchSettings",
    "Fetcher",
    "FileFetchError",
    "MechanismRegistry",
    "MechanismUnavailable",
    "NoMechanismSucceeded",
    "NotApplicable",
    "SourceDescriptor",
    "SourceFields",
    "Success",
    "TransferFailure",
    "Unavailable",
    "UriParseError",
    "__version__",
    "default_registry",
    "fetch",
    "get_settings",
    "parse_uri",
    "reset_default_registry",
]
