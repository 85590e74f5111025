# === NAVMAP v1 ===
# {
#   "module": "FileFetch.uri",
#   "purpose": "Decompose fetchable URIs and expose immutable source descriptors",
#   "sections": [
#     {"id": "sourcefields", "name": "SourceFields", "anchor": "class-sourcefields", "kind": "class"},
#     {"id": "parse-uri", "name": "parse_uri", "anchor": "function-parse-uri", "kind": "function"},
#     {"id": "sourcedescriptor", "name": "SourceDescriptor", "anchor": "class-sourcedescriptor", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""URI decomposition for the fetch pipeline.

URIs handed to :func:`FileFetch.fetch` are always Unix-style, so the split into
directory and leaf filename follows POSIX rules regardless of the host
platform.  ``parse_uri`` returns the raw fields and :class:`SourceDescriptor`
freezes them together with the original string::

    >>> parse_uri("ftp://cpan.org/pub/mirror/index.txt")
    SourceFields(uri='ftp://cpan.org/pub/mirror/index.txt', scheme='ftp', host='cpan.org', path='/pub/mirror/', file='index.txt')
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import UriParseError

__all__ = ["SourceFields", "SourceDescriptor", "parse_uri", "split_remote_path"]

_SCHEME_RE = re.compile(r"^(\w+)://", re.ASCII)
_FILE_SHORT_RE = re.compile(r"^(file):(?=/)", re.ASCII | re.IGNORECASE)
_HOST_PATH_RE = re.compile(r"([^/]*)(/.*)$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class SourceFields:
    """Raw fields produced by :func:`parse_uri`."""

    uri: str
    scheme: str
    host: str
    path: str
    file: str


def split_remote_path(remote: str) -> tuple[str, str]:
    """Split ``remote`` into a directory ending in ``/`` and a leaf filename.

    Examples:
        >>> split_remote_path("/dir/subdir/file.ext")
        ('/dir/subdir/', 'file.ext')
        >>> split_remote_path("/dir/")
        ('/dir/', '')
    """

    directory, sep, leaf = remote.rpartition("/")
    return directory + sep, leaf


def parse_uri(uri: str) -> SourceFields:
    """Decompose ``uri`` into scheme, host, directory path and filename.

    Args:
        uri: URI of the form ``scheme://host/path/to/file`` or
            ``file:///path/to/file`` (``file:/path/to/file`` is accepted too).

    Returns:
        :class:`SourceFields` with ``path + file`` equal to the remote path.

    Raises:
        UriParseError: If the scheme is missing, a non-file URI carries no
            path component, or a file URI is not absolute.
    """

    if not isinstance(uri, str) or not uri.strip():
        raise UriParseError("URI must be a non-empty string", uri=uri if isinstance(uri, str) else None)

    match = _SCHEME_RE.match(uri) or _FILE_SHORT_RE.match(uri)
    if match is None:
        raise UriParseError(f"URI '{uri}' has no scheme", uri=uri)
    scheme = match.group(1).lower()
    remainder = uri[match.end() :]

    if scheme == "file":
        host = ""
        remote = remainder
        if not remote.startswith("/"):
            raise UriParseError(f"file URI '{uri}' must carry an absolute path", uri=uri)
    else:
        found = _HOST_PATH_RE.match(remainder)
        if found is None:
            raise UriParseError(f"URI '{uri}' has no path component", uri=uri)
        host, remote = found.group(1), found.group(2)

    path, leaf = split_remote_path(remote)
    return SourceFields(uri=uri, scheme=scheme, host=host, path=path, file=leaf)


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """Immutable description of the remote file a fetch call targets.

    Attributes:
        uri: Original URI, unmodified.
        scheme: Lower-cased scheme (``http``, ``ftp`` or ``file``).
        host: Remote host; always empty for ``file`` URIs.
        path: Directory portion of the remote location, ending in ``/``.
        file: Leaf filename; empty when the URI ends in ``/``.
    """

    uri: str
    scheme: str
    host: str = ""
    path: str = "/"
    file: str = ""

    def __post_init__(self) -> None:
        if not self.uri:
            raise UriParseError("SourceDescriptor requires a uri")
        if not self.scheme:
            raise UriParseError("SourceDescriptor requires a scheme", uri=self.uri)
        if self.scheme == "file" and self.host:
            raise UriParseError("file URIs cannot carry a host", uri=self.uri)
        if not self.path.endswith("/"):
            raise UriParseError(f"path '{self.path}' must end with '/'", uri=self.uri)

    @classmethod
    def from_uri(cls, uri: str) -> "SourceDescriptor":
        """Parse ``uri`` and return the corresponding descriptor."""

        fields = parse_uri(uri)
        return cls(
            uri=fields.uri,
            scheme=fields.scheme,
            host=fields.host,
            path=fields.path,
            file=fields.file,
        )

    @property
    def remote_path(self) -> str:
        """Full remote path (``path + file``)."""

        return self.path + self.file
