"""Library-backed retrieval through the shared HTTPX client.

Besides plain ``http`` downloads this mechanism serves ``file`` URIs by copying
the local path, so a single in-process mechanism covers both schemes.  Existing
targets are refreshed with ``If-Modified-Since`` and a ``304`` response counts
as success, leaving the current copy in place.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from typing import Callable, Optional

import httpx

from ..net import get_http_client
from ..uri import SourceDescriptor
from .base import FetchContext, FetchMechanism, NotApplicable, Outcome, Success, TransferFailure

LOGGER = logging.getLogger(__name__)

_HTTP_SCHEMES = frozenset({"http", "https"})


def _apply_last_modified(target: Path, header: Optional[str]) -> None:
    if not header:
        return
    try:
        stamp = parsedate_to_datetime(header).timestamp()
    except (TypeError, ValueError, IndexError, OverflowError):
        LOGGER.debug("ignoring malformed Last-Modified header", extra={"value": header})
        return
    with contextlib.suppress(OSError):
        os.utime(target, (stamp, stamp))


class HttpLibraryMechanism(FetchMechanism):
    """Fetch ``http`` and ``file`` URIs in-process using HTTPX."""

    name = "httpx"

    def __init__(self, client_provider: Optional[Callable[[float], httpx.Client]] = None) -> None:
        self._client_provider = client_provider or get_http_client

    def attempt(self, source: SourceDescriptor, target: Path, context: FetchContext) -> Outcome:
        if source.scheme == "file":
            return self._copy_local(source, target)
        if source.scheme not in _HTTP_SCHEMES:
            return NotApplicable(f"httpx cannot retrieve '{source.scheme}' URIs")
        return self._download(source, target, context)

    def _copy_local(self, source: SourceDescriptor, target: Path) -> Outcome:
        origin = Path(source.remote_path)
        if not origin.is_file():
            return TransferFailure(f"local file '{origin}' does not exist")
        try:
            shutil.copyfile(origin, target)
        except shutil.SameFileError:
            return Success(target)
        except OSError as exc:
            return TransferFailure(f"could not copy '{origin}': {exc}")
        return Success(target)

    def _download(self, source: SourceDescriptor, target: Path, context: FetchContext) -> Outcome:
        headers = {"User-Agent": context.user_agent, "From": context.from_email}
        if target.is_file() and target.stat().st_size > 0:
            headers["If-Modified-Since"] = formatdate(target.stat().st_mtime, usegmt=True)

        client = self._client_provider(context.timeout_sec)
        partial = target.with_name(target.name + ".part")
        try:
            with client.stream("GET", source.uri, headers=headers, timeout=context.timeout_sec) as response:
                if response.status_code == 304:
                    LOGGER.debug(
                        "remote file not modified",
                        extra={"stage": "fetch", "mechanism": self.name, "uri": source.uri},
                    )
                    return Success(target)
                if response.status_code != 200:
                    return TransferFailure(
                        f"HTTP response code {response.status_code} [{response.reason_phrase}]"
                    )
                with partial.open("wb") as handle:
                    for chunk in response.iter_bytes():
                        handle.write(chunk)
                os.replace(partial, target)
                _apply_last_modified(target, response.headers.get("Last-Modified"))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return TransferFailure(f"HTTP request failed: {exc}")
        except OSError as exc:
            return TransferFailure(f"could not write '{target}': {exc}")
        finally:
            with contextlib.suppress(OSError):
                partial.unlink(missing_ok=True)
        return Success(target)
