"""Library-backed FTP retrieval using :mod:`ftplib`."""

from __future__ import annotations

import ftplib
import logging
from pathlib import Path
from typing import Callable, Tuple

from ..uri import SourceDescriptor
from .base import FetchContext, FetchMechanism, NotApplicable, Outcome, Success, TransferFailure

LOGGER = logging.getLogger(__name__)


def split_host_port(host: str, default_port: int = 21) -> Tuple[str, int]:
    """Split ``host[:port]`` (dropping any ``user@`` prefix) into its parts."""

    _, _, hostport = host.rpartition("@")
    name, sep, port = hostport.rpartition(":")
    if sep and port.isdigit() and name:
        return name, int(port)
    return hostport, default_port


class FtpLibraryMechanism(FetchMechanism):
    """Anonymous binary-mode retrieval through an :class:`ftplib.FTP` session."""

    name = "ftplib"

    def __init__(self, ftp_factory: Callable[..., ftplib.FTP] = ftplib.FTP) -> None:
        self._ftp_factory = ftp_factory

    def attempt(self, source: SourceDescriptor, target: Path, context: FetchContext) -> Outcome:
        if source.scheme != "ftp":
            return NotApplicable(f"ftplib cannot retrieve '{source.scheme}' URIs")

        host, port = split_host_port(source.host)
        try:
            with self._ftp_factory(timeout=context.timeout_sec) as session:
                session.connect(host, port)
                session.login("anonymous", context.from_email)
                session.set_pasv(context.passive_ftp)
                if context.debug:
                    session.set_debuglevel(1)
                with target.open("wb") as handle:
                    session.retrbinary(f"RETR {source.remote_path}", handle.write)
        except ftplib.all_errors as exc:
            LOGGER.debug(
                "ftp session failed",
                extra={"stage": "fetch", "mechanism": self.name, "host": host, "error": str(exc)},
            )
            return TransferFailure(f"could not fetch '{source.remote_path}' from '{host}': {exc}")
        return Success(target)
