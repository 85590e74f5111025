"""Retrieval mechanisms and the outcome types they report."""

from __future__ import annotations

from typing import Dict

from .base import (
    FetchContext,
    FetchMechanism,
    NotApplicable,
    Outcome,
    Success,
    TransferFailure,
    Unavailable,
)
from .commands import (
    CommandMechanism,
    CurlMechanism,
    FtpCommandMechanism,
    LynxMechanism,
    NcftpMechanism,
    WgetMechanism,
)
from .ftp import FtpLibraryMechanism
from .http import HttpLibraryMechanism


def builtin_mechanisms() -> Dict[str, FetchMechanism]:
    """Return fresh instances of every built-in mechanism keyed by name."""

    mechanisms = (
        HttpLibraryMechanism(),
        FtpLibraryMechanism(),
        WgetMechanism(),
        CurlMechanism(),
        LynxMechanism(),
        NcftpMechanism(),
        FtpCommandMechanism(),
    )
    return {mechanism.name: mechanism for mechanism in mechanisms}


__all__ = [
    "CommandMechanism",
    "CurlMechanism",
    "FetchContext",
    "FetchMechanism",
    "FtpCommandMechanism",
    "FtpLibraryMechanism",
    "HttpLibraryMechanism",
    "LynxMechanism",
    "NcftpMechanism",
    "NotApplicable",
    "Outcome",
    "Success",
    "TransferFailure",
    "Unavailable",
    "WgetMechanism",
    "builtin_mechanisms",
]
