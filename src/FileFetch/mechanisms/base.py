"""Mechanism contract and attempt outcomes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Union

from ..uri import SourceDescriptor

__all__ = [
    "FetchContext",
    "FetchMechanism",
    "NotApplicable",
    "Outcome",
    "Success",
    "TransferFailure",
    "Unavailable",
]


@dataclass(frozen=True, slots=True)
class FetchContext:
    """Per-call options handed to every mechanism attempt."""

    passive_ftp: bool = True
    debug: bool = False
    from_email: str = "filefetch@example.com"
    user_agent: str = "FileFetch"
    timeout_sec: float = 60.0


@dataclass(frozen=True, slots=True)
class Success:
    """The mechanism reports that ``path`` now holds the file."""

    path: Path
    kind: ClassVar[str] = "success"


@dataclass(frozen=True, slots=True)
class Unavailable:
    """The mechanism cannot run here (missing library or executable)."""

    reason: str = ""
    kind: ClassVar[str] = "unavailable"


@dataclass(frozen=True, slots=True)
class TransferFailure:
    """The mechanism ran but the transfer failed."""

    reason: str = ""
    kind: ClassVar[str] = "transfer_failure"


@dataclass(frozen=True, slots=True)
class NotApplicable:
    """The mechanism declines this source under the current options."""

    reason: str = ""
    kind: ClassVar[str] = "not_applicable"


Outcome = Union[Success, Unavailable, TransferFailure, NotApplicable]


class FetchMechanism(ABC):
    """One concrete way of retrieving a file.

    Which schemes a mechanism serves is decided by the registry's priority
    tables, not by the mechanism itself.
    """

    name: ClassVar[str] = ""

    def available(self) -> bool:
        """Return True when the underlying library or executable is present."""

        return True

    @abstractmethod
    def attempt(self, source: SourceDescriptor, target: Path, context: FetchContext) -> Outcome:
        """Try to retrieve ``source`` into ``target``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
