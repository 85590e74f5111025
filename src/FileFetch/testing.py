"""Helpers for exercising FileFetch without real network access or tools."""

from __future__ import annotations

import contextlib
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import httpx

from .mechanisms.base import FetchContext, FetchMechanism, Outcome, Success
from .net import configure_http_client, reset_http_client
from .uri import SourceDescriptor

__all__ = ["StubMechanism", "use_mock_http_client"]


@contextlib.contextmanager
def use_mock_http_client(transport: httpx.BaseTransport, **client_kwargs) -> Iterator[httpx.Client]:
    """Temporarily install an HTTPX client backed by ``transport``."""

    client = httpx.Client(transport=transport, **client_kwargs)
    configure_http_client(client=client)
    try:
        yield client
    finally:
        reset_http_client()
        client.close()


class StubMechanism(FetchMechanism):
    """Mechanism returning scripted outcomes and recording every call.

    ``Success`` outcomes write ``payload`` to the target first unless
    ``payload`` is ``None``; the last scripted outcome repeats once the script
    runs out.
    """

    def __init__(
        self,
        name: str,
        outcomes: Sequence[Outcome],
        *,
        payload: Optional[bytes] = b"stub payload\n",
        available: bool = True,
    ) -> None:
        if not outcomes:
            raise ValueError("StubMechanism needs at least one outcome")
        self.name = name
        self._outcomes: List[Outcome] = list(outcomes)
        self._payload = payload
        self._available = available
        self.calls: List[Tuple[SourceDescriptor, Path, FetchContext]] = []

    def available(self) -> bool:
        return self._available

    def attempt(self, source: SourceDescriptor, target: Path, context: FetchContext) -> Outcome:
        self.calls.append((source, target, context))
        index = min(len(self.calls) - 1, len(self._outcomes) - 1)
        outcome = self._outcomes[index]
        if isinstance(outcome, Success):
            if self._payload is not None:
                target.write_bytes(self._payload)
            return Success(target)
        return outcome
