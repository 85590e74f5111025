# === NAVMAP v1 ===
# {
#   "module": "FileFetch.fetch",
#   "purpose": "Walk a scheme's mechanism chain until one verified retrieval succeeds",
#   "sections": [
#     {"id": "fetchattempt", "name": "FetchAttempt", "anchor": "class-fetchattempt", "kind": "class"},
#     {"id": "ensure-directory", "name": "ensure_directory", "anchor": "function-ensure-directory", "kind": "function"},
#     {"id": "fetcher", "name": "Fetcher", "anchor": "class-fetcher", "kind": "class"},
#     {"id": "fetch", "name": "fetch", "anchor": "function-fetch", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Fetch orchestration.

:class:`Fetcher` tries the registry's mechanisms for a source's scheme strictly
in order.  Blacklisted or previously failed mechanisms are skipped, mechanisms
that turn out to be unavailable are added to the failure cache, and the first
mechanism whose result exists with a non-zero size wins.  Only total exhaustion
reaches the caller, as :class:`~FileFetch.errors.NoMechanismSucceeded`.

Partially written files left behind by a failed mechanism are not removed.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import DirectoryCreateError, NoMechanismSucceeded, UriParseError
from .logging_utils import generate_correlation_id
from .mechanisms import FetchContext, Outcome, Success, TransferFailure, Unavailable
from .registry import MechanismRegistry, default_registry
from .settings import FetchSettings, get_settings
from .uri import SourceDescriptor

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

__all__ = ["FetchAttempt", "Fetcher", "ensure_directory", "fetch"]


@dataclass
class FetchAttempt:
    """Trail of a single fetch call, one ``(mechanism, outcome)`` pair per step."""

    uri: str
    scheme: str
    destination: Path
    correlation_id: str = field(default_factory=generate_correlation_id)
    steps: List[Tuple[str, str]] = field(default_factory=list)
    path: Optional[Path] = None

    @property
    def succeeded(self) -> bool:
        return self.path is not None

    def record(self, mechanism: str, outcome: str) -> None:
        self.steps.append((mechanism, outcome))


def ensure_directory(directory: PathLike) -> Path:
    """Create ``directory`` and its parents if needed.

    Raises:
        DirectoryCreateError: If the path exists as a non-directory or cannot
            be created.
    """

    path = Path(directory).expanduser()
    if path.is_dir():
        return path
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryCreateError(f"Could not create path '{path}': {exc}", path=path) from exc
    return path


def _verified(outcome: Success) -> Optional[Path]:
    produced = Path(outcome.path)
    try:
        if produced.is_file() and produced.stat().st_size > 0:
            return produced.resolve()
    except OSError:
        return None
    return None


class Fetcher:
    """Fetch orchestrator bound to a registry and settings object.

    Args:
        registry: Mechanism registry. Defaults to one built from ``settings``
            when those are given, else the process-wide :func:`default_registry`.
        settings: Fetch settings; defaults to :func:`get_settings`.
        logger: Logger used for per-mechanism diagnostics.
    """

    def __init__(
        self,
        registry: Optional[MechanismRegistry] = None,
        settings: Optional[FetchSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        if registry is None:
            registry = settings.build_registry() if settings is not None else default_registry()
        self.registry = registry
        self.logger = logger or LOGGER

    def fetch(self, source: Union[SourceDescriptor, str], to: Optional[PathLike] = None) -> Path:
        """Retrieve ``source`` into ``to`` (default: current directory).

        Returns:
            Absolute path of the retrieved, non-empty file.

        Raises:
            UriParseError: If ``source`` is malformed or names no file.
            DirectoryCreateError: If ``to`` cannot be created.
            NoMechanismSucceeded: If every candidate mechanism failed.
        """

        attempt = self.fetch_with_report(source, to)
        if attempt.path is None:
            raise NoMechanismSucceeded(attempt.uri)
        return attempt.path

    def fetch_with_report(
        self, source: Union[SourceDescriptor, str], to: Optional[PathLike] = None
    ) -> FetchAttempt:
        """Like :meth:`fetch` but return the attempt trail instead of raising on exhaustion."""

        if isinstance(source, str):
            source = SourceDescriptor.from_uri(source)
        if not source.file:
            raise UriParseError(f"URI '{source.uri}' does not name a file", uri=source.uri)

        destination = ensure_directory(to if to is not None else Path.cwd())
        target = destination / source.file
        context = self.settings.fetch_context()
        attempt = FetchAttempt(uri=source.uri, scheme=source.scheme, destination=destination)
        verbose = logging.INFO if context.debug else logging.DEBUG

        def extra(stage: str = "fetch", **fields: object) -> Dict[str, object]:
            return {"stage": stage, "correlation_id": attempt.correlation_id, "uri": source.uri, **fields}

        candidates = self.registry.mechanisms_for(source.scheme)
        if not candidates:
            self.logger.warning("no mechanisms registered for scheme", extra=extra(scheme=source.scheme))

        for name in candidates:
            adapter = self.registry.claim(name)
            if adapter is None:
                if self.registry.is_allowed(name):
                    self.logger.warning("no adapter registered for mechanism", extra=extra(mechanism=name))
                    attempt.record(name, "missing")
                else:
                    attempt.record(name, "skipped")
                continue

            self.logger.log(verbose, "trying mechanism", extra=extra(mechanism=name, target=str(target)))
            outcome = self._invoke(name, adapter, source, target, context)

            if isinstance(outcome, Unavailable):
                self.registry.mark_failed(name)
                self.logger.log(
                    verbose, "mechanism unavailable", extra=extra(mechanism=name, reason=outcome.reason)
                )
                attempt.record(name, outcome.kind)
                continue

            if not isinstance(outcome, Success):
                level = logging.WARNING if isinstance(outcome, TransferFailure) else verbose
                self.logger.log(
                    level,
                    "mechanism did not fetch file",
                    extra=extra(mechanism=name, outcome=outcome.kind, reason=outcome.reason),
                )
                attempt.record(name, outcome.kind)
                continue

            resolved = _verified(outcome)
            if resolved is None:
                self.logger.warning(
                    f"'{name}' said it fetched '{outcome.path}', but it was not created",
                    extra=extra("verify", mechanism=name),
                )
                self.registry.mark_failed(name)
                attempt.record(name, "unverified")
                continue

            attempt.record(name, outcome.kind)
            attempt.path = resolved
            self.logger.log(verbose, "fetched file", extra=extra(mechanism=name, path=str(resolved)))
            return attempt

        return attempt

    def _invoke(self, name, adapter, source, target, context: FetchContext) -> Outcome:
        try:
            return adapter.attempt(source, target, context)
        except Exception as exc:  # third-party adapters must not abort the chain
            self.logger.warning(
                "mechanism raised an exception",
                extra={"stage": "fetch", "mechanism": name, "error": repr(exc)},
                exc_info=context.debug,
            )
            return TransferFailure(f"{type(exc).__name__}: {exc}")


def fetch(
    uri: Union[SourceDescriptor, str],
    to: Optional[PathLike] = None,
    *,
    registry: Optional[MechanismRegistry] = None,
    settings: Optional[FetchSettings] = None,
) -> Path:
    """Fetch ``uri`` into ``to`` with the process-wide registry and settings.

    Examples:
        >>> fetch("file:///etc/hostname", to="/tmp/filefetch")  # doctest: +SKIP
        PosixPath('/tmp/filefetch/hostname')
    """

    return Fetcher(registry=registry, settings=settings).fetch(uri, to)
