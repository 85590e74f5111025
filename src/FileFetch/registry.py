# === NAVMAP v1 ===
# {
#   "module": "FileFetch.registry",
#   "purpose": "Per-scheme mechanism priority tables, blacklist, and failure cache",
#   "sections": [
#     {"id": "mechanismregistry", "name": "MechanismRegistry", "anchor": "class-mechanismregistry", "kind": "class"},
#     {"id": "default-registry", "name": "default_registry", "anchor": "function-default-registry", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Mechanism registry shared by every fetch call in a process.

The registry answers three questions for the orchestrator: which mechanisms
serve a scheme and in what order, whether a mechanism may be tried at all, and
which adapter implements it.  Mechanisms found to be unusable (missing library
or executable, or claiming success without producing a file) are recorded in a
failure cache that persists until :meth:`MechanismRegistry.clear_failures` is
called, so probing costs are paid once per process.

All reads and writes go through a single re-entrant lock; adapters themselves
run outside of it.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Tuple

from .mechanisms import FetchMechanism, builtin_mechanisms
from .settings import DEFAULT_BLACKLIST, DEFAULT_METHODS, get_settings

LOGGER = logging.getLogger(__name__)

__all__ = ["MechanismRegistry", "default_registry", "reset_default_registry"]


def _key(name: str) -> str:
    return str(name).strip().lower()


class MechanismRegistry:
    """Priority tables, adapters, blacklist, and failure cache.

    Attributes are only reachable through methods so every access happens
    under the registry lock.
    """

    def __init__(
        self,
        adapters: Optional[Mapping[str, FetchMechanism]] = None,
        *,
        methods: Optional[Mapping[str, Sequence[str]]] = None,
        blacklist: Optional[Iterable[str]] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._adapters: Dict[str, FetchMechanism] = {
            _key(name): adapter for name, adapter in (adapters or {}).items()
        }
        self._methods: Dict[str, Tuple[str, ...]] = {}
        for scheme, names in (methods or {}).items():
            self._methods[_key(scheme)] = tuple(_key(name) for name in names)
        self._blacklist = {_key(name) for name in (blacklist or ())}
        self._failed: Dict[str, bool] = {}

    @classmethod
    def with_defaults(
        cls,
        *,
        methods: Optional[Mapping[str, Sequence[str]]] = None,
        blacklist: Optional[Iterable[str]] = None,
    ) -> "MechanismRegistry":
        """Build a registry holding the built-in mechanisms.

        ``methods`` and ``blacklist`` default to :data:`DEFAULT_METHODS` and
        :data:`DEFAULT_BLACKLIST`; pass an empty list to clear the blacklist.
        """

        return cls(
            builtin_mechanisms(),
            methods=DEFAULT_METHODS if methods is None else methods,
            blacklist=DEFAULT_BLACKLIST if blacklist is None else blacklist,
        )

    # --- priority tables ------------------------------------------------------

    def mechanisms_for(self, scheme: str) -> Tuple[str, ...]:
        """Return mechanism names for ``scheme`` in priority order (empty if unknown)."""

        with self._lock:
            return self._methods.get(_key(scheme), ())

    def schemes(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._methods)

    def set_methods(self, scheme: str, names: Sequence[str]) -> None:
        """Replace the priority list for ``scheme``."""

        with self._lock:
            self._methods[_key(scheme)] = tuple(_key(name) for name in names)

    # --- adapters -------------------------------------------------------------

    def register(
        self,
        adapter: FetchMechanism,
        *,
        name: Optional[str] = None,
        schemes: Iterable[str] = (),
    ) -> str:
        """Register ``adapter`` and append it to the given schemes' lists.

        Returns:
            The name the adapter was registered under.
        """

        key = _key(name or adapter.name)
        if not key:
            raise ValueError("mechanisms must be registered under a non-empty name")
        with self._lock:
            self._adapters[key] = adapter
            for scheme in schemes:
                current = self._methods.get(_key(scheme), ())
                if key not in current:
                    self._methods[_key(scheme)] = current + (key,)
        return key

    def adapter_for(self, name: str) -> Optional[FetchMechanism]:
        with self._lock:
            return self._adapters.get(_key(name))

    # --- blacklist ------------------------------------------------------------

    @property
    def blacklist(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._blacklist)

    def blacklist_mechanism(self, name: str) -> None:
        with self._lock:
            self._blacklist.add(_key(name))

    def allow_mechanism(self, name: str) -> None:
        """Remove ``name`` from the blacklist; the failure cache is untouched."""

        with self._lock:
            self._blacklist.discard(_key(name))

    # --- failure cache --------------------------------------------------------

    def is_allowed(self, name: str) -> bool:
        """Return False when ``name`` is blacklisted or known to fail."""

        key = _key(name)
        with self._lock:
            return key not in self._blacklist and not self._failed.get(key, False)

    def is_failed(self, name: str) -> bool:
        with self._lock:
            return self._failed.get(_key(name), False)

    def mark_failed(self, name: str) -> None:
        """Record ``name`` as unusable until :meth:`clear_failures` is called."""

        key = _key(name)
        with self._lock:
            if not self._failed.get(key, False):
                LOGGER.debug("mechanism marked failed", extra={"mechanism": key})
            self._failed[key] = True

    def clear_failures(self) -> None:
        with self._lock:
            self._failed.clear()

    def failures(self) -> Dict[str, bool]:
        """Snapshot of the failure cache."""

        with self._lock:
            return dict(self._failed)

    def claim(self, name: str) -> Optional[FetchMechanism]:
        """Return the adapter for ``name`` if it may be attempted, else ``None``.

        The allow check and adapter lookup happen under one lock acquisition.
        """

        key = _key(name)
        with self._lock:
            if key in self._blacklist or self._failed.get(key, False):
                return None
            return self._adapters.get(key)

    def probe(self) -> Dict[str, bool]:
        """Eagerly check every adapter's availability and cache the failures.

        Returns:
            Mapping of mechanism name to availability.
        """

        with self._lock:
            adapters = dict(self._adapters)
        results: Dict[str, bool] = {}
        for name, adapter in adapters.items():
            ok = bool(adapter.available())
            results[name] = ok
            if not ok:
                self.mark_failed(name)
        LOGGER.info(
            "probed fetch mechanisms",
            extra={"available": sorted(k for k, v in results.items() if v)},
        )
        return results


_DEFAULT_LOCK = threading.Lock()
_DEFAULT_REGISTRY: Optional[MechanismRegistry] = None


def default_registry() -> MechanismRegistry:
    """Return the lazily created process-wide registry.

    The registry honours the ``FILEFETCH_BLACKLIST`` environment override.
    """

    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        if _DEFAULT_REGISTRY is None:
            _DEFAULT_REGISTRY = get_settings().build_registry()
        return _DEFAULT_REGISTRY


def reset_default_registry() -> None:
    """Discard the process-wide registry (its failure cache included)."""

    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        _DEFAULT_REGISTRY = None
