# === NAVMAP v1 ===
# {
#   "module": "FileFetch.net",
#   "purpose": "Provide the shared HTTPX client used by the library HTTP mechanism",
#   "sections": [
#     {"id": "constants", "name": "Constants & globals", "anchor": "CONST", "kind": "constants"},
#     {"id": "helpers", "name": "Client construction helpers", "anchor": "HELP", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Shared HTTPX client used by :class:`FileFetch.mechanisms.http.HttpLibraryMechanism`."""

from __future__ import annotations

import contextlib
import logging
import ssl
import threading
from typing import Callable, Optional

import certifi
import httpx

LOGGER = logging.getLogger("FileFetch.net")

# --- Constants & globals -------------------------------------------------------

DEFAULT_TIMEOUT_SEC = 60.0
_CLIENT_LOCK = threading.RLock()
_HTTP_CLIENT: Optional[httpx.Client] = None
_CLIENT_FACTORY: Optional[Callable[[], Optional[httpx.Client]]] = None

# --- Client construction helpers ----------------------------------------------


def _build_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.load_verify_locations(certifi.where())
    return context


def _request_hook(request: httpx.Request) -> None:
    LOGGER.debug(
        "filefetch-http-request",
        extra={"method": request.method, "url": str(request.url)},
    )


def _response_hook(response: httpx.Response) -> None:
    LOGGER.debug(
        "filefetch-http-response",
        extra={"url": str(response.request.url), "status": response.status_code},
    )


def _build_http_client(timeout_sec: float) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(timeout_sec, connect=min(timeout_sec, 10.0)),
        verify=_build_ssl_context(),
        trust_env=True,
        follow_redirects=True,
        event_hooks={"request": [_request_hook], "response": [_response_hook]},
    )


def _close_client_unlocked() -> None:
    global _HTTP_CLIENT
    if _HTTP_CLIENT is not None:
        with contextlib.suppress(Exception):
            _HTTP_CLIENT.close()
    _HTTP_CLIENT = None


# --- Public API ----------------------------------------------------------------


def configure_http_client(
    client: Optional[httpx.Client] = None,
    *,
    factory: Optional[Callable[[], Optional[httpx.Client]]] = None,
) -> None:
    """Override the shared HTTPX client or register a factory for tests."""

    if client is not None and factory is not None:
        raise ValueError("provide either a client or factory, not both")

    with _CLIENT_LOCK:
        global _HTTP_CLIENT, _CLIENT_FACTORY

        if client is None:
            _close_client_unlocked()
        else:
            if _HTTP_CLIENT is not client:
                _close_client_unlocked()
            _HTTP_CLIENT = client

        _CLIENT_FACTORY = factory


def reset_http_client() -> None:
    """Drop the shared client and any registered factory."""

    with _CLIENT_LOCK:
        global _CLIENT_FACTORY
        _CLIENT_FACTORY = None
        _close_client_unlocked()


def get_http_client(timeout_sec: Optional[float] = None) -> httpx.Client:
    """Return the shared HTTPX client, creating it if necessary."""

    global _HTTP_CLIENT
    with _CLIENT_LOCK:
        if _HTTP_CLIENT is not None:
            return _HTTP_CLIENT

        factory = _CLIENT_FACTORY
        if factory is not None:
            candidate = factory()
            if candidate is not None and not isinstance(candidate, httpx.Client):
                raise TypeError("client factory must return an httpx.Client or None")
            if candidate is not None:
                LOGGER.info(
                    "using custom httpx client",
                    extra={"factory": getattr(factory, "__qualname__", repr(factory))},
                )
                _HTTP_CLIENT = candidate
                return candidate

        _HTTP_CLIENT = _build_http_client(timeout_sec or DEFAULT_TIMEOUT_SEC)
        return _HTTP_CLIENT


__all__ = ["configure_http_client", "get_http_client", "reset_http_client"]
