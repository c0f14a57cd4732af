"""Redirect resolution for redeemed handovers.

After a handover is redeemed the browser is sent to the consuming client's
registered redirect target, reduced to its *origin* (scheme, host and a
non-default port).  Path, query, fragment and userinfo are always dropped so a
registered host can never be combined with an attacker-chosen path.

The client directory is an external collaborator.  Two implementations are
provided: a static mapping (configuration) and a remote registry reached over
HTTP with a bounded timeout and a small TTL cache.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Final, Mapping, Protocol, Sequence, runtime_checkable
from urllib.parse import quote, urlsplit

import requests
from cachetools import TTLCache

from handover_service.core.errors import (
    DirectoryUnavailableError,
    InvalidRedirectError,
    UnknownClientError,
)

_LOG = logging.getLogger("handover-service.core.redirects")

_DEFAULT_PORTS: Final[dict[str, int]] = {"http": 80, "https": 443}
_MISSING: Final = object()


# --------------------------------------------------------------------------- #
# Directory                                                                   #
# --------------------------------------------------------------------------- #
@runtime_checkable
class ClientDirectory(Protocol):
    """Look up the ordered redirect URIs of a registered client.

    Returns ``None`` for an unknown client.
    """

    def redirect_uris(self, client_id: str) -> Sequence[str] | None: ...


class StaticClientDirectory(ClientDirectory):
    """Directory backed by an in-process mapping."""

    def __init__(self, clients: Mapping[str, Sequence[str]] | None = None) -> None:
        self._clients: dict[str, tuple[str, ...]] = {
            cid: tuple(uris) for cid, uris in (clients or {}).items()
        }

    def redirect_uris(self, client_id: str) -> Sequence[str] | None:
        return self._clients.get(client_id)


class HttpClientDirectory(ClientDirectory):
    """Directory backed by a remote client registry.

    ``GET {base_url}/clients/{client_id}`` must answer ``200`` with
    ``{"redirect_uris": [...]}`` (``redirectUris`` is accepted too) or ``404``
    for an unknown client.  Both outcomes are cached for *cache_ttl* seconds.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        cache_ttl: float = 300.0,
        cache_size: int = 256,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._cache: TTLCache[str, tuple[str, ...] | None] = TTLCache(
            maxsize=cache_size, ttl=cache_ttl
        )
        self._cache_lock = threading.Lock()

    def _fetch(self, client_id: str) -> tuple[str, ...] | None:
        url = f"{self.base_url}/clients/{quote(client_id, safe='')}"
        try:
            resp = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DirectoryUnavailableError(f"client directory request failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        if not resp.ok:
            raise DirectoryUnavailableError(
                f"client directory returned {resp.status_code}"
            )
        try:
            data: Any = resp.json()
        except ValueError as exc:
            raise DirectoryUnavailableError("client directory returned invalid JSON") from exc

        uris = data.get("redirect_uris", data.get("redirectUris")) if isinstance(data, dict) else None
        if not isinstance(uris, list) or not all(isinstance(u, str) for u in uris):
            raise DirectoryUnavailableError("client directory response missing redirect_uris")
        return tuple(uris)

    def redirect_uris(self, client_id: str) -> Sequence[str] | None:
        with self._cache_lock:
            cached = self._cache.get(client_id, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]
        uris = self._fetch(client_id)
        with self._cache_lock:
            self._cache[client_id] = uris
        return uris


# --------------------------------------------------------------------------- #
# Origin helpers                                                              #
# --------------------------------------------------------------------------- #
def origin_of(uri: str) -> str:
    """Reduce *uri* to ``scheme://host[:port]``.

    >>> origin_of("https://example.com:8443/callback?x=1")
    'https://example.com:8443'
    >>> origin_of("https://Example.com:443/path#frag")
    'https://example.com'
    """
    try:
        parts = urlsplit(uri.strip())
        port = parts.port
    except (AttributeError, ValueError) as exc:
        raise InvalidRedirectError(f"malformed redirect URI: {exc}") from exc

    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not host:
        raise InvalidRedirectError("redirect URI must include scheme and host")
    if ":" in host:
        host = f"[{host}]"
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


class RedirectResolver:
    """Resolve the redirect origin for a consuming client."""

    def __init__(self, directory: ClientDirectory) -> None:
        self.directory = directory

    def resolve_redirect_origin(self, client_id: str, requested: str | None = None) -> str:
        """Return the origin the browser should be redirected to.

        Without *requested* the first registered URI is used.  With
        *requested*, its origin must match the origin of one registered URI.

        Raises
        ------
        UnknownClientError
            If the client is unknown or has no redirect URIs.
        InvalidRedirectError
            If a registered URI is malformed or *requested* is not registered.
        DirectoryUnavailableError
            If the directory could not be consulted.
        """
        uris = self.directory.redirect_uris(client_id) if client_id else None
        if not uris:
            raise UnknownClientError(client_id)

        if requested is None:
            return origin_of(uris[0])

        wanted = origin_of(requested)
        for uri in uris:
            try:
                if origin_of(uri) == wanted:
                    return wanted
            except InvalidRedirectError:
                _LOG.warning("Ignoring malformed redirect URI registered for %s", client_id)
        raise InvalidRedirectError("requested redirect is not registered for this client")
