"""Per-request context.

A mutable scratch object derived once per inbound request. Metadata is
filled from the ASGI scope; ``params`` is filled after a route matches
and ``body`` before dispatch for methods that carry a payload.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, unquote

from perch._internal.asgi import Receive, Scope
from perch.http.headers import Headers
from perch.http.query import QueryParams

# Characters a request target carries unescaped in its path
RAW_PATH_SAFE = "/:@!$&'()*+,;=~"


def _split_hash(value: str) -> tuple[str, str | None]:
    head, sep, fragment = value.partition("#")
    return head, (fragment or None) if sep else None


@dataclass(slots=True)
class Request:
    """An inbound HTTP request.

    ``pathname`` is the percent-decoded path; ``raw_path`` is the path as
    it appeared on the request line. Route matching compares against the
    raw form and decodes parameter values individually.

    Middleware may stash per-request values in ``state``.
    """

    method: str
    pathname: str
    raw_path: str
    query: QueryParams
    headers: Headers
    hash: str | None = None
    params: dict[str, str] = field(default_factory=dict)
    body: Any = None
    state: dict[str, Any] = field(default_factory=dict)
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None

    _receive: Receive | None = field(default=None, repr=False, compare=False)
    _raw_body: bytes | None = field(default=None, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """The raw request target: path plus query string, without fragment."""
        qs = self.query.raw
        if qs:
            return f"{self.raw_path}?{qs}"
        return self.raw_path

    async def raw_body(self) -> bytes:
        """Read the full payload.

        The receive channel is consumed once; later calls return the
        same bytes.
        """
        if self._raw_body is None:
            self._raw_body = b"".join([chunk async for chunk in self.stream()])
        return self._raw_body

    async def stream(self) -> AsyncGenerator[bytes]:
        """Yield the payload in the chunks the server delivers."""
        if self._receive is None:
            return
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI HTTP scope.

        Only a literal ``#`` in the raw target starts a fragment.
        ``scope["path"]`` is already percent-decoded, so a ``#`` in it
        may have arrived as ``%23`` and is part of the path.
        """
        pathname = scope["path"]
        raw = scope.get("raw_path")
        if raw:
            raw_path = raw.decode("latin-1")
        else:
            raw_path = quote(pathname, safe=RAW_PATH_SAFE)
        # Some servers leave the query string on raw_path
        raw_path = raw_path.partition("?")[0]
        raw_path, sep, fragment = raw_path.partition("#")
        raw_hash = fragment or None
        if sep:
            suffix = "#" + unquote(fragment)
            if pathname.endswith(suffix):
                pathname = pathname[: -len(suffix)]
        query_string, query_hash = _split_hash(
            scope.get("query_string", b"").decode("latin-1")
        )
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            pathname=pathname,
            raw_path=raw_path,
            query=QueryParams(query_string),
            headers=Headers(tuple(scope.get("headers", ()))),
            hash=raw_hash or query_hash,
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )
