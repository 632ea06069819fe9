"""Per-request outbound response.

Handlers shape the response through chainable setters (``status``,
``set``) and finish it with exactly one terminal call (``send``,
``json``, ``send_file``, ``end``). The terminal call flags the response
as ended; the body is buffered here and written to the transport by
``perch.server.sender`` once the pipeline has finished.

Usage::

    @app.get("/users/:id")
    def show(request, response, next):
        response.status(200).set("X-Served-By", "perch").json({"id": request.params["id"]})
"""

from __future__ import annotations

import json as json_module
import logging
import mimetypes
from dataclasses import dataclass
from typing import Any

import anyio

from perch.errors import StaticFileIOError, StaticFileMissing
from perch.http.headers import MutableHeaders

logger = logging.getLogger("perch.server")

TEXT_TYPE = "text/plain; charset=utf-8"
JSON_TYPE = "application/json"
OCTET_TYPE = "application/octet-stream"


def guess_mime_type(path: str) -> str:
    """Content type from a file extension; unknown types are octet streams."""
    content_type, _ = mimetypes.guess_type(path)
    return content_type or OCTET_TYPE


@dataclass(frozen=True, slots=True)
class FileBody:
    """A file to stream as the response body."""

    path: str
    size: int


class Response:
    """Mutable response context for one request.

    ``status_code`` stays ``None`` until a handler sets it; the sender
    then defaults to 200. Once ``ended`` is true, every further write is
    ignored.
    """

    __slots__ = ("_body", "_ended", "_headers", "_status_code")

    def __init__(self) -> None:
        self._status_code: int | None = None
        self._headers = MutableHeaders()
        self._body: bytes | FileBody = b""
        self._ended = False

    def __repr__(self) -> str:
        return f"<Response status={self._status_code} ended={self._ended}>"

    # -- State --

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def ended(self) -> bool:
        """True once a terminal write has been issued."""
        return self._ended

    @property
    def headers(self) -> MutableHeaders:
        return self._headers

    @property
    def body(self) -> bytes | FileBody:
        return self._body

    # -- Chainable setters --

    def status(self, code: int) -> Response:
        """Set the status code. Last write wins until the response ends."""
        if self._refuse("status"):
            return self
        self._status_code = int(code)
        return self

    def set(self, name: str, value: str | int) -> Response:
        """Set a header, replacing any existing value."""
        if self._refuse("set"):
            return self
        self._headers.set(name, str(value))
        return self

    def get(self, name: str) -> str | None:
        """Return a header set so far, or ``None``."""
        return self._headers.get(name)

    # -- Terminal writes --

    def send(self, data: Any = None) -> Response:
        """Finish the response.

        ``str`` is sent as plain text, ``bytes`` verbatim, ``None`` as an
        empty body, and any other value as JSON. An explicitly set
        Content-Type is kept for text and bytes.
        """
        if self._refuse("send"):
            return self
        if data is None:
            return self._finish(b"")
        if isinstance(data, str):
            self._default_type(TEXT_TYPE)
            return self._finish(data.encode("utf-8"))
        if isinstance(data, (bytes, bytearray, memoryview)):
            self._default_type(OCTET_TYPE)
            return self._finish(bytes(data))
        return self.json(data)

    def json(self, data: Any) -> Response:
        """Finish the response with *data* serialized as JSON."""
        if self._refuse("json"):
            return self
        payload = json_module.dumps(data, default=str).encode("utf-8")
        self._headers.set("Content-Type", JSON_TYPE)
        return self._finish(payload)

    def end(self) -> Response:
        """Finish the response with whatever body it holds (empty by default)."""
        if self._refuse("end"):
            return self
        self._ended = True
        return self

    async def send_file(
        self,
        path: str | anyio.Path,
        *,
        max_age: int | None = None,
        mime_type: str | None = None,
    ) -> Response:
        """Finish the response with the contents of a file.

        The file is checked here and streamed by the sender.

        Raises:
            StaticFileMissing: *path* does not exist or is not a regular file.
            StaticFileIOError: *path* exists but cannot be inspected.
        """
        if self._refuse("send_file"):
            return self
        target = anyio.Path(path)
        try:
            info = await target.stat()
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise StaticFileMissing(str(target)) from exc
        except OSError as exc:
            raise StaticFileIOError(str(target), exc) from exc
        if not await target.is_file():
            raise StaticFileMissing(str(target))

        self._headers.set("Content-Type", mime_type or guess_mime_type(str(target)))
        if max_age:
            self._headers.set("Cache-Control", f"public, max-age={int(max_age)}")
        self._body = FileBody(str(target), info.st_size)
        self._ended = True
        return self

    # -- Internal --

    def _finish(self, payload: bytes) -> Response:
        self._body = payload
        self._ended = True
        return self

    def _default_type(self, content_type: str) -> None:
        if "content-type" not in self._headers:
            self._headers.set("Content-Type", content_type)

    def _refuse(self, operation: str) -> bool:
        if self._ended:
            logger.debug("Ignoring %s() on a response that has already ended", operation)
            return True
        return False
