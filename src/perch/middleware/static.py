"""Static file serving middleware.

Serves files from a directory for requests under a mount prefix.
The root of the mount maps to the index document, as does any
directory. Missing files fall through to the next stage so routes
registered later still get a chance.
"""

import logging
from pathlib import Path

import anyio

from perch.errors import StaticFileIOError, StaticFileMissing
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next
from perch.server.errors import send_error_response

logger = logging.getLogger("perch.static")


class StaticFiles:
    """Middleware that serves static files from a directory.

    Security: resolves symlinks and verifies the final path is within
    the configured directory. Requests that escape it get a 403.

    Usage::

        app.use("/", StaticFiles("./public", max_age=3600))

    ``App.static()`` builds one of these and also records it as the
    SPA fallback.
    """

    __slots__ = ("_directory", "_index", "_max_age", "_mime_type", "_prefix")

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "/",
        *,
        index: str = "index.html",
        max_age: int | None = None,
        mime_type: str | None = None,
    ) -> None:
        self._directory = Path(directory).resolve()
        self._index = index
        self._max_age = max_age
        self._mime_type = mime_type
        self._prefix = prefix.rstrip("/")

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def index_path(self) -> Path:
        return self._directory / self._index

    async def __call__(self, request: Request, response: Response, next: Next) -> None:
        """Serve a file or fall through."""
        if request.method not in ("GET", "HEAD"):
            next()
            return

        path = request.pathname
        if self._prefix and path != self._prefix and not path.startswith(self._prefix + "/"):
            next()
            return
        relative = path[len(self._prefix) :].lstrip("/")

        try:
            file_path = await anyio.Path(self._directory, relative).resolve() if relative else None
        except ValueError:
            # e.g. an embedded NUL byte
            next()
            return
        if file_path is None:
            file_path = anyio.Path(self.index_path)
        elif not Path(file_path).is_relative_to(self._directory):
            logger.warning("Refusing path outside %s: %r", self._directory, path)
            send_error_response(response, 403)
            return
        elif await file_path.is_dir():
            file_path = file_path / self._index

        try:
            await response.send_file(
                file_path, max_age=self._max_age, mime_type=self._mime_type
            )
        except StaticFileMissing:
            next()
        except StaticFileIOError:
            logger.exception("Static file error for %s %s", request.method, path)
            send_error_response(response, 500)

    async def serve_index(self, response: Response) -> None:
        """Send the index document, as the SPA fallback does.

        Raises:
            StaticFileMissing: If the index document does not exist.
            StaticFileIOError: If it cannot be read.
        """
        await response.send_file(self.index_path, mime_type=self._mime_type)
