"""Perch exception hierarchy.

Shared across Router, App, the request pipeline, and middleware so every
module raises and catches the same types.
"""

from dataclasses import dataclass
from typing import Any


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration is invalid."""


class InvalidListenConfiguration(ConfigurationError, ValueError):
    """Raised by ``App.listen()`` before binding when host/port are unusable."""


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code."""

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class RouteNotFound(HTTPError):  # noqa: N818
    """404: no route matched and no static fallback was available."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class HandlerError(PerchError):
    """A failure signaled by middleware or a route handler.

    Exceptions raised by user code reach error middleware unchanged.
    This type wraps non-exception values passed to ``next()`` and is the
    base for failures the pipeline itself produces on a handler's behalf.
    """

    def __init__(self, value: Any = None, message: str = "") -> None:
        self.value = value
        super().__init__(message or f"Handler signaled an error: {value!r}")


class BodyParseError(HandlerError):
    """The request payload could not be decoded for its content type."""

    def __init__(self, content_type: str, cause: Exception) -> None:
        self.content_type = content_type
        super().__init__(cause, f"Malformed {content_type} body: {cause}")


class StaticFileMissing(PerchError):
    """The requested file does not exist or is not a regular file.

    Not a failure: static serving treats it as a signal to fall through.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No such file: {path}")


class StaticFileIOError(PerchError):
    """Reading a file for the response failed for a reason other than absence."""

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot read {path}: {cause}")
