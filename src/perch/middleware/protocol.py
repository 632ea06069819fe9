"""Middleware protocols, registration entries, and the ``next`` continuation.

A middleware is any callable matching::

    def mw(request: Request, response: Response, next: Next) -> None: ...

An error middleware receives the error first::

    def on_error(error: Exception, request: Request, response: Response, next: Next) -> None: ...

Either may be ``async def``. Which pipeline an entry belongs to is fixed
by how it was registered (``app.use`` or ``app.use_error``), never by
inspecting its signature.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from perch.http.request import Request
    from perch.http.response import Response

ROOT_MOUNT = "/"


class Next:
    """Continuation handed to each pipeline stage.

    ``next()`` asks the pipeline to advance; ``next(err)`` asks it to
    switch to the error pipeline. The call only records the signal;
    the pipeline acts on it after the stage returns. Only the first call
    is honoured.
    """

    __slots__ = ("_called", "_error")

    def __init__(self) -> None:
        self._called = False
        self._error: Any = None

    def __call__(self, error: Any = None) -> None:
        if self._called:
            return
        self._called = True
        self._error = error

    @property
    def called(self) -> bool:
        return self._called

    @property
    def error(self) -> Any:
        return self._error

    def __repr__(self) -> str:
        return f"<Next called={self._called} error={self._error!r}>"


class Middleware(Protocol):
    """Protocol for ordinary middleware and route handlers."""

    def __call__(
        self, request: Request, response: Response, next: Next
    ) -> Awaitable[None] | None: ...


class ErrorMiddleware(Protocol):
    """Protocol for error-handling middleware."""

    def __call__(
        self, error: Any, request: Request, response: Response, next: Next
    ) -> Awaitable[None] | None: ...


@dataclass(frozen=True, slots=True)
class MiddlewareEntry:
    """Ordinary middleware mounted at a path prefix."""

    mount_path: str
    handler: Callable[..., Any]

    def applies_to(self, path: str) -> bool:
        # Plain string prefix: "/admin" also covers "/admin2".
        return path.startswith(self.mount_path)


@dataclass(frozen=True, slots=True)
class ErrorMiddlewareEntry:
    """Error middleware mounted at a path prefix."""

    mount_path: str
    handler: Callable[..., Any]

    def applies_to(self, path: str) -> bool:
        return path.startswith(self.mount_path)
