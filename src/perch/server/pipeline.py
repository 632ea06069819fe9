"""Request pipeline: middleware, route dispatch, and error handling.

One ``RequestPipeline`` drives one request. It holds an explicit cursor
into the middleware sequence and moves through these states::

    RUNNING(i) -> RUNNING(i+1)   stage called next()
    RUNNING(i) -> DISPATCHING    cursor exhausted with no pending error
    RUNNING(i) -> ERROR(e)       stage raised or called next(e)
    any        -> DONE           response ended, stage halted, or dispatch finished

Each stage receives a fresh ``Next``; calling it only records the
signal, and the pipeline acts on it once the stage returns. A stage
that neither calls ``next`` nor ends the response halts the request.

The error pipeline is a single forward sweep over the error middleware.
It never re-enters the ordinary middleware.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import (
    BodyParseError,
    HandlerError,
    RouteNotFound,
    StaticFileIOError,
    StaticFileMissing,
)
from perch.http.body import BODY_METHODS, read_body
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import ErrorMiddlewareEntry, MiddlewareEntry, Next
from perch.middleware.static import StaticFiles
from perch.routing.router import Router
from perch.server.errors import send_error_response, send_not_found

logger = logging.getLogger("perch.server")

FALLBACK_METHODS = frozenset({"GET", "HEAD"})


class PipelineState(enum.Enum):
    RUNNING = "running"
    DISPATCHING = "dispatching"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class PipelineSnapshot:
    """Everything a request needs from the app, frozen at startup.

    Shared by all concurrent requests; nothing in it is mutated after
    the app freezes.
    """

    router: Router
    middleware: tuple[MiddlewareEntry, ...] = ()
    error_middleware: tuple[ErrorMiddlewareEntry, ...] = ()
    fallback: StaticFiles | None = None
    parse_body: bool = True


@dataclass(frozen=True, slots=True)
class StageResult:
    """What one stage signaled: advance, halt, or fail."""

    advanced: bool
    error: BaseException | None = None


def as_error(value: Any) -> BaseException:
    """Coerce a value passed to ``next()`` into an exception."""
    if isinstance(value, BaseException):
        return value
    return HandlerError(value)


async def run_stage(handler: Callable[..., Any], *args: Any) -> StageResult:
    """Invoke one middleware, handler, or error handler with a fresh ``Next``.

    A raised exception is treated exactly like ``next(exc)``.
    """
    continuation = Next()
    try:
        await invoke(handler, *args, continuation)
    except Exception as exc:
        return StageResult(advanced=False, error=exc)
    if continuation.called and continuation.error is not None:
        return StageResult(advanced=False, error=as_error(continuation.error))
    return StageResult(advanced=continuation.called)


async def handle_error(
    error: BaseException,
    request: Request,
    response: Response,
    error_middleware: Sequence[ErrorMiddlewareEntry],
) -> None:
    """Sweep the error middleware once, in registration order.

    Every entry whose mount path prefixes the raw request target runs,
    whether or not it calls ``next``. An entry that fails replaces the
    error passed to the entries after it. The sweep stops as soon as the
    response ends; if it never does, a 500 is sent.
    """
    for entry in error_middleware:
        if response.ended:
            return
        if not entry.applies_to(request.url):
            continue
        result = await run_stage(entry.handler, error, request, response)
        if result.error is not None:
            error = result.error

    if response.ended:
        return
    logger.error(
        "500 %s %s: unhandled %s",
        request.method,
        request.pathname,
        type(error).__name__,
        exc_info=error,
    )
    send_error_response(response, 500)


class RequestPipeline:
    """Runs a single request from body decoding to a finished response."""

    __slots__ = ("_cursor", "_error", "_snapshot", "request", "response", "state")

    def __init__(self, snapshot: PipelineSnapshot, request: Request, response: Response) -> None:
        self._snapshot = snapshot
        self.request = request
        self.response = response
        self.state = PipelineState.RUNNING
        self._cursor = 0
        self._error: BaseException | None = None

    @property
    def cursor(self) -> int:
        return self._cursor

    async def run(self) -> None:
        """Drive the request until the pipeline reaches ``DONE``."""
        await self._read_body()

        while self.state is PipelineState.RUNNING:
            await self._step()

        if self.state is PipelineState.ERROR:
            assert self._error is not None
            await handle_error(
                self._error, self.request, self.response, self._snapshot.error_middleware
            )
        elif self.state is PipelineState.DISPATCHING:
            await self._dispatch()

        self.state = PipelineState.DONE

    # -- Middleware --

    async def _read_body(self) -> None:
        if not self._snapshot.parse_body or self.request.method not in BODY_METHODS:
            return
        try:
            self.request.body = await read_body(self.request)
        except BodyParseError as exc:
            self._fail(exc)

    async def _step(self) -> None:
        if self.response.ended:
            self.state = PipelineState.DONE
            return

        middleware = self._snapshot.middleware
        if self._cursor >= len(middleware):
            self.state = PipelineState.DISPATCHING
            return

        entry = middleware[self._cursor]
        self._cursor += 1
        if not entry.applies_to(self.request.pathname):
            return

        result = await run_stage(entry.handler, self.request, self.response)
        if self.response.ended:
            self.state = PipelineState.DONE
        elif result.error is not None:
            self._fail(result.error)
        elif not result.advanced:
            self.state = PipelineState.DONE

    def _fail(self, error: BaseException) -> None:
        self._error = error
        self.state = PipelineState.ERROR

    # -- Dispatch --

    async def _dispatch(self) -> None:
        request = self.request
        match = self._snapshot.router.match(
            request.method, request.raw_path, query=request.query, hash=request.hash
        )
        if match is None:
            await self._unmatched()
            return

        request.params = dict(match.params)
        await self._run_handlers(match.route.handlers)

    async def _run_handlers(self, handlers: Sequence[Callable[..., Any]]) -> None:
        """Run a matched route's handler chain; every handler is eligible."""
        for handler in handlers:
            if self.response.ended:
                return
            result = await run_stage(handler, self.request, self.response)
            if self.response.ended:
                return
            if result.error is not None:
                await handle_error(
                    result.error, self.request, self.response, self._snapshot.error_middleware
                )
                return
            if not result.advanced:
                return

    async def _unmatched(self) -> None:
        request = self.request
        fallback = self._snapshot.fallback
        if fallback is not None and request.method in FALLBACK_METHODS:
            try:
                await fallback.serve_index(self.response)
                return
            except StaticFileMissing:
                pass
            except StaticFileIOError:
                logger.exception("SPA fallback failed for %s %s", request.method, request.pathname)

        exc = RouteNotFound(f"No route matches {request.method} {request.pathname!r}")
        logger.debug("%d %s %s: %s", exc.status, request.method, request.pathname, exc.detail)
        send_not_found(self.response)
