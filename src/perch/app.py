"""Perch application class.

Mutable during setup (route registration, middleware, static directories).
Frozen into an immutable snapshot when ``listen()`` is called or the first
ASGI event arrives.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TypeAlias

from perch._internal.asgi import Receive, Scope, Send
from perch.config import AppConfig
from perch.errors import InvalidListenConfiguration
from perch.middleware.protocol import ROOT_MOUNT, ErrorMiddlewareEntry, MiddlewareEntry
from perch.middleware.static import StaticFiles
from perch.routing.route import Route
from perch.routing.router import Router
from perch.server.handler import handle_request
from perch.server.pipeline import PipelineSnapshot

logger = logging.getLogger("perch.app")

HTTP_METHODS = (
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "HEAD",
    "OPTIONS",
    "TRACE",
    "CONNECT",
)

MAX_PORT = 65535

Handler: TypeAlias = Callable[..., Any]


def _flatten(handlers: Iterable[Any]) -> list[Handler]:
    flat: list[Handler] = []
    for handler in handlers:
        if isinstance(handler, (list, tuple)):
            flat.extend(_flatten(handler))
        else:
            flat.append(handler)
    return flat


def validate_port(port: Any) -> int:
    """Coerce *port* to an int in ``1..65535``.

    Raises:
        InvalidListenConfiguration: If *port* is not a usable TCP port.
    """
    if isinstance(port, bool):
        msg = f"Invalid port number: {port!r}"
        raise InvalidListenConfiguration(msg)
    try:
        number = int(port)
    except (TypeError, ValueError) as exc:
        msg = f"Invalid port number: {port!r}"
        raise InvalidListenConfiguration(msg) from exc
    if not 1 <= number <= MAX_PORT:
        msg = f"Invalid port number: {port!r} (expected 1-{MAX_PORT})"
        raise InvalidListenConfiguration(msg)
    return number


class App:
    """The perch application.

    Usage::

        app = App()

        @app.get("/users/:id")
        def show_user(request, response, next):
            response.json({"id": request.params["id"]})

        app.use("/api", require_token)
        app.use_error(report_error)
        app.static("/", "public")

        app.listen(3000)

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread compiles the snapshot,
        even if several server workers deliver their first event at once.
    """

    __slots__ = (
        "_error_middleware",
        "_fallback",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_router",
        "_shutdown_hooks",
        "_snapshot",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router()
        self._middleware: list[MiddlewareEntry] = []
        self._error_middleware: list[ErrorMiddlewareEntry] = []
        self._fallback: StaticFiles | None = None
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._snapshot: PipelineSnapshot | None = None

    # -- Route registration --

    def route(self, method: str, pattern: str, *handlers: Any) -> Any:
        """Register a handler chain for *method* and *pattern*.

        Patterns are ``/``-separated; a segment starting with ``:`` binds
        that request segment to ``request.params``. With no handlers the
        call returns a decorator::

            @app.route("GET", "/health")
            def health(request, response, next):
                response.send("ok")
        """
        if not handlers:

            def decorator(func: Handler) -> Handler:
                self.route(method, pattern, func)
                return func

            return decorator

        self._check_not_frozen()
        chain = _flatten(handlers)
        for handler in chain:
            if not callable(handler):
                msg = f"Route handler for {method} {pattern!r} is not callable: {handler!r}"
                raise TypeError(msg)
        self._router.add(Route(method=method, pattern=pattern, handlers=tuple(chain)))
        return None

    def get(self, pattern: str, *handlers: Any) -> Any:
        return self.route("GET", pattern, *handlers)

    def post(self, pattern: str, *handlers: Any) -> Any:
        return self.route("POST", pattern, *handlers)

    def put(self, pattern: str, *handlers: Any) -> Any:
        return self.route("PUT", pattern, *handlers)

    def patch(self, pattern: str, *handlers: Any) -> Any:
        return self.route("PATCH", pattern, *handlers)

    def delete(self, pattern: str, *handlers: Any) -> Any:
        return self.route("DELETE", pattern, *handlers)

    def head(self, pattern: str, *handlers: Any) -> Any:
        return self.route("HEAD", pattern, *handlers)

    def options(self, pattern: str, *handlers: Any) -> Any:
        return self.route("OPTIONS", pattern, *handlers)

    def trace(self, pattern: str, *handlers: Any) -> Any:
        return self.route("TRACE", pattern, *handlers)

    def connect(self, pattern: str, *handlers: Any) -> Any:
        return self.route("CONNECT", pattern, *handlers)

    def all(self, pattern: str, *handlers: Any) -> Any:
        """Register the same handlers under every HTTP method."""
        if not handlers:

            def decorator(func: Handler) -> Handler:
                self.all(pattern, func)
                return func

            return decorator

        for method in HTTP_METHODS:
            self.route(method, pattern, *handlers)
        return None

    # -- Middleware --

    def use(self, mount_path: str | Handler, handler: Handler | None = None) -> Any:
        """Add ordinary middleware, optionally under a mount path.

        ``app.use(mw)`` mounts at ``/`` (every request). ``app.use("/api",
        mw)`` runs ``mw`` only when the path starts with ``/api``, a plain
        string prefix test. ``app.use("/api")`` returns a decorator.
        """
        path, func = self._mount_args(mount_path, handler)
        if func is None:

            def decorator(f: Handler) -> Handler:
                self.use(path, f)
                return f

            return decorator

        self._check_not_frozen()
        self._middleware.append(MiddlewareEntry(path, func))
        return func

    def use_error(self, mount_path: str | Handler, handler: Handler | None = None) -> Any:
        """Add error middleware, called as ``handler(error, request, response, next)``.

        Mount paths work as in ``use()`` but are tested against the raw
        request target.
        """
        path, func = self._mount_args(mount_path, handler)
        if func is None:

            def decorator(f: Handler) -> Handler:
                self.use_error(path, f)
                return f

            return decorator

        self._check_not_frozen()
        self._error_middleware.append(ErrorMiddlewareEntry(path, func))
        return func

    def static(
        self,
        mount_path: str,
        directory: str | Path,
        *,
        max_age: int | None = None,
        mime_type: str | None = None,
        index: str = "index.html",
        fallback: bool = True,
    ) -> StaticFiles:
        """Serve files from *directory* under *mount_path*.

        Args:
            mount_path: URL prefix the files live under.
            directory: Directory to serve, relative to the working directory.
            max_age: Seconds for a ``Cache-Control: public, max-age=N`` header.
            mime_type: Content type for every file, instead of guessing by extension.
            index: Document served for the mount root and for directories.
            fallback: Serve *index* for unmatched GET/HEAD requests (SPA fallback).
                The most recently registered static directory wins.
        """
        self._check_not_frozen()
        files = StaticFiles(
            directory, mount_path, index=index, max_age=max_age, mime_type=mime_type
        )
        self._middleware.append(MiddlewareEntry(mount_path, files))
        if fallback:
            self._fallback = files
        return files

    def _mount_args(
        self, mount_path: str | Handler, handler: Handler | None
    ) -> tuple[str, Handler | None]:
        if callable(mount_path) and handler is None:
            return ROOT_MOUNT, mount_path
        if not isinstance(mount_path, str):
            msg = f"Mount path must be a string, got {type(mount_path).__name__}"
            raise TypeError(msg)
        if handler is not None and not callable(handler):
            msg = f"Middleware is not callable: {handler!r}"
            raise TypeError(msg)
        return mount_path, handler

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def listen(
        self,
        port: int | str | None = None,
        host: str | Callable[[], Any] | None = None,
        callback: Callable[[], Any] | None = None,
    ) -> App:
        """Validate the address, freeze the app, and serve until stopped.

        The port is checked before anything else happens, so a bad value
        fails here without a socket ever being opened. *callback* runs
        once the server reports startup. *host* may be omitted in favour
        of passing the callback second.

        Raises:
            InvalidListenConfiguration: If the port is outside ``1..65535``
                or not a number.
        """
        if callable(host) and callback is None:
            host, callback = None, host

        _port = validate_port(self.config.port if port is None else port)
        _host = host or self.config.host
        if not isinstance(_host, str):
            msg = f"Invalid host: {_host!r}"
            raise InvalidListenConfiguration(msg)

        if callback is not None:
            # Not a registration: listen() may follow a freeze.
            self._startup_hooks.append(callback)

        self._configure_logging()
        self._ensure_frozen()
        logger.info("Listening on %s:%d", _host, _port)

        from perch.server.serve import run_server

        run_server(
            self,
            _host,
            _port,
            workers=self.config.workers,
            reload=self.config.debug,
        )
        return self

    def _configure_logging(self) -> None:
        root = logging.getLogger("perch")
        root.setLevel(self.config.log_level.upper())
        if not logging.getLogger().handlers and not root.handlers:
            logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()
        assert self._snapshot is not None

        await handle_request(scope, receive, send, snapshot=self._snapshot)

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before the first HTTP request), then
        runs startup/shutdown hooks and signals completion to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self._run_hooks(self._startup_hooks)
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                await self._run_hooks(self._shutdown_hooks)
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _run_hooks(self, hooks: list[Callable[..., Any]]) -> None:
        for hook in hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    @property
    def routes(self) -> tuple[Route, ...]:
        """Registered routes in registration order."""
        return self._router.routes

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        self._router.compile()
        self._snapshot = PipelineSnapshot(
            router=self._router,
            middleware=tuple(self._middleware),
            error_middleware=tuple(self._error_middleware),
            fallback=self._fallback,
            parse_body=self.config.parse_body,
        )
        self._frozen = True
        logger.debug(
            "Compiled %d routes, %d middleware, %d error middleware",
            len(self._router),
            len(self._middleware),
            len(self._error_middleware),
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and static directories before calling app.listen()."
            )
            raise RuntimeError(msg)
