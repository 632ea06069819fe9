"""Perch: a minimal HTTP request-dispatch engine.

Ordered route table, path-scoped middleware with ``next()`` continuations,
a separate error pipeline, and static/SPA fallback serving, exposed as an
ASGI application.

Basic usage::

    from perch import App

    app = App()

    @app.get("/hello/:name")
    def hello(request, response, next):
        response.send(f"Hello, {request.params['name']}!")

    app.listen(3000)
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BodyParseError",
    "ConfigurationError",
    "HTTPError",
    "HandlerError",
    "InvalidListenConfiguration",
    "Next",
    "PerchError",
    "Request",
    "Response",
    "RouteNotFound",
    "StaticFileIOError",
    "StaticFileMissing",
    "StaticFiles",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name in ("Next", "StaticFiles"):
        from perch import middleware as _mw

        return getattr(_mw, name)

    if name in (
        "BodyParseError",
        "ConfigurationError",
        "HTTPError",
        "HandlerError",
        "InvalidListenConfiguration",
        "PerchError",
        "RouteNotFound",
        "StaticFileIOError",
        "StaticFileMissing",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
