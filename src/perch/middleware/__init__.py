"""Middleware: protocol-based, no inheritance required.

A middleware is any callable matching::

    def mw(request, response, next) -> None

and an error middleware::

    def on_error(error, request, response, next) -> None

Built-in middleware:
    StaticFiles -- Serve static files from a directory
"""

from perch.middleware.protocol import (
    ErrorMiddleware,
    ErrorMiddlewareEntry,
    Middleware,
    MiddlewareEntry,
    Next,
)
from perch.middleware.static import StaticFiles

__all__ = [
    "ErrorMiddleware",
    "ErrorMiddlewareEntry",
    "Middleware",
    "MiddlewareEntry",
    "Next",
    "StaticFiles",
]
