"""Network listener: runs a perch App under the pounce ASGI server.

Socket handling, TLS, and keep-alive belong to pounce; perch only hands
it the live App object. The import is deferred so the engine itself
works (and is testable) without the server installed.
"""

from __future__ import annotations


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    workers: int = 1,
    reload: bool = False,
) -> None:
    """Start pounce with the given ASGI app and block until it stops.

    Pounce's ``run()`` takes an import string, but perch has a live
    ``App`` object, so ``pounce.Server`` is used directly.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count.
        reload: Enable auto-reload on file changes.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        reload=reload,
    )
    server = Server(config, app)
    server.run()
