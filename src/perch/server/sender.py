"""ASGI response sending: flushes a finished perch Response to the transport.

In-memory bodies go out as a single message. File bodies are streamed
in chunks from a handle that is closed however the stream ends.
"""

import logging
import os

import anyio

from perch._internal.asgi import Send
from perch.http.response import TEXT_TYPE, FileBody, Response
from perch.server.errors import status_text

logger = logging.getLogger("perch.server")

CHUNK_SIZE = 64 * 1024


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _headers(response: Response, content_length: int) -> list[tuple[bytes, bytes]]:
    raw = [(name, value) for name, value in response.headers.raw() if name != b"content-length"]
    raw.append((b"content-length", str(content_length).encode("latin-1")))
    return raw


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a finished Response into ASGI send() calls.

    ``head`` suppresses the body but keeps the headers a GET would carry.
    """
    status = response.status_code or 200
    body = response.body

    if isinstance(body, FileBody):
        await send_file_body(response, body, send, status=status, head=head)
        return

    payload = body if _body_allowed(status) else b""
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": _headers(response, len(payload)),
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else payload,
        }
    )


async def send_file_body(
    response: Response,
    body: FileBody,
    send: Send,
    *,
    status: int = 200,
    head: bool = False,
) -> None:
    """Stream a file body.

    Failing to open the file is still recoverable and becomes a 500.
    Once headers are out, a read error can only cut the stream short.
    """
    try:
        handle = await anyio.open_file(body.path, "rb")
    except OSError:
        logger.exception("Error serving file %s", body.path)
        message = status_text(500).encode("utf-8")
        await send(
            {
                "type": "http.response.start",
                "status": 500,
                "headers": [
                    (b"content-type", TEXT_TYPE.encode("latin-1")),
                    (b"content-length", str(len(message)).encode("latin-1")),
                ],
            }
        )
        await send({"type": "http.response.body", "body": message})
        return

    async with handle:
        with_body = _body_allowed(status) and not head
        size = os.fstat(handle.wrapped.fileno()).st_size if _body_allowed(status) else 0
        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": _headers(response, size),
            }
        )
        if with_body:
            try:
                while chunk := await handle.read(CHUNK_SIZE):
                    await send(
                        {
                            "type": "http.response.body",
                            "body": chunk,
                            "more_body": True,
                        }
                    )
            except OSError:
                logger.exception("Error streaming file %s", body.path)
        await send({"type": "http.response.body", "body": b"", "more_body": False})
