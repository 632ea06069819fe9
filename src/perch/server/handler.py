"""ASGI handler: translates ASGI scope/messages to perch types.

The only component that touches raw ASGI on the request side. Builds
the Request/Response pair, runs the pipeline, and hands the finished
response to the sender.
"""

import logging

from perch._internal.asgi import Receive, Scope, Send
from perch.http.request import Request
from perch.http.response import Response
from perch.server.errors import send_error_response
from perch.server.pipeline import PipelineSnapshot, RequestPipeline
from perch.server.sender import send_response

logger = logging.getLogger("perch.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    snapshot: PipelineSnapshot,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    response = Response()

    try:
        await RequestPipeline(snapshot, request, response).run()
    except Exception:
        logger.exception("500 %s %s", request.method, request.pathname)
        send_error_response(response, 500)

    if not response.ended:
        logger.warning(
            "%s %s finished without a response; sending it as it stands",
            request.method,
            request.pathname,
        )
        response.end()

    await send_response(response, send, head=request.method == "HEAD")
