"""Request body reader.

Buffers the payload from the ASGI receive channel and decodes it by
media type:

- ``application/json`` -> parsed value, or ``BodyParseError``
- ``application/x-www-form-urlencoded`` -> ``FormData``
- anything else -> the raw bytes

The pipeline runs this before middleware for methods that carry a
payload, storing the result on ``request.body``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from perch.errors import BodyParseError
from perch.http.forms import parse_urlencoded

if TYPE_CHECKING:
    from perch.http.request import Request

BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

JSON_TYPE = "application/json"
FORM_TYPE = "application/x-www-form-urlencoded"


def media_type(content_type: str | None) -> str:
    """Strip parameters from a Content-Type value: ``"a/b; x=y"`` -> ``"a/b"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def decode_body(raw: bytes, content_type: str | None) -> Any:
    """Decode *raw* according to *content_type*.

    Raises:
        BodyParseError: If a JSON payload is malformed or not valid UTF-8.
    """
    kind = media_type(content_type)
    if kind == JSON_TYPE:
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            raise BodyParseError(JSON_TYPE, exc) from exc
    if kind == FORM_TYPE:
        return parse_urlencoded(raw)
    return raw


async def read_body(request: Request) -> Any:
    """Read and decode the full request payload."""
    raw = await request.raw_body()
    return decode_body(raw, request.content_type)
