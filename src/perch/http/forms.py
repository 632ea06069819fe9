"""URL-encoded form data.

``FormData`` implements ``Mapping[str, str]`` with the same last-value
view and ``get_list`` accessor as ``QueryParams``, so handlers read query
strings and submitted forms the same way.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class FormData(Mapping[str, str]):
    """Immutable parsed ``application/x-www-form-urlencoded`` payload.

    Usage::

        @app.post("/signup")
        def signup(request, response, next):
            response.send(f"Welcome, {request.body['username']}")
    """

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, list[str]]) -> None:
        object.__setattr__(self, "_data", data)

    def __getitem__(self, key: str) -> str:
        return self._data[key][-1]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}})"

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))


def parse_urlencoded(body: bytes, encoding: str = "utf-8") -> FormData:
    """Parse a URL-encoded body. Undecodable bytes are replaced, not fatal."""
    parsed = parse_qs(body.decode(encoding, errors="replace"), keep_blank_values=True)
    return FormData(parsed)
