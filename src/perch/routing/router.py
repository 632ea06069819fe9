"""Route table and path matcher.

The table is a plain ordered sequence scanned once per request. Route
tables are small and static, so no trie or index is built and the
registration order alone decides which route wins.
"""

from collections.abc import Mapping, Sequence
from urllib.parse import unquote

from perch.routing.route import PathSegment, Route, RouteMatch


def match_path(segments: Sequence[PathSegment], path: str) -> dict[str, str] | None:
    """Match *path* against a parsed pattern.

    Returns the bound parameters (percent-decoded) or ``None``. Segment
    counts must be equal; literal segments must be equal position by
    position. There is no trailing-slash normalization.
    """
    parts = path.split("/")
    if len(parts) != len(segments):
        return None

    params: dict[str, str] = {}
    for segment, part in zip(segments, parts, strict=True):
        if segment.is_param:
            params[segment.param_name or ""] = unquote(part)
        elif segment.value != part:
            return None
    return params


class Router:
    """Ordered route table.

    Usage::

        router = Router()
        router.add(Route("GET", "/users/:id", (show_user,)))
        router.compile()
        match = router.match("GET", "/users/42")
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._compiled = False

    def add(self, route: Route) -> None:
        """Append a route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        self._routes.append(route)

    def compile(self) -> None:
        """Freeze the table. No more routes can be added."""
        self._compiled = True

    @property
    def routes(self) -> tuple[Route, ...]:
        """All registered routes in registration order."""
        return tuple(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def match(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, str] | None = None,
        hash: str | None = None,
    ) -> RouteMatch | None:
        """Return the first route whose method and pattern match, else ``None``.

        The method comparison is exact and case-sensitive and happens
        before any segment is compared.
        """
        for route in self._routes:
            if route.method != method:
                continue
            params = match_path(route.segments, path)
            if params is not None:
                return RouteMatch(
                    route=route,
                    params=params,
                    query=query if query is not None else {},
                    hash=hash,
                )
        return None
