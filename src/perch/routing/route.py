"""Route and RouteMatch frozen dataclasses."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

PARAM_MARKER = ":"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Literal:  ``users``  (is_param=False)
    Param:    ``:id``    (is_param=True, param_name="id")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


def parse_pattern(pattern: str) -> tuple[PathSegment, ...]:
    """Split a route pattern on ``/`` into segments.

    Empty segments are kept, so the leading slash, a trailing slash and
    doubled slashes all count toward the segment total::

        "/users/:id"  -> ("", "users", :id)
        "/users/"     -> ("", "users", "")
    """
    segments: list[PathSegment] = []
    for part in pattern.split("/"):
        if part.startswith(PARAM_MARKER):
            segments.append(PathSegment(value=part, is_param=True, param_name=part[1:]))
        else:
            segments.append(PathSegment(value=part))
    return tuple(segments)


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route. Immutable once created."""

    method: str
    pattern: str
    handlers: tuple[Callable[..., Any], ...]
    segments: tuple[PathSegment, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if not self.segments:
            object.__setattr__(self, "segments", parse_pattern(self.pattern))

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(s.param_name or "" for s in self.segments if s.is_param)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: dict[str, str]
    query: Mapping[str, str] = field(default_factory=dict)
    hash: str | None = None
