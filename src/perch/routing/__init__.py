"""Routing: ordered route table with first-match dispatch.

Routes are registered during setup and frozen into an immutable table
when the app starts serving. Matching scans the table in registration
order; the first structural match wins.
"""

from perch.routing.route import PathSegment, Route, RouteMatch, parse_pattern
from perch.routing.router import Router, match_path

__all__ = ["PathSegment", "Route", "RouteMatch", "Router", "match_path", "parse_pattern"]
