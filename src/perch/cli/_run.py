"""``perch run``: resolve an app and call ``listen()`` on it."""

import argparse
import sys

from perch.cli._resolve import resolve_app
from perch.errors import InvalidListenConfiguration


def run_app(args: argparse.Namespace) -> None:
    """Start serving ``args.app``; CLI flags override the app's config."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        app.listen(args.port, args.host)
    except InvalidListenConfiguration as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
