"""Shared pytest configuration for perch examples.

Provides the ``example_app`` fixture, which executes the ``app.py``
sitting next to the requesting test and returns its ``app``. The file
runs afresh for every test, so module-level state starts clean.
"""

import runpy
from pathlib import Path

import pytest


@pytest.fixture
def example_app(request: pytest.FixtureRequest):
    """Load a fresh App from the sibling app.py next to the test file."""
    app_path = Path(request.path).parent / "app.py"
    namespace = runpy.run_path(str(app_path), run_name=f"example_{app_path.parent.name}")
    return namespace["app"]
