"""Test utilities for perch applications.

Drives an App through its ASGI interface in-process::

    from perch.testing import TestClient
"""

from perch.testing.client import TestClient, TestResponse

__all__ = ["TestClient", "TestResponse"]
