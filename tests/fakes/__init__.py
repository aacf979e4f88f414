"""Shared fake/mock objects for testing.

Modules:
    graph - FakeGraphClient for Microsoft Graph operations testing
"""

from __future__ import annotations

from tests.fakes.graph import FakeGraphClient, make_graph_client

__all__ = [
    "FakeGraphClient",
    "make_graph_client",
]
