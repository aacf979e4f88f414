"""Fake Graph client for testing.

Records every call and answers from canned responses keyed by path prefix,
so operations can be exercised without network access or credentials.
"""
# ruff: noqa: ARG002
# Unused parameters are intentional - these fakes must match the real interface signatures.

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass
class FakeGraphClient:
    """Configurable fake GraphClient.

    Example usage:
        client = FakeGraphClient(responses={
            "/me/calendars": {"value": [{"id": "cal1"}]},
        })

    The longest matching prefix of the requested path wins. A response that
    is an Exception instance is raised instead of returned; a list is a
    queue of successive responses (the last one repeats).
    """

    responses: Dict[str, Any] = field(default_factory=dict)
    post_responses: Dict[str, Any] = field(default_factory=dict)

    # Track calls
    gets: List[str] = field(default_factory=list)
    posts: List[Tuple[str, Any]] = field(default_factory=list)
    downloads: List[Tuple[str, str]] = field(default_factory=list)

    def _lookup(self, table: Dict[str, Any], path: str) -> Any:
        matches = [key for key in table if path.startswith(key)]
        if not matches:
            return {}
        result = table[max(matches, key=len)]
        if isinstance(result, list):
            result = result.pop(0) if len(result) > 1 else result[0]
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, path: str) -> Dict[str, Any]:
        self.gets.append(path)
        return self._lookup(self.responses, path)

    def post(self, path: str, body: Any = None) -> Dict[str, Any]:
        self.posts.append((path, body))
        return self._lookup(self.post_responses, path)

    def get_me(self) -> Dict[str, Any]:
        return self.get("/me")

    def download(self, url: str, dest: Union[str, Path], *, authenticated: bool = False) -> int:
        self.downloads.append((url, str(dest)))
        return 0


def make_graph_client(
    responses: Optional[Dict[str, Any]] = None,
    post_responses: Optional[Dict[str, Any]] = None,
) -> FakeGraphClient:
    """Factory for creating a pre-configured FakeGraphClient."""
    return FakeGraphClient(
        responses=dict(responses or {}),
        post_responses=dict(post_responses or {}),
    )
