"""CLI output formatting utilities.

Text, JSON and YAML output for commands, the list/action JSON envelopes
and HTML to Markdown conversion for message and event bodies.
"""
from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, TextIO

import html2text
import yaml


class OutputFormat(str, Enum):
    """Output format options."""
    TEXT = "text"
    JSON = "json"
    YAML = "yaml"


@dataclass
class OutputConfig:
    """Configuration for output formatting."""
    format: OutputFormat = OutputFormat.TEXT
    quiet: bool = False
    file: Optional[TextIO] = None

    @property
    def stream(self) -> TextIO:
        """Get the output stream."""
        return self.file or sys.stdout


# -------------------- Envelopes --------------------

def list_envelope(response: Any) -> Dict[str, Any]:
    """JSON shape for list commands.

    ``@odata.count`` is omitted when zero and ``nextPageToken`` when there
    is no further page.
    """
    items = list(response.items)
    env: Dict[str, Any] = {"value": items}
    if response.count:
        env["@odata.count"] = response.count
    env["hasMore"] = bool(response.has_more)
    if response.next_token:
        env["nextPageToken"] = response.next_token
    return env


def action_envelope(success: bool, message: str) -> Dict[str, Any]:
    return {"success": bool(success), "message": message}


def next_page_hint(token: Optional[str]) -> str:
    """Human hint for fetching the next page; empty when there is none."""
    if not token:
        return ""
    return f"\nNext page: --page-token {token}\n"


# -------------------- HTML to Markdown --------------------

def html_to_markdown(html: Optional[str]) -> str:
    """Convert HTML to Markdown; returns the input unchanged on failure."""
    if not html:
        return ""
    converter = html2text.HTML2Text()
    converter.body_width = 0
    converter.ignore_images = False
    try:
        return converter.handle(html).strip()
    except (ValueError, AssertionError):
        return html


def convert_body_to_markdown(body: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return a copy of an HTML ``body`` as Markdown; other bodies unchanged."""
    if body is None:
        return None
    if str(body.get("contentType") or "").lower() != "html":
        return body
    return {
        **body,
        "contentType": "Markdown",
        "content": html_to_markdown(body.get("content") or ""),
    }


def with_markdown_body(resource: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a message or event with its body converted to Markdown."""
    body = resource.get("body")
    if not isinstance(body, dict):
        return resource
    return {**resource, "body": convert_body_to_markdown(body)}


# -------------------- Writer --------------------

class OutputWriter:
    """Handles formatted output for CLI commands."""

    def __init__(self, config: Optional[OutputConfig] = None):
        self.config = config or OutputConfig()

    @property
    def is_text(self) -> bool:
        return self.config.format == OutputFormat.TEXT

    def print(self, *args, **kwargs) -> None:
        """Print to the configured output stream."""
        if self.config.quiet:
            return
        kwargs.setdefault("file", self.config.stream)
        print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def print_warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        print(f"Warning: {message}", file=sys.stderr)

    def print_data(self, data: Any) -> None:
        """Print data in the configured format."""
        fmt = self.config.format
        if fmt == OutputFormat.JSON:
            self._print_json(data)
        elif fmt == OutputFormat.YAML:
            self._print_yaml(data)
        else:
            self._print_text(data)

    def print_dict(
        self,
        data: Dict[str, Any],
        *,
        separator: str = ": ",
        indent: int = 0,
    ) -> None:
        """Print a dictionary as key-value pairs."""
        if self.config.format == OutputFormat.JSON:
            self._print_json(data)
            return
        if self.config.format == OutputFormat.YAML:
            self._print_yaml(data)
            return

        prefix = " " * indent
        for key, value in data.items():
            self.print(f"{prefix}{key}{separator}{value}")

    def print_list_response(
        self,
        response: Any,
        render_item: Callable[[Any], Iterable[str]],
        *,
        empty_message: str = "No items found",
        separator: Optional[str] = "---",
    ) -> None:
        """Print one page of results.

        JSON/YAML emit the list envelope. Text renders each item and then the
        next-page hint when a further page exists.
        """
        if not self.is_text:
            self.print_data(list_envelope(response))
            return
        if not response.items:
            self.print(empty_message)
            return
        for item in response.items:
            for line in render_item(item):
                self.print(line)
            if separator is not None:
                self.print(separator)
        hint = next_page_hint(response.next_token)
        if hint:
            self.print(hint, end="")

    def print_action(self, message: str, *, text: Optional[str] = None) -> None:
        """Print the result of an action (send, respond, save)."""
        if not self.is_text:
            self.print_data(action_envelope(True, message))
            return
        self.print(text or message)

    def _print_json(self, data: Any) -> None:
        """Print data as JSON."""
        normalized = self._normalize_for_json(data)
        self.print(json.dumps(normalized, indent=2, default=str))

    def _print_yaml(self, data: Any) -> None:
        """Print data as YAML."""
        normalized = self._normalize_for_json(data)
        self.print(yaml.safe_dump(normalized, default_flow_style=False, sort_keys=False), end="")

    def _print_text(self, data: Any) -> None:
        """Print data as plain text."""
        if isinstance(data, str):
            self.print(data)
        elif isinstance(data, dict):
            self.print_dict(data)
        elif isinstance(data, (list, tuple)):
            for item in data:
                self.print(item)
        elif is_dataclass(data) and not isinstance(data, type):
            self.print_dict(asdict(data))
        else:
            self.print(str(data))

    def _normalize_for_json(self, data: Any) -> Any:
        """Normalize data for JSON serialization."""
        if is_dataclass(data) and not isinstance(data, type):
            return asdict(data)
        if isinstance(data, dict):
            return {k: self._normalize_for_json(v) for k, v in data.items()}
        if isinstance(data, (list, tuple)):
            return [self._normalize_for_json(v) for v in data]
        if isinstance(data, Enum):
            return data.value
        return data


def format_recipient(recipient: Optional[Dict[str, Any]]) -> str:
    """``Name <address>`` for a Graph recipient/emailAddress wrapper."""
    email = (recipient or {}).get("emailAddress") or {}
    name = email.get("name") or ""
    address = email.get("address") or ""
    if name and address:
        return f"{name} <{address}>"
    return address or name


def format_recipients(recipients: Optional[List[Dict[str, Any]]]) -> str:
    return ", ".join(filter(None, (format_recipient(r) for r in recipients or [])))
