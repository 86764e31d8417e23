"""Unwrap MCP tool-call envelopes into plain structured data."""

from __future__ import annotations

import json
from typing import Any, Mapping


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def normalize_response(envelope: Any) -> Any:
    """
    Resolve an envelope to the value it carries.

    The first content block of type ``text`` wins: its JSON-decoded value when
    the text parses, otherwise the raw text. Without a text block the envelope's
    ``content`` is returned unchanged. Never raises.

    Example:
        >>> normalize_response({"content": [{"type": "text", "text": "[1, 2]"}]})
        [1, 2]
    """
    content = _field(envelope, "content")
    if isinstance(content, (list, tuple)):
        for block in content:
            if _field(block, "type") != "text":
                continue
            text = _field(block, "text")
            if not isinstance(text, str):
                break
            try:
                return json.loads(text)
            except (ValueError, RecursionError):
                return text
    return content


def as_items(value: Any) -> list[Any]:
    """Coerce a normalized payload into a list (bare list or ``{"items": [...]}``)."""
    if isinstance(value, list):
        return value
    if isinstance(value, Mapping):
        items = value.get("items")
        if isinstance(items, list):
            return items
    return []
