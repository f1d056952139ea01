"""Small helpers for emitting D2 graph descriptions."""

from __future__ import annotations

import re
from typing import Optional

STATE_COLORS = (
    "#e8f5e9",
    "#fff3e0",
    "#e3f2fd",
    "#fce4ec",
    "#f3e5f5",
    "#e0f2f1",
    "#fff8e1",
    "#fbe9e7",
    "#e8eaf6",
    "#f1f8e9",
)

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_UPPERCASE = re.compile(r"([A-Z])")
_DOC_PATTERN = re.compile(r"doc\s+/\*(.+?)\*/")


def d2_id(name: str) -> str:
    """Make ``name`` safe to use as a D2 identifier."""
    return _UNSAFE_ID_CHARS.sub("_", name)


def state_color(index: int) -> str:
    return STATE_COLORS[index % len(STATE_COLORS)]


def short_type(type_name: str) -> str:
    """Drop package qualifiers: ``Domain::Types::UUID`` becomes ``UUID``."""
    return type_name.split("::")[-1]


def split_camel(name: str) -> str:
    """Insert a space before each capital: ``controllerToService`` -> ``controller To Service``."""
    return _UPPERCASE.sub(r" \1", name).strip()


def camel_to_title(name: str) -> str:
    spaced = _UPPERCASE.sub(r" \1", name)
    return (spaced[:1].upper() + spaced[1:]).strip()


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def first_doc(block: str) -> Optional[str]:
    """Return the first ``doc /* ... */`` comment in ``block``, trimmed."""
    match = _DOC_PATTERN.search(block)
    return match.group(1).strip() if match else None


def quote(label: str) -> str:
    return '"' + label.replace("\\", "\\\\").replace('"', '\\"') + '"'


__all__ = [
    "STATE_COLORS",
    "camel_to_title",
    "capitalize",
    "d2_id",
    "first_doc",
    "quote",
    "short_type",
    "split_camel",
    "state_color",
]
