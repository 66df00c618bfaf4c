"""Shared utility functions for the migration agent.

Request and CLI values arrive as loose strings; these helpers apply the
same lenient coercion the host platform uses.
"""

from __future__ import annotations

import re
from typing import Any

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_FALSE_FLAGS = ("", "0", "false", "no", "off")


def parse_int_prefix(value: Any) -> int:
    """Parse the leading integer of a value, returning 0 when there is none.

    Examples:
        >>> parse_int_prefix("42abc")
        42
        >>> parse_int_prefix("abc")
        0
    """
    if value is None or isinstance(value, bool):
        return int(bool(value))
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    match = _INT_PREFIX_RE.match(str(value))
    return int(match.group(1)) if match else 0


def parse_flag(value: Any) -> bool:
    """Read a stored or submitted flag; "0", "false", "no" and "off" are false."""
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_FLAGS
    return bool(value)


def sanitize_text_field(value: Any) -> str:
    """Clean a single-line text value from user input.

    Removes script/style blocks and other tags, then normalizes whitespace.
    """
    if value is None:
        return ""
    text = str(value)
    text = _SCRIPT_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = _CONTROL_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def parse_id_list(value: str | None) -> list[int]:
    """Parse a comma-separated id list, dropping zero, negative and non-numeric entries.

    Order and duplicates are preserved as given.
    """
    if not value:
        return []
    ids = (parse_int_prefix(part) for part in value.split(","))
    return [item_id for item_id in ids if item_id > 0]
