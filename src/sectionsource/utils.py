from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from xml.etree.ElementTree import Element, SubElement


# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------

_NON_HANDLE = re.compile(r"[^a-z0-9]+")


def create_handle(text: str | None) -> str:
    """
    Turn a display value into a url-safe handle:
      'Hello, World!'  -> 'hello-world'
      '  Über Cool  '  -> 'ber-cool'
    """
    s = (text or "").strip().lower()
    s = _NON_HANDLE.sub("-", s)
    return s.strip("-")


# ---------------------------------------------------------------------------
# Integers
# ---------------------------------------------------------------------------

def to_positive_int(value: Any) -> int:
    """
    Coerce an id-like token to a non-negative int.
    Anything that is not a plain run of digits becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value >= 0 else 0
    s = str(value).strip()
    if not s.isdigit():
        return 0
    return int(s)


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------

def as_utc(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes; they are stored as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def date_element(parent: Element | None, tag: str, dt: datetime) -> Element:
    """
    Build a date node:
      <tag iso="2024-03-01T10:30:00+00:00" time="10:30" weekday="5" offset="+0000">2024-03-01</tag>
    """
    dt = as_utc(dt)
    attrs = {
        "iso": dt.isoformat(),
        "timestamp": str(int(dt.timestamp())),
        "time": dt.strftime("%H:%M"),
        "weekday": str(dt.isoweekday()),
        "offset": dt.strftime("%z"),
    }
    node = Element(tag, attrs) if parent is None else SubElement(parent, tag, attrs)
    node.text = dt.strftime("%Y-%m-%d")
    return node


def pagination_element(
    total_entries: int | None,
    total_pages: int | None,
    entries_per_page: int | None,
    current_page: int = 1,
) -> Element:
    return Element(
        "pagination",
        {
            "total-entries": str(total_entries or 0),
            "total-pages": str(total_pages or 0),
            "entries-per-page": str(entries_per_page or 0),
            "current-page": str(current_page),
        },
    )
