# sectionsource/fields/text.py
from __future__ import annotations

from typing import Any, Optional, Sequence
from xml.etree.ElementTree import Element, SubElement

import markdown
from sqlalchemy import or_

from ..dto import Record, StoredValue
from ..utils import create_handle
from .base import Field, GroupNode, encode_text


class InputField(Field):
    """Single line of text; stored with a handle so filters can use either."""

    type = "input"

    def match(self, alias, value: str):
        return or_(alias.value == value, alias.handle == value)

    def append_formatted_element(
        self,
        parent: Element,
        values: Sequence[StoredValue],
        encode: bool = False,
        mode: Optional[str] = None,
        entry_id: Optional[int] = None,
    ) -> None:
        if not values:
            return
        v = values[0]
        node = SubElement(parent, self.element_name, {"handle": v.handle or ""})
        node.text = encode_text(v.value, encode)

    def group_records(self, records: Sequence[Record]) -> dict[str, list[GroupNode]]:
        def keys_for(values):
            return [
                (v.handle or "", {"handle": v.handle or "", "value": v.value or ""})
                for v in values[:1]
            ]
        return self._partition(records, keys_for)

    def to_storage(self, raw: Any) -> list[dict[str, Any]]:
        if raw is None or not str(raw).strip():
            return []
        s = str(raw).strip()
        return [{"value": s, "handle": create_handle(s)}]


class TextareaField(Field):
    """
    Long text. Rendering modes:
      'formatted'   -> Markdown converted to HTML
      'unformatted' -> the raw text
    With no mode, the `formatter` setting decides ('markdown' -> formatted).
    """

    type = "textarea"

    def match(self, alias, value: str):
        return alias.value == value

    def _formatted(self, mode: Optional[str]) -> bool:
        if mode == "formatted":
            return True
        if mode == "unformatted":
            return False
        return self.settings.get("formatter") == "markdown"

    def append_formatted_element(
        self,
        parent: Element,
        values: Sequence[StoredValue],
        encode: bool = False,
        mode: Optional[str] = None,
        entry_id: Optional[int] = None,
    ) -> None:
        if not values:
            return
        raw = values[0].value or ""
        formatted = self._formatted(mode)
        attrs = {
            "word-count": str(len(raw.split())),
            "mode": "formatted" if formatted else "unformatted",
        }
        node = SubElement(parent, self.element_name, attrs)
        text = markdown.markdown(raw) if formatted else raw
        node.text = encode_text(text, encode)
