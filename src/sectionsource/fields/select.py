# sectionsource/fields/select.py
from __future__ import annotations

from typing import Any, Optional, Sequence
from xml.etree.ElementTree import Element, SubElement

from sqlalchemy import or_

from ..dto import Record, StoredValue
from ..utils import create_handle
from .base import Field, GroupNode, encode_text


class SelectField(Field):
    """
    One or more options per entry, each stored as its own row.
    Filters match an option's value or handle.
    """

    type = "select"

    def requires_grouping(self) -> bool:
        return True

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
        node = SubElement(parent, self.element_name)
        for v in values:
            item = SubElement(node, "item", {"handle": v.handle or ""})
            item.text = encode_text(v.value, encode)

    def parameter_value(self, values: Sequence[StoredValue], entry_id: Optional[int] = None):
        if not values:
            return None
        return [v.handle for v in values if v.handle]

    def group_records(self, records: Sequence[Record]) -> dict[str, list[GroupNode]]:
        def keys_for(values):
            return [
                (v.handle or "", {"handle": v.handle or "", "value": v.value or ""})
                for v in values
            ]
        return self._partition(records, keys_for)

    def to_storage(self, raw: Any) -> list[dict[str, Any]]:
        if raw is None:
            return []
        options = [raw] if isinstance(raw, str) else list(raw)
        out = []
        for opt in options:
            s = str(opt).strip()
            if s:
                out.append({"value": s, "handle": create_handle(s)})
        return out
