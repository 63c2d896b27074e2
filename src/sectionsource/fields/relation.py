# sectionsource/fields/relation.py
from __future__ import annotations

from typing import Any, Optional, Sequence
from xml.etree.ElementTree import Element, SubElement

from ..dto import Record, StoredValue
from ..utils import to_positive_int
from .base import Field, GroupNode, encode_text


class RelationField(Field):
    """
    Links an entry to entries of another section (`related_section_id`
    setting). Values are related entry ids; an optional label is kept in
    `value` for output.
    """

    type = "relation"

    def requires_grouping(self) -> bool:
        return True

    def match(self, alias, value: str):
        entry_id = to_positive_int(value)
        if entry_id == 0:
            return None
        return alias.relation_id == entry_id

    def sort_column(self, alias):
        return alias.relation_id

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
            item = SubElement(node, "item", {"id": str(v.relation_id)})
            if v.value:
                item.text = encode_text(v.value, encode)

    def parameter_value(self, values: Sequence[StoredValue], entry_id: Optional[int] = None):
        if not values:
            return None
        return [v.relation_id for v in values if v.relation_id]

    def group_records(self, records: Sequence[Record]) -> dict[str, list[GroupNode]]:
        def keys_for(values):
            pairs = []
            for v in values:
                attrs = {"id": str(v.relation_id)}
                if v.value:
                    attrs["value"] = v.value
                pairs.append((str(v.relation_id), attrs))
            return pairs
        return self._partition(records, keys_for)

    def to_storage(self, raw: Any) -> list[dict[str, Any]]:
        """
        Accepts an id, a list of ids, or dicts like {'id': 3, 'value': 'Label'}.
        """
        if raw is None:
            return []
        items = raw if isinstance(raw, (list, tuple)) else [raw]
        out = []
        for item in items:
            label = None
            if isinstance(item, dict):
                label = item.get("value")
                item = item.get("id")
            rid = to_positive_int(item)
            if rid == 0:
                raise ValueError(f"Not an entry id: {item!r}")
            out.append({"relation_id": rid, "value": label})
        return out
