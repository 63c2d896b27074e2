# sectionsource/output.py
from __future__ import annotations

import re
from typing import Optional, Sequence, Union
from xml.etree.ElementTree import Element, SubElement

from .compat import wants_legacy_date_block
from .dto import AssociationDTO, Record, SectionDTO
from .fields import GroupNode
from .logging import DeprecationNotices
from .params import ParameterExtractor
from .pools import FieldPool
from .utils import date_element

"""
Output tree builder: records -> <entry> nodes, groups -> nested group nodes.

Field objects are resolved lazily: the ids in the first record of a batch
are fetched in one go and reused for the rest of the batch (records of one
section share a field set).

date: 2026-10-19
version: 0.1.0
"""

_MODE_SPLIT = re.compile(r"\s*:\s*")
_LEADING_DIGIT = re.compile(r"^[0-9]")


def parse_included_elements(included: Sequence[str]) -> list[tuple[str, Optional[str]]]:
    """['title', 'body: formatted'] -> [('title', None), ('body', 'formatted')]"""
    out = []
    for item in included:
        parts = _MODE_SPLIT.split(item.strip(), maxsplit=1)
        out.append((parts[0], parts[1] if len(parts) > 1 and parts[1] else None))
    return out


def section_element(section: SectionDTO) -> Element:
    node = Element("section", {"id": str(section.id), "handle": section.handle})
    node.text = section.name
    return node


def error_element(message: str, **attrs: str) -> Element:
    node = Element("error", {k.replace("_", "-"): v for k, v in attrs.items()})
    node.text = message
    return node


class OutputBuilder:
    def __init__(
        self,
        field_pool: FieldPool,
        extractor: ParameterExtractor,
        entries,
        *,
        included_elements: Sequence[str] = (),
        html_encode: bool = False,
        param_output_only: bool = False,
        associations: Sequence[AssociationDTO] = (),
        notices: Optional[DeprecationNotices] = None,
    ):
        self._pool = field_pool
        self._extractor = extractor
        self._entries = entries
        self._included_raw = list(included_elements)
        self._included = parse_included_elements(included_elements)
        self._encode = html_encode
        self._param_output_only = param_output_only
        self._associations = list(associations)
        self._notices = notices or DeprecationNotices()

    # -- records ----------------------------------------------------------------

    def render_records(self, parent: Element, records: Sequence[Record]) -> None:
        if records:
            self._pool.prime(records[0].data.keys())
        for record in records:
            node = self.process_entry(record)
            if isinstance(node, Element):
                parent.append(node)

    def process_entry(self, record: Record) -> Union[Element, bool]:
        """
        Returns the <entry> node, or True in parameter-output-only mode
        (parameters are still extracted).
        """
        node = Element("entry", {"id": str(record.id)})

        if self._associations:
            self.set_associated_entry_counts(node, record)

        if self._extractor.wants_system_parameters():
            self._extractor.system_parameters(record)

        for field_id, values in record.data.items():
            field = self._pool.get(field_id)
            if field is None:
                continue

            if self._extractor.active:
                self._extractor.field_parameters(record, field, values)

            if self._param_output_only:
                continue
            for handle, mode in self._included:
                if field.element_name == handle:
                    field.append_formatted_element(
                        node, values, encode=self._encode, mode=mode, entry_id=record.id
                    )

        if self._param_output_only:
            return True

        if wants_legacy_date_block(self._included_raw, self._notices):
            block = SubElement(node, "system-date")
            date_element(block, "created", record.creation_date)
            date_element(block, "modified", record.modification_date)

        return node

    # -- groups -----------------------------------------------------------------

    def render_groups(self, parent: Element, groups: dict[str, list[GroupNode]]) -> None:
        for element, group_list in groups.items():
            for group in group_list:
                node = self.process_record_group(element, group)
                if node is not None:
                    parent.append(node)

    def process_record_group(self, element: str, group: GroupNode) -> Optional[Element]:
        node = Element(element, dict(group.attrs))
        self.render_records(node, group.records)
        self.render_groups(node, group.groups)
        if self._param_output_only:
            return None
        return node

    # -- associations -----------------------------------------------------------

    def set_associated_entry_counts(self, node: Element, record: Record) -> None:
        """
        <entry comments-article="3" comments="3"> for each associated section;
        handles starting with a digit get an 'x-' prefix.
        """
        counts = self._entries.fetch_associated_entry_counts(record.id, self._associations)
        for section_id, by_field in counts.items():
            for assoc in self._associations:
                if assoc.id != section_id:
                    continue
                section_handle = assoc.handle
                if _LEADING_DIGIT.match(section_handle):
                    section_handle = "x-" + section_handle
                for field_id, count in by_field.items():
                    field = self._pool.get(field_id)
                    if field is not None:
                        node.set(f"{section_handle}-{field.element_name}", str(count))
                    node.set(section_handle, str(count))
