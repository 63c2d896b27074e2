# sectionsource/fields/base.py
from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Sequence
from xml.etree.ElementTree import Element, SubElement

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import aliased

from ..dto import Record, StoredValue
from ..errors import ConfigurationError
from ..models import Entry, EntryValue

"""
Base capability set for fields.

A field knows how to:
  - turn filter values into where/join fragments (build_filter)
  - say whether those joins can duplicate rows (requires_grouping)
  - render its stored values into an output node (append_formatted_element)
  - publish a value into the parameter pool (parameter_value)
  - partition records into groups (group_records), where supported
  - turn raw input into storage rows (to_storage)

Concrete types live next to this module and register themselves by type tag.

date: 2026-10-19
version: 0.1.0
"""


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------

@dataclass
class JoinClause:
    target: Any          # aliased EntryValue
    onclause: Any
    outer: bool = False


@dataclass
class FilterClause:
    where: list = field(default_factory=list)
    joins: list[JoinClause] = field(default_factory=list)


@dataclass
class GroupNode:
    """
    One partition of records. `groups` maps a nested element name to its
    ordered sub-groups (e.g. a year group holding 'month' groups).
    """
    attrs: dict[str, str]
    records: list[Record] = field(default_factory=list)
    groups: dict[str, list["GroupNode"]] = field(default_factory=dict)

    def flatten(self) -> list[Record]:
        out = list(self.records)
        for subgroups in self.groups.values():
            for g in subgroups:
                out.extend(g.flatten())
        return out


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_NEGATION = re.compile(r"^not:\s*", re.IGNORECASE)


def split_negation(values: Sequence[str]) -> tuple[bool, list[str]]:
    """
    A leading 'not:' on the first value negates the whole set:
      ['not:a', 'b'] -> (True, ['a', 'b'])
    """
    cleaned = [str(v).strip() for v in values]
    cleaned = [v for v in cleaned if v]
    if cleaned and _NEGATION.match(cleaned[0]):
        first = _NEGATION.sub("", cleaned[0], count=1)
        rest = cleaned[1:]
        return True, ([first] + rest) if first else rest
    return False, cleaned


def encode_text(value: Optional[str], encode: bool) -> str:
    s = "" if value is None else str(value)
    return html.escape(s) if encode else s


# ---------------------------------------------------------------------------
# Field
# ---------------------------------------------------------------------------

class Field:
    """
    Base field. Subclasses set `type` and override what they support.
    """

    type: ClassVar[str] = ""

    def __init__(
        self,
        id: int,
        section_id: int,
        element_name: str,
        label: Optional[str] = None,
        settings: Optional[dict[str, Any]] = None,
    ):
        self.id = int(id)
        self.section_id = int(section_id)
        self.element_name = element_name
        self.label = label or element_name
        self.settings = dict(settings or {})

    @classmethod
    def from_row(cls, row) -> "Field":
        settings = json.loads(row.settings_json) if row.settings_json else {}
        return cls(
            id=row.id,
            section_id=row.section_id,
            element_name=row.element_name,
            label=row.label,
            settings=settings,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, element_name={self.element_name!r})>"

    # -- filtering --------------------------------------------------------------

    def requires_grouping(self) -> bool:
        return False

    def value_join(self, outer: bool = False) -> tuple[Any, JoinClause]:
        alias = aliased(EntryValue)
        on = and_(alias.entry_id == Entry.id, alias.field_id == self.id)
        return alias, JoinClause(alias, on, outer)

    def sort_join(self) -> tuple[Any, JoinClause]:
        # first value only, so multi-valued fields do not duplicate rows
        alias = aliased(EntryValue)
        on = and_(
            alias.entry_id == Entry.id,
            alias.field_id == self.id,
            alias.position == 0,
        )
        return alias, JoinClause(alias, on, outer=True)

    def sort_column(self, alias):
        return alias.value

    def match(self, alias, value: str):
        """Condition for one filter value against `alias`, or None if invalid."""
        raise NotImplementedError

    def build_filter(self, values: Sequence[str], and_mode: bool) -> Optional[FilterClause]:
        """
        Returns the fragments for this field's filter, or None when the
        values are not valid for this field type.
        """
        negate, values = split_negation(values)
        if not values:
            return None

        if negate:
            ev = aliased(EntryValue)
            matches = [self.match(ev, v) for v in values]
            if any(m is None for m in matches):
                return None
            sub = select(ev.id).where(
                ev.entry_id == Entry.id,
                ev.field_id == self.id,
                or_(*matches),
            )
            return FilterClause(where=[~sub.exists()])

        clause = FilterClause()
        if and_mode:
            # one join per value: every value must be present
            for v in values:
                alias, join = self.value_join()
                m = self.match(alias, v)
                if m is None:
                    return None
                clause.joins.append(join)
                clause.where.append(m)
        else:
            alias, join = self.value_join()
            matches = [self.match(alias, v) for v in values]
            if any(m is None for m in matches):
                return None
            clause.joins.append(join)
            clause.where.append(or_(*matches))
        return clause

    # -- output -----------------------------------------------------------------

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
        node.text = encode_text(values[0].value, encode)

    def parameter_value(self, values: Sequence[StoredValue], entry_id: Optional[int] = None):
        """A scalar, a list (multi-valued), or None to skip."""
        if not values:
            return None
        return values[0].value

    # -- grouping ---------------------------------------------------------------

    def group_records(self, records: Sequence[Record]) -> dict[str, list[GroupNode]]:
        raise ConfigurationError(
            f"The field '{self.element_name}' ({self.type}) cannot be used for grouping."
        )

    def _partition(self, records: Sequence[Record], keys_for) -> dict[str, list[GroupNode]]:
        """
        Group records by the (key, attrs) pairs `keys_for(values)` yields.
        Records holding several values land in several groups; records with
        none are collected into a trailing group with no attributes.
        """
        groups: dict[str, GroupNode] = {}
        ungrouped: list[Record] = []
        for record in records:
            pairs = keys_for(record.data.get(self.id) or [])
            if not pairs:
                ungrouped.append(record)
                continue
            seen: set[str] = set()
            for key, attrs in pairs:
                if key in seen:
                    continue
                seen.add(key)
                node = groups.get(key)
                if node is None:
                    node = groups[key] = GroupNode(attrs=attrs)
                node.records.append(record)

        out = list(groups.values())
        if ungrouped:
            out.append(GroupNode(attrs={}, records=ungrouped))
        return {self.element_name: out}

    # -- storage ----------------------------------------------------------------

    def to_storage(self, raw: Any) -> list[dict[str, Any]]:
        """Raw input -> EntryValue column dicts (position is added by the repo)."""
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return []
        return [{"value": str(raw).strip()}]
