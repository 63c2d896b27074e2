# sectionsource/fields/number.py
from __future__ import annotations

import re
from typing import Any, Optional, Sequence
from xml.etree.ElementTree import Element, SubElement

from sqlalchemy import and_

from ..dto import StoredValue
from .base import Field

_NUM = r"-?\d+(?:\.\d+)?"
_RANGE = re.compile(rf"^({_NUM})\s+to\s+({_NUM})$", re.IGNORECASE)
_COMPARE = re.compile(rf"^(<=|>=|<|>)\s*({_NUM})$")
_WORDS = re.compile(rf"^(less|greater)\s+than\s+({_NUM})$", re.IGNORECASE)
_EXACT = re.compile(rf"^{_NUM}$")


def format_number(n: Optional[float]) -> str:
    if n is None:
        return ""
    return str(int(n)) if float(n).is_integer() else repr(float(n))


class NumberField(Field):
    """
    Numeric value. Filters:
      '12', '10 to 20', '< 5', '>= 5', 'less than 5', 'greater than 5'
    """

    type = "number"

    def match(self, alias, value: str):
        col = alias.number
        v = value.strip()

        m = _RANGE.match(v)
        if m:
            lo, hi = sorted((float(m.group(1)), float(m.group(2))))
            return and_(col >= lo, col <= hi)

        m = _COMPARE.match(v)
        if m:
            op, n = m.group(1), float(m.group(2))
            return {
                "<": col < n,
                "<=": col <= n,
                ">": col > n,
                ">=": col >= n,
            }[op]

        m = _WORDS.match(v)
        if m:
            n = float(m.group(2))
            return col < n if m.group(1).lower() == "less" else col > n

        if _EXACT.match(v):
            return col == float(v)

        return None

    def sort_column(self, alias):
        return alias.number

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
        node.text = format_number(values[0].number)

    def parameter_value(self, values: Sequence[StoredValue], entry_id: Optional[int] = None):
        if not values or values[0].number is None:
            return None
        return format_number(values[0].number)

    def to_storage(self, raw: Any) -> list[dict[str, Any]]:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return []
        n = float(raw)
        return [{"value": format_number(n), "number": n}]
