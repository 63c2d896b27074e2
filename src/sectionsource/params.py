# sectionsource/params.py
from __future__ import annotations

import re
from typing import Any, Optional, Sequence

from .compat import (
    SYSTEM_AUTHOR,
    SYSTEM_CREATION_DATE,
    SYSTEM_ID,
    SYSTEM_MODIFICATION_DATE,
    SYSTEM_PARAMETERS,
    canonical_parameter,
    legacy_pool_key,
    qualified_pool_key,
)
from .dto import Record, StoredValue
from .fields import Field
from .logging import DeprecationNotices
from .pools import ParameterPool
from .utils import as_utc

"""
Parameter pool plumbing.

- resolve_parameters(): fills '{$name}' / '{$name:default}' placeholders from
  a pool, which is how one datasource's output feeds another's filters.
- ParameterExtractor: writes a datasource's output parameters
  ('ds-<root>.<param>', plus 'ds-<root>' when only one is requested).

date: 2026-10-19
version: 0.1.0
"""


# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

_PLACEHOLDER = re.compile(r"\{\$([^}:]+)(?::([^}]*))?\}")


def _join_values(values: Sequence[Any]) -> str:
    # commas inside a value are escaped so split_filter keeps them together
    return ",".join(str(v).replace(",", "\\,") for v in values if v is not None)


def resolve_parameters(text: str, pool: ParameterPool) -> str:
    """
    '{$ds-articles.system-id}'        -> '3,7'
    '{$page:1}'                       -> '1' when 'page' is unset or empty
    """
    def repl(m: re.Match) -> str:
        values = pool.get(m.group(1).strip()) or []
        joined = _join_values(values)
        if joined:
            return joined
        return m.group(2) if m.group(2) is not None else ""

    return _PLACEHOLDER.sub(repl, text)


def resolve_expression(expr: Optional[str], pool: ParameterPool) -> str:
    """
    A bare '$name' is read as '{$name}'; anything else goes through
    resolve_parameters unchanged.
    """
    if not expr:
        return ""
    s = expr.strip()
    if s.startswith("$"):
        s = "{" + s + "}"
    return resolve_parameters(s, pool).strip()


def resolve_filters(filters: dict, pool: ParameterPool) -> dict:
    out = {}
    for key, value in filters.items():
        if isinstance(value, (list, tuple)):
            out[key] = [resolve_parameters(str(v), pool) for v in value if v is not None]
        elif value is None:
            out[key] = None
        else:
            out[key] = resolve_parameters(str(value), pool)
    return out


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _iso(dt) -> str:
    return as_utc(dt).isoformat()


class ParameterExtractor:
    """
    Writes requested output parameters for each processed record.

    System parameters are appended; field values come from the field's
    parameter_value(): lists are put in front of existing values, scalars
    appended, None skipped.
    """

    def __init__(
        self,
        root_element: str,
        param_output: Sequence[str],
        pool: ParameterPool,
        notices: Optional[DeprecationNotices] = None,
    ):
        self.params = list(param_output or [])
        self.pool = pool
        self.key = legacy_pool_key(root_element)
        self.single = len(self.params) == 1
        self._root = root_element
        self._notices = notices or DeprecationNotices()

    @property
    def active(self) -> bool:
        return bool(self.params)

    def wants_system_parameters(self) -> bool:
        return any(p in SYSTEM_PARAMETERS for p in self.params)

    def _put(self, param: str, value: Any) -> None:
        self.pool.append(qualified_pool_key(self._root, param), value)
        if self.single:
            self.pool.append(self.key, value)

    def system_parameters(self, record: Record) -> None:
        for param in self.params:
            if param not in SYSTEM_PARAMETERS:
                continue
            canonical = canonical_parameter(param, self._notices)
            if canonical == SYSTEM_ID:
                self._put(param, record.id)
            elif canonical == SYSTEM_AUTHOR:
                self._put(param, record.author_id)
            elif canonical == SYSTEM_CREATION_DATE:
                self._put(param, _iso(record.creation_date))
            elif canonical == SYSTEM_MODIFICATION_DATE:
                self._put(param, _iso(record.modification_date))

    def field_parameters(self, record: Record, field: Field, values: Sequence[StoredValue]) -> None:
        if self.single:
            self.pool.ensure(self.key)

        for param in self.params:
            if field.element_name != param:
                continue

            param_key = qualified_pool_key(self._root, param)
            self.pool.ensure(param_key)

            value = field.parameter_value(values, record.id)
            if isinstance(value, (list, tuple)):
                self.pool.prepend(param_key, value)
                if self.single:
                    self.pool.prepend(self.key, value)
            elif value is not None:
                self.pool.append(param_key, value)
                if self.single:
                    self.pool.append(self.key, value)
