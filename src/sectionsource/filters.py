# sectionsource/filters.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Sequence

from .compat import (
    PSEUDO_FILTER_KEYS,
    SYSTEM_CREATION_DATE,
    SYSTEM_ID,
    canonical_filter_key,
)
from .errors import ConfigurationError
from .fields import JoinClause, build_date_clause
from .logging import DeprecationNotices, logger
from .models import Entry
from .pools import FieldPool
from .utils import to_positive_int

"""
Filter compiler.

Turns a datasource's filter mapping (field id or pseudo key -> filter text
or list of alternatives) into where/join fragments for the entry query.

  ' + ' (or '+++') in the text   -> AND: every value must match
  otherwise                      -> OR: values split on unescaped commas
  a list of values               -> OR
  'not:' prefix                  -> negation

Identifier and date pseudo keys are compiled here; every other key is
handed to its Field.

date: 2026-10-19
version: 0.1.0
"""


# ---------------------------------------------------------------------------
# Filter text
# ---------------------------------------------------------------------------

class FilterType(Enum):
    AND = "and"
    OR = "or"


_AND_MARKER = re.compile(r"(\s+\+\s+)|(\+\+\+)")
_AND_SPLIT = re.compile(r"\s*\+\s*")
_OR_SPLIT = re.compile(r"\s*(?<!\\),\s*")


def determine_filter_type(value: str) -> FilterType:
    """'a + b' (or 'a+++b', a url-encoded ' + ') is AND; anything else OR."""
    return FilterType.AND if _AND_MARKER.search(value) else FilterType.OR


def split_filter(filter_type: FilterType, value: str) -> list[str]:
    pattern = _AND_SPLIT if filter_type is FilterType.AND else _OR_SPLIT
    parts = (p.strip() for p in pattern.split(value))
    return [p.replace("\\,", ",") for p in parts if p]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return not any(str(v).strip() for v in value if v is not None)
    return str(value).strip() == ""


# ---------------------------------------------------------------------------
# Identifier filters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IdCondition:
    negate: bool
    ids: tuple[int, ...]

    @property
    def operator(self) -> str:
        return "NOT IN" if self.negate else "IN"

    def to_clause(self, column=Entry.id):
        ids = list(self.ids)
        return column.not_in(ids) if self.negate else column.in_(ids)

    def __str__(self) -> str:
        return f"{self.operator} ({', '.join(str(i) for i in self.ids)})"


_NOT = re.compile(r"^not:\s*", re.IGNORECASE)


def _partition_negations(tokens: Sequence[str]) -> list[tuple[bool, list[str]]]:
    """
    Split a token run into inclusion/exclusion groups. A 'not:' token opens
    an exclusion group that the following tokens join:
      ['1', '2', 'not:3', '4'] -> [(False, ['1', '2']), (True, ['3', '4'])]
    """
    groups: list[tuple[bool, list[str]]] = []
    negate, current = False, []
    for token in tokens:
        t = str(token).strip()
        if _NOT.match(t):
            if current:
                groups.append((negate, current))
            negate, current = True, [_NOT.sub("", t, count=1)]
        else:
            current.append(t)
    if current:
        groups.append((negate, current))
    return groups


def compile_identifier_filter(values: Sequence[str], filter_type: FilterType) -> list[IdCondition]:
    """
    Tokens that are not plain non-negative integers count as 0. A group that
    is all zeros becomes IN (0) so it matches nothing rather than everything.
    """
    if filter_type is FilterType.AND:
        runs = [str(v).split(",") for v in values]
    else:
        # list values may still carry comma runs, e.g. a resolved "1,2"
        runs = [[t for v in values for t in str(v).split(",")]]

    conditions: list[IdCondition] = []
    for run in runs:
        for negate, tokens in _partition_negations(run):
            ids = [to_positive_int(t) for t in tokens]
            kept = [i for i in ids if i]
            if sum(ids) == 0:
                kept.append(0)
            conditions.append(IdCondition(negate, tuple(kept)))
    return conditions


# ---------------------------------------------------------------------------
# Compiled result
# ---------------------------------------------------------------------------

@dataclass
class CompiledFilters:
    where: List[Any] = field(default_factory=list)
    joins: List[JoinClause] = field(default_factory=list)
    group: bool = False
    force_empty: bool = False
    id_conditions: List[IdCondition] = field(default_factory=list)


def _normalize_key(key):
    if isinstance(key, str) and key.strip().isdigit():
        return int(key.strip())
    return key


# ---------------------------------------------------------------------------
# FilterCompiler
# ---------------------------------------------------------------------------

class FilterCompiler:
    """
    Compiles one datasource's filters against a per-invocation FieldPool.
    """

    def __init__(
        self,
        field_pool: FieldPool,
        datasource_name: str,
        notices: DeprecationNotices | None = None,
    ):
        self._pool = field_pool
        self._name = datasource_name
        self._notices = notices or DeprecationNotices()

    def compile(self, filters: Mapping[Any, Any] | None) -> CompiledFilters:
        compiled = CompiledFilters()
        if not filters:
            return compiled

        filters = {_normalize_key(k): v for k, v in filters.items()}
        self._pool.prime(k for k in filters if isinstance(k, int))

        for key, raw in filters.items():
            if is_blank(raw):
                continue

            if isinstance(raw, (list, tuple)):
                filter_type = FilterType.OR
                values = [str(v).strip() for v in raw if v is not None and str(v).strip()]
            else:
                filter_type = determine_filter_type(str(raw))
                values = split_filter(filter_type, str(raw))

            if key not in PSEUDO_FILTER_KEYS and (
                not isinstance(key, int) or self._pool.get(key) is None
            ):
                raise ConfigurationError(
                    f"Error creating field object with id {key}, for filtering in "
                    f"data source {self._name}. Check this field exists."
                )

            and_mode = filter_type is FilterType.AND

            if key in PSEUDO_FILTER_KEYS:
                canonical = canonical_filter_key(key, self._notices)
                if canonical == SYSTEM_ID:
                    for cond in compile_identifier_filter(values, filter_type):
                        compiled.id_conditions.append(cond)
                        compiled.where.append(cond.to_clause(Entry.id))
                    continue

                column = (
                    Entry.creation_date
                    if canonical == SYSTEM_CREATION_DATE
                    else Entry.modification_date
                )
                clause = build_date_clause(values, and_mode, column)
                if clause is None:
                    logger.info("Data source %s: unusable date filter %r", self._name, raw)
                    compiled.force_empty = True
                    return compiled
                compiled.where.append(clause)
                continue

            target = self._pool.get(key)
            clause = target.build_filter(values, and_mode)
            if clause is None:
                logger.info(
                    "Data source %s: field %r cannot filter on %r",
                    self._name,
                    target.element_name,
                    raw,
                )
                compiled.force_empty = True
                return compiled

            compiled.joins.extend(clause.joins)
            compiled.where.extend(clause.where)
            if not compiled.group:
                compiled.group = target.requires_grouping()

        return compiled
