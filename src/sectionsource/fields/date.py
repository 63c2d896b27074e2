# sectionsource/fields/date.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence
from xml.etree.ElementTree import Element

from sqlalchemy import and_, or_, true

from ..dto import Record, StoredValue
from ..utils import date_element
from .base import Field, FilterClause, GroupNode

"""
Date field plus the date predicate builder shared with the
system:creation-date / system:modification-date pseudo-fields.

Filter grammar (one value):
  2024                      the whole year
  2024-03                   the whole month
  2024-03-01                the whole day
  2024-03-01 10:30[:15]     the minute (second)
  X to Y                    from the start of X to the end of Y
  earlier than X            before the start of X          (also '< X')
  equal to or earlier than X  before the end of X          (also '<= X')
  later than X              from the end of X onwards      (also '> X')
  equal to or later than X  from the start of X onwards    (also '>= X')
"""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateRange:
    """Half-open range [start, end); None on either side means unbounded."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None


_PRECISIONS = (
    ("%Y-%m-%dT%H:%M:%S", "second"),
    ("%Y-%m-%d %H:%M:%S", "second"),
    ("%Y-%m-%dT%H:%M", "minute"),
    ("%Y-%m-%d %H:%M", "minute"),
    ("%Y-%m-%d", "day"),
    ("%Y-%m", "month"),
    ("%Y", "year"),
)

_YEAR_PREFIX = re.compile(r"^\d{4}")

_PHRASES = (
    (re.compile(r"^equal\s+to\s+or\s+earlier\s+than\s+(.+)$", re.IGNORECASE), "<="),
    (re.compile(r"^equal\s+to\s+or\s+later\s+than\s+(.+)$", re.IGNORECASE), ">="),
    (re.compile(r"^earlier\s+than\s+(.+)$", re.IGNORECASE), "<"),
    (re.compile(r"^later\s+than\s+(.+)$", re.IGNORECASE), ">"),
    (re.compile(r"^(?:<=)\s*(.+)$"), "<="),
    (re.compile(r"^(?:>=)\s*(.+)$"), ">="),
    (re.compile(r"^(?:<)\s*(.+)$"), "<"),
    (re.compile(r"^(?:>)\s*(.+)$"), ">"),
)

_RANGE = re.compile(r"^(.+?)\s+to\s+(.+)$", re.IGNORECASE)


def _add_month(dt: datetime) -> datetime:
    if dt.month == 12:
        return dt.replace(year=dt.year + 1, month=1)
    return dt.replace(month=dt.month + 1)


def parse_period(text: str) -> Optional[DateRange]:
    """
    The period a single date token covers, e.g. '2024-03' -> [Mar 1, Apr 1).
    Returns None when the token is not a date.
    """
    s = (text or "").strip()
    if not _YEAR_PREFIX.match(s):
        return None

    for fmt, precision in _PRECISIONS:
        try:
            start = datetime.strptime(s, fmt)
        except ValueError:
            continue
        if precision == "year":
            end = start.replace(year=start.year + 1)
        elif precision == "month":
            end = _add_month(start)
        elif precision == "day":
            end = start + timedelta(days=1)
        elif precision == "minute":
            end = start + timedelta(minutes=1)
        else:
            end = start + timedelta(seconds=1)
        return DateRange(start, end)

    # full ISO timestamps with an offset
    try:
        start = datetime.fromisoformat(s)
    except ValueError:
        return None
    if start.tzinfo is not None:
        start = start.astimezone(timezone.utc).replace(tzinfo=None)
    return DateRange(start, start + timedelta(seconds=1))


def parse_date_expression(text: str) -> Optional[DateRange]:
    s = (text or "").strip()

    for pattern, op in _PHRASES:
        m = pattern.match(s)
        if not m:
            continue
        period = parse_period(m.group(1))
        if period is None:
            return None
        if op == "<":
            return DateRange(end=period.start)
        if op == "<=":
            return DateRange(end=period.end)
        if op == ">":
            return DateRange(start=period.end)
        return DateRange(start=period.start)

    m = _RANGE.match(s)
    if m:
        lo, hi = parse_period(m.group(1)), parse_period(m.group(2))
        if lo is None or hi is None:
            return None
        return DateRange(lo.start, hi.end)

    return parse_period(s)


def parse_point(raw: Any) -> datetime:
    """Storage helper: a datetime, or the start of a date token."""
    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            return raw.astimezone(timezone.utc).replace(tzinfo=None)
        return raw
    period = parse_period(str(raw))
    if period is None:
        raise ValueError(f"Not a date: {raw!r}")
    return period.start


# ---------------------------------------------------------------------------
# Predicate builder
# ---------------------------------------------------------------------------

def date_range_clause(column, rng: DateRange):
    parts = []
    if rng.start is not None:
        parts.append(column >= rng.start)
    if rng.end is not None:
        parts.append(column < rng.end)
    if not parts:
        return true()
    return and_(*parts)


def build_date_clause(values: Sequence[str], and_mode: bool, column):
    """
    Condition over `column` for the given filter values, or None if any
    value is not a valid date expression.
    """
    clauses = []
    for v in values:
        if not str(v).strip():
            continue
        rng = parse_date_expression(str(v))
        if rng is None:
            return None
        clauses.append(date_range_clause(column, rng))
    if not clauses:
        return None
    return and_(*clauses) if and_mode else or_(*clauses)


# ---------------------------------------------------------------------------
# DateField
# ---------------------------------------------------------------------------

class DateField(Field):
    type = "date"

    def build_filter(self, values: Sequence[str], and_mode: bool) -> Optional[FilterClause]:
        alias, join = self.value_join()
        clause = build_date_clause(values, and_mode, alias.date)
        if clause is None:
            return None
        return FilterClause(where=[clause], joins=[join])

    def sort_column(self, alias):
        return alias.date

    def append_formatted_element(
        self,
        parent: Element,
        values: Sequence[StoredValue],
        encode: bool = False,
        mode: Optional[str] = None,
        entry_id: Optional[int] = None,
    ) -> None:
        if not values or values[0].date is None:
            return
        date_element(parent, self.element_name, values[0].date)

    def parameter_value(self, values: Sequence[StoredValue], entry_id: Optional[int] = None):
        if not values or values[0].date is None:
            return None
        return values[0].date.strftime("%Y-%m-%d %H:%M:%S")

    def group_records(self, records: Sequence[Record]) -> dict[str, list[GroupNode]]:
        """
        Nested year -> month groups:
          {'year': [GroupNode({'value': '2024'}, groups={'month': [...]}) ...]}
        """
        years: dict[str, GroupNode] = {}
        months: dict[tuple[str, str], GroupNode] = {}
        undated: list[Record] = []

        for record in records:
            values = record.data.get(self.id) or []
            dt = values[0].date if values else None
            if dt is None:
                undated.append(record)
                continue
            y, m = f"{dt.year:04d}", f"{dt.month:02d}"
            year = years.get(y)
            if year is None:
                year = years[y] = GroupNode(attrs={"value": y})
            month = months.get((y, m))
            if month is None:
                month = months[(y, m)] = GroupNode(attrs={"value": m})
                year.groups.setdefault("month", []).append(month)
            month.records.append(record)

        out = list(years.values())
        if undated:
            out.append(GroupNode(attrs={}, records=undated))
        return {"year": out}

    def to_storage(self, raw: Any) -> list[dict[str, Any]]:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return []
        dt = parse_point(raw)
        return [{"value": dt.strftime("%Y-%m-%d %H:%M:%S"), "date": dt}]
