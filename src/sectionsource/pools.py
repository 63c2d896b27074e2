# sectionsource/pools.py
from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import ConfigurationError
from .fields import Field

"""
Per-invocation state: the field pool (resolved Field objects) and the
parameter pool (named value lists). A datasource creates fresh instances
for every execute() call; neither is shared between invocations.
"""


# ---------------------------------------------------------------------------
# FieldPool
# ---------------------------------------------------------------------------

class FieldPool:
    """
    Field id -> Field cache backed by a FieldRepository.

    An id is looked up at most once; misses are remembered too.
    """

    def __init__(self, repo):
        self._repo = repo
        self._fields: Dict[int, Optional[Field]] = {}
        self.lookups = 0  # repository round trips, for diagnostics

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._fields

    def prime(self, field_ids: Iterable[int]) -> None:
        missing = sorted({int(i) for i in field_ids} - set(self._fields))
        if not missing:
            return
        found = self._repo.fetch_many(missing)
        self.lookups += 1
        for fid in missing:
            self._fields[fid] = found.get(fid)

    def get(self, field_id: int) -> Optional[Field]:
        fid = int(field_id)
        if fid not in self._fields:
            self._fields[fid] = self._repo.fetch(fid)
            self.lookups += 1
        return self._fields[fid]

    def require(self, field_id: int, message: str) -> Field:
        found = self.get(field_id)
        if found is None:
            raise ConfigurationError(message)
        return found


# ---------------------------------------------------------------------------
# ParameterPool
# ---------------------------------------------------------------------------

class ParameterPool:
    """
    Parameter key -> ordered list of values.
    Scalars passed in the initial mapping are wrapped in a list.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, List[Any]] = {}
        for key, value in (initial or {}).items():
            if isinstance(value, (list, tuple)):
                self._values[key] = list(value)
            elif value is None:
                self._values[key] = []
            else:
                self._values[key] = [value]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def get(self, key: str, default: Optional[List[Any]] = None) -> Optional[List[Any]]:
        if key in self._values:
            return list(self._values[key])
        return default

    def ensure(self, key: str) -> None:
        self._values.setdefault(key, [])

    def append(self, key: str, value: Any) -> None:
        self._values.setdefault(key, []).append(value)

    def prepend(self, key: str, values: Iterable[Any]) -> None:
        """Most recent first: new values go in front of what is there."""
        self._values[key] = list(values) + self._values.get(key, [])

    def as_dict(self) -> Dict[str, List[Any]]:
        return {k: list(v) for k, v in self._values.items()}
