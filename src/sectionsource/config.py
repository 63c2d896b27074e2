# sectionsource/config.py
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields as dc_fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import ConfigurationError

"""
Datasource configuration.

- DatasourceConfig: the options one section datasource recognises.
- from_mapping(): builds a config from a plain mapping (JSON file, CLI),
  accepting 'yes'/'no' toggles and hyphenated keys.
- load_configs(): reads one datasource or a list of them from a JSON file.

date: 2026-10-19
version: 0.1.0
"""

_VALID_ORDERS = ("asc", "desc", "random")
_DEPENDENCY = re.compile(r"\$ds-([^.}:,\s]+)")

_TRUE = {"yes", "true", "1", "on"}
_FALSE = {"no", "false", "0", "off", ""}


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int):
        return value != 0
    s = str(value).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ConfigurationError(f"Option '{key}' expects yes/no, got {value!r}")


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [str(v) for v in value]


@dataclass
class DatasourceConfig:
    root_element: str
    source: int
    name: Optional[str] = None
    included_elements: List[str] = field(default_factory=list)
    param_output: List[str] = field(default_factory=list)
    filters: Dict[Any, Any] = field(default_factory=dict)
    sort: Optional[str] = None
    order: str = "desc"
    paginate: bool = True
    start_page: Union[int, str] = 1
    limit: Optional[int] = 20
    group: Optional[int] = None
    html_encode: bool = False
    associated_entry_counts: bool = True
    redirect_on_required: bool = False
    redirect_on_forbidden: bool = False
    redirect_on_empty: bool = False
    required_param: Optional[str] = None
    negate_param: Optional[str] = None
    param_output_only: bool = False

    def __post_init__(self):
        if not self.root_element or not str(self.root_element).strip():
            raise ConfigurationError("A datasource needs a root element name")
        self.root_element = str(self.root_element).strip()
        try:
            self.source = int(self.source)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Datasource {self.root_element}: invalid source {self.source!r}")
        if self.name is None:
            self.name = self.root_element

        self.order = (self.order or "desc").strip().lower()
        if self.order not in _VALID_ORDERS:
            raise ConfigurationError(
                f"Datasource {self.name}: order must be one of {', '.join(_VALID_ORDERS)}"
            )

        # null or negative means 'all'
        if self.limit is not None:
            try:
                self.limit = int(self.limit)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Datasource {self.name}: invalid limit {self.limit!r}")
            if self.limit < 0:
                self.limit = None

        if self.group is not None and str(self.group).strip() != "":
            try:
                self.group = int(self.group)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Datasource {self.name}: invalid group field {self.group!r}")
        else:
            self.group = None

        if isinstance(self.start_page, str) and self.start_page.strip().isdigit():
            self.start_page = int(self.start_page.strip())

        self.included_elements = _as_list(self.included_elements)
        self.param_output = _as_list(self.param_output)
        self.filters = dict(self.filters or {})

    # -- helpers ----------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DatasourceConfig":
        known = {f.name for f in dc_fields(cls)}
        toggles = {
            f.name for f in dc_fields(cls) if f.type in ("bool", bool)
        }
        kwargs: Dict[str, Any] = {}
        for raw_key, value in data.items():
            key = str(raw_key).replace("-", "_")
            if key not in known:
                raise ConfigurationError(f"Unknown datasource option: {raw_key!r}")
            kwargs[key] = _as_bool(raw_key, value) if key in toggles else value

        for required in ("root_element", "source"):
            if required not in kwargs:
                raise ConfigurationError(f"Datasource option '{required}' is required")
        return cls(**kwargs)

    def dependencies(self) -> set[str]:
        """Root elements of the datasources whose parameters this one reads."""
        texts = [str(v) for v in self.filters.values() if not isinstance(v, (list, tuple))]
        for v in self.filters.values():
            if isinstance(v, (list, tuple)):
                texts.extend(str(x) for x in v)
        texts.extend(str(x) for x in (self.required_param, self.negate_param, self.start_page) if x)
        found: set[str] = set()
        for text in texts:
            found.update(_DEPENDENCY.findall(text))
        found.discard(self.root_element)
        return found


def load_configs(path: Union[str, Path]) -> List[DatasourceConfig]:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"Config file not found: {p}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {p}: {e}")

    if isinstance(data, Mapping):
        data = [data]
    if not isinstance(data, list):
        raise ConfigurationError(f"{p}: expected an object or a list of objects")
    return [DatasourceConfig.from_mapping(item) for item in data]
