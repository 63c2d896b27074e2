# sectionsource/fields/__init__.py
from __future__ import annotations

from typing import Dict

from ..errors import ConfigurationError
from .base import Field, FilterClause, GroupNode, JoinClause, split_negation
from .date import DateField, DateRange, build_date_clause, parse_date_expression
from .number import NumberField
from .relation import RelationField
from .select import SelectField
from .text import InputField, TextareaField

"""
Field type registry.

- Registers field classes keyed by their type tag.
- The repositories build Field instances from stored rows through build_field,
  so behaviour is chosen by the stored tag, never by probing the object.
"""

_REGISTRY: Dict[str, type[Field]] = {}


def register(field_cls: type[Field]) -> None:
    _REGISTRY[field_cls.type.lower().strip()] = field_cls


def get(tag: str) -> type[Field]:
    key = (tag or "").lower().strip()
    try:
        return _REGISTRY[key]
    except KeyError:
        raise ConfigurationError(
            f"Unknown field type: {tag!r}. Available: {', '.join(sorted(_REGISTRY))}"
        )


def available() -> list[str]:
    return sorted(_REGISTRY.keys())


def build_field(row) -> Field:
    return get(row.type).from_row(row)


# Pre-register built-ins
for _cls in (InputField, TextareaField, NumberField, DateField, SelectField, RelationField):
    register(_cls)


__all__ = [
    "Field",
    "FilterClause",
    "GroupNode",
    "JoinClause",
    "DateRange",
    "split_negation",
    "build_date_clause",
    "parse_date_expression",
    "register",
    "get",
    "available",
    "build_field",
    "InputField",
    "TextareaField",
    "NumberField",
    "DateField",
    "SelectField",
    "RelationField",
]
