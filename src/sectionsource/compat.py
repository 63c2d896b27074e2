# sectionsource/compat.py
from __future__ import annotations

from typing import Sequence

from .logging import DeprecationNotices

"""
Legacy aliases kept for older datasource configurations.

Everything here maps an old spelling onto the current one and logs a
deprecation notice; the rest of the pipeline only sees current keys.

  'id'           (filter key)           -> 'system:id'
  'system:date'  (filter / sort)        -> 'system:creation-date'
  'system:date'  (output parameter)     -> 'system:creation-date' value
  'system:date'  (included element)     -> <system-date> block
  'ds-<root>'    (parameter pool key)   -> filled alongside 'ds-<root>.<param>'
                                           when a single parameter is output
"""

SYSTEM_ID = "system:id"
SYSTEM_AUTHOR = "system:author"
SYSTEM_CREATION_DATE = "system:creation-date"
SYSTEM_MODIFICATION_DATE = "system:modification-date"
SYSTEM_PAGINATION = "system:pagination"

LEGACY_ID = "id"
LEGACY_DATE = "system:date"

SYSTEM_PARAMETERS = (
    SYSTEM_ID,
    SYSTEM_AUTHOR,
    SYSTEM_CREATION_DATE,
    SYSTEM_MODIFICATION_DATE,
    LEGACY_DATE,
)

PSEUDO_FILTER_KEYS = (
    SYSTEM_ID,
    LEGACY_ID,
    SYSTEM_CREATION_DATE,
    SYSTEM_MODIFICATION_DATE,
    LEGACY_DATE,
)

_DATE_REPLACEMENT = f"{SYSTEM_CREATION_DATE}` or `{SYSTEM_MODIFICATION_DATE}"


def canonical_filter_key(key, notices: DeprecationNotices):
    if key == LEGACY_ID:
        notices.warn(LEGACY_ID, SYSTEM_ID, "filter")
        return SYSTEM_ID
    if key == LEGACY_DATE:
        notices.warn(LEGACY_DATE, _DATE_REPLACEMENT, "filter")
        return SYSTEM_CREATION_DATE
    return key


def canonical_sort_key(key: str, notices: DeprecationNotices) -> str:
    if key == LEGACY_DATE:
        notices.warn(LEGACY_DATE, SYSTEM_CREATION_DATE, "sort")
        return SYSTEM_CREATION_DATE
    return key


def canonical_parameter(param: str, notices: DeprecationNotices) -> str:
    if param == LEGACY_DATE:
        notices.warn(LEGACY_DATE, SYSTEM_CREATION_DATE, "output parameter")
        return SYSTEM_CREATION_DATE
    return param


def wants_legacy_date_block(included_elements: Sequence[str], notices: DeprecationNotices) -> bool:
    if LEGACY_DATE not in included_elements:
        return False
    notices.warn(LEGACY_DATE, _DATE_REPLACEMENT, "field")
    return True


def legacy_pool_key(root_element: str) -> str:
    return f"ds-{root_element}"


def qualified_pool_key(root_element: str, param: str) -> str:
    return f"{legacy_pool_key(root_element)}.{param.replace(':', '-')}"
