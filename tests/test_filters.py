# tests/test_filters.py
from __future__ import annotations

import logging

import pytest

from sectionsource.errors import ConfigurationError
from sectionsource.filters import (
    FilterCompiler,
    FilterType,
    compile_identifier_filter,
    determine_filter_type,
    split_filter,
)
from sectionsource.logging import DeprecationNotices
from sectionsource.pools import FieldPool
from sectionsource.repos import FieldRepository


# ----------------------------
# Filter text
# ----------------------------

@pytest.mark.parametrize(
    "text, expected",
    [
        ("news, tech", FilterType.OR),
        ("news", FilterType.OR),
        ("news + tech", FilterType.AND),
        ("news+++tech", FilterType.AND),
        ("c++", FilterType.OR),
    ],
)
def test_determine_filter_type(text, expected):
    assert determine_filter_type(text) is expected


def test_split_filter_or_keeps_escaped_commas():
    assert split_filter(FilterType.OR, r"a, b\, c ,, d") == ["a", "b, c", "d"]


def test_split_filter_and():
    assert split_filter(FilterType.AND, "news + tech +") == ["news", "tech"]


# ----------------------------
# Identifier pseudo-field
# ----------------------------

def _conditions(text):
    ftype = determine_filter_type(text)
    return [str(c) for c in compile_identifier_filter(split_filter(ftype, text), ftype)]


def test_identifier_inclusion_then_exclusion():
    assert _conditions("1,2,not:3") == ["IN (1, 2)", "NOT IN (3)"]


def test_identifier_and_mode_groups():
    assert _conditions("1,2 + not:3") == ["IN (1, 2)", "NOT IN (3)"]


def test_identifier_leading_not_excludes_everything_listed():
    assert _conditions("not:4, 5") == ["NOT IN (4, 5)"]


@pytest.mark.parametrize("text", ["abc", "0", "abc, def", "-1", "0, x"])
def test_identifier_garbage_never_matches_all(text):
    assert _conditions(text) == ["IN (0)"]


def test_identifier_invalid_tokens_dropped_when_others_valid():
    assert _conditions("abc, 7") == ["IN (7)"]


def test_identifier_list_is_or_run():
    conds = compile_identifier_filter(["1", "2"], FilterType.OR)
    assert [str(c) for c in conds] == ["IN (1, 2)"]
    assert conds[0].negate is False


def test_identifier_list_values_split_on_commas():
    conds = compile_identifier_filter(["1,2", "not:3"], FilterType.OR)
    assert [str(c) for c in conds] == ["IN (1, 2)", "NOT IN (3)"]


# ----------------------------
# FilterCompiler
# ----------------------------

def _compiler(catalog, notices=None):
    pool = FieldPool(FieldRepository(catalog.session_factory))
    return FilterCompiler(pool, "articles", notices), pool


def test_compile_skips_blank_values(catalog):
    compiler, _ = _compiler(catalog)
    compiled = compiler.compile({"system:id": "", catalog.fields["articles.title"]: "   ", "x": None})
    assert compiled.where == []
    assert compiled.force_empty is False


def test_compile_identifier_conditions(catalog):
    compiler, _ = _compiler(catalog)
    compiled = compiler.compile({"system:id": "abc"})
    assert [str(c) for c in compiled.id_conditions] == ["IN (0)"]
    assert len(compiled.where) == 1
    assert compiled.joins == []


def test_compile_field_sets_grouping_flag(catalog):
    compiler, _ = _compiler(catalog)
    compiled = compiler.compile({str(catalog.fields["articles.category"]): "news"})
    assert compiled.group is True
    assert len(compiled.joins) == 1

    compiled = compiler.compile({catalog.fields["articles.title"]: "news"})
    assert compiled.group is False


def test_compile_primes_field_pool_once(catalog):
    compiler, pool = _compiler(catalog)
    f = catalog.fields
    compiler.compile({f["articles.title"]: "a", f["articles.rating"]: "1", f["articles.category"]: "b"})
    assert pool.lookups == 1
    assert f["articles.rating"] in pool


def test_compile_unknown_field(catalog):
    compiler, _ = _compiler(catalog)
    with pytest.raises(ConfigurationError, match="Check this field exists"):
        compiler.compile({"title": "x"})


def test_compile_invalid_value_forces_empty(catalog):
    compiler, _ = _compiler(catalog)
    compiled = compiler.compile({catalog.fields["articles.published"]: "someday"})
    assert compiled.force_empty is True


def test_compile_invalid_pseudo_date_forces_empty(catalog):
    compiler, _ = _compiler(catalog)
    assert compiler.compile({"system:creation-date": "soon"}).force_empty is True


def test_compile_legacy_keys_warn(catalog, caplog):
    caplog.set_level(logging.WARNING, logger="sectionsource")
    notices = DeprecationNotices()
    compiler, _ = _compiler(catalog, notices)
    compiled = compiler.compile({"id": "1", "system:date": "2024"})

    assert [str(c) for c in compiled.id_conditions] == ["IN (1)"]
    assert len(compiled.where) == 2
    assert notices.seen == {("id", "filter"), ("system:date", "filter")}
    assert "`system:date` data source filter is deprecated" in caplog.text
