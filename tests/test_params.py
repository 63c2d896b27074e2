# tests/test_params.py
from __future__ import annotations

from datetime import datetime

from sectionsource.dto import Record, StoredValue
from sectionsource.fields import InputField, SelectField
from sectionsource.logging import DeprecationNotices
from sectionsource.params import (
    ParameterExtractor,
    resolve_expression,
    resolve_filters,
    resolve_parameters,
)
from sectionsource.pools import ParameterPool


def _record(entry_id=7, data=None):
    return Record(
        id=entry_id,
        section_id=1,
        author_id=2,
        creation_date=datetime(2024, 1, 1, 9, 0),
        modification_date=datetime(2024, 1, 2, 9, 0),
        data=data or {},
    )


# ----------------------------
# ParameterPool
# ----------------------------

def test_pool_wraps_scalars_and_copies():
    pool = ParameterPool({"a": "1", "b": [1, 2], "c": None})
    assert pool.get("a") == ["1"]
    assert pool.get("c") == []
    got = pool.get("b")
    got.append(3)
    assert pool.get("b") == [1, 2]
    assert pool.get("missing") is None
    assert "a" in pool and set(pool) == {"a", "b", "c"}


def test_pool_prepend_and_append():
    pool = ParameterPool()
    pool.append("k", 1)
    pool.prepend("k", [2, 3])
    pool.ensure("k")
    pool.ensure("empty")
    assert pool.as_dict() == {"k": [2, 3, 1], "empty": []}


# ----------------------------
# Placeholders
# ----------------------------

def test_resolve_parameters():
    pool = ParameterPool({"ds-a.system-id": [3, 7], "tag": ["a,b"], "blank": [""]})
    assert resolve_parameters("{$ds-a.system-id}", pool) == "3,7"
    assert resolve_parameters("id: {$ds-a.system-id}!", pool) == "id: 3,7!"
    assert resolve_parameters("{$tag}", pool) == r"a\,b"
    assert resolve_parameters("{$missing:5}", pool) == "5"
    assert resolve_parameters("{$blank:x}", pool) == "x"
    assert resolve_parameters("{$missing}", pool) == ""


def test_resolve_expression_accepts_bare_names():
    pool = ParameterPool({"page": "2"})
    assert resolve_expression("$page", pool) == "2"
    assert resolve_expression(" {$page} ", pool) == "2"
    assert resolve_expression("$nope", pool) == ""
    assert resolve_expression(None, pool) == ""


def test_resolve_filters_keeps_keys_and_lists():
    pool = ParameterPool({"slug": "x"})
    out = resolve_filters({5: "{$slug}", "system:id": ["1", "{$slug}"], 6: None}, pool)
    assert out == {5: "x", "system:id": ["1", "x"], 6: None}


# ----------------------------
# ParameterExtractor
# ----------------------------

def test_extractor_single_parameter_uses_legacy_key():
    pool = ParameterPool()
    ex = ParameterExtractor("news", ["system:author"], pool)
    assert ex.active and ex.single and ex.wants_system_parameters()
    ex.system_parameters(_record())
    assert pool.as_dict() == {"ds-news.system-author": [2], "ds-news": [2]}


def test_extractor_field_values():
    title = InputField(1, 1, "title")
    tags = SelectField(2, 1, "tags")
    pool = ParameterPool()
    ex = ParameterExtractor("news", ["title", "tags"], pool)
    assert not ex.wants_system_parameters()

    record = _record(data={
        1: [StoredValue(value="Hi", handle="hi")],
        2: [StoredValue(value="A", handle="a"), StoredValue(value="B", handle="b")],
    })
    ex.field_parameters(record, title, record.data[1])
    ex.field_parameters(record, tags, record.data[2])
    ex.field_parameters(record, tags, [StoredValue(value="C", handle="c")])

    assert pool.as_dict() == {
        "ds-news.title": ["Hi"],
        "ds-news.tags": ["c", "a", "b"],
    }


def test_extractor_inactive_does_nothing():
    pool = ParameterPool()
    ex = ParameterExtractor("news", [], pool)
    ex.field_parameters(_record(), InputField(1, 1, "title"), [StoredValue(value="x")])
    assert not ex.active
    assert pool.as_dict() == {}


def test_deprecation_notices_once_per_usage(caplog):
    notices = DeprecationNotices()
    notices.warn("system:date", "system:creation-date", "sort")
    notices.warn("system:date", "system:creation-date", "sort")
    notices.warn("system:date", "system:creation-date", "filter")
    assert notices.seen == {("system:date", "sort"), ("system:date", "filter")}
    assert len([r for r in caplog.records if r.name == "sectionsource"]) == 2
