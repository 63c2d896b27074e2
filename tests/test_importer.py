# tests/test_importer.py
from __future__ import annotations

import json

import pytest

from sectionsource.errors import ConfigurationError, NotFoundError
from sectionsource.importer import import_fixture
from sectionsource.repos import EntryRepository, SectionRepository


def test_import_from_file(tmp_path, session_factory, catalog_data):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")

    counts = import_fixture(path, session_factory=session_factory)
    assert counts == {"sections": 2, "fields": 7, "associations": 1, "entries": 7}

    comments = SectionRepository(session_factory).get_by_handle("comments")
    page = EntryRepository(session_factory).fetch_by_page(1, comments.id, None)
    assert [r.id for r in page.records] == [12, 11, 10]


def test_import_entry_dates(session_factory, catalog_data):
    import_fixture(catalog_data, session_factory=session_factory)
    articles = SectionRepository(session_factory).get_by_handle("articles")
    page = EntryRepository(session_factory).fetch_by_page(1, articles.id, None, hydrate=False)
    second = next(r for r in page.records if r.id == 2)
    assert second.creation_date.isoformat() == "2024-02-01T09:00:00"
    assert second.modification_date.isoformat() == "2024-02-10T12:00:00"
    assert second.author_id == 2


def test_import_unknown_field(session_factory):
    data = {
        "sections": [{"handle": "a", "fields": [{"element_name": "t", "type": "input"}]}],
        "entries": {"a": [{"values": {"nope": "x"}}]},
    }
    with pytest.raises(NotFoundError, match="nope"):
        import_fixture(data, session_factory=session_factory)


def test_import_failure_writes_nothing(session_factory):
    data = {
        "sections": [{"handle": "a", "fields": [{"element_name": "t", "type": "input"}]}],
        "entries": {"a": [{"values": {"t": "ok"}}, {"values": {"nope": "x"}}]},
    }
    with pytest.raises(NotFoundError, match="nope"):
        import_fixture(data, session_factory=session_factory)
    assert SectionRepository(session_factory).get_by_handle("a") is None


def test_import_unknown_field_type_writes_nothing(session_factory):
    data = {"sections": [
        {"handle": "a", "fields": [{"element_name": "t", "type": "input"}]},
        {"handle": "b", "fields": [{"element_name": "x", "type": "blob"}]},
    ]}
    with pytest.raises(ConfigurationError, match="blob"):
        import_fixture(data, session_factory=session_factory)
    assert SectionRepository(session_factory).get_by_handle("a") is None


def test_import_unknown_related_section(session_factory):
    data = {
        "sections": [{"handle": "a", "fields": [
            {"element_name": "r", "type": "relation", "settings": {"related_section": "b"}},
        ]}],
    }
    with pytest.raises(NotFoundError):
        import_fixture(data, session_factory=session_factory)


def test_import_missing_file(tmp_path, session_factory):
    with pytest.raises(ConfigurationError):
        import_fixture(tmp_path / "missing.json", session_factory=session_factory)
