# tests/conftest.py
from __future__ import annotations

import copy
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from sectionsource.config import DatasourceConfig
from sectionsource.datasource import SectionDatasource
from sectionsource.importer import import_fixture
from sectionsource.models import Base
from sectionsource.repos import FieldRepository, SectionRepository


# ----------------------------
# Test DB session_factory fixture
# ----------------------------
@pytest.fixture(scope="function")
def session_factory():
    """
    In-memory SQLite, fresh for every test.
    """
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionFactory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,
    )
    yield SessionFactory
    Base.metadata.drop_all(engine)
    engine.dispose()


# ----------------------------
# Seeded catalog
# ----------------------------
CATALOG = {
    "sections": [
        {
            "handle": "articles",
            "name": "Articles",
            "fields": [
                {"element_name": "title", "type": "input", "label": "Title"},
                {"element_name": "body", "type": "textarea", "settings": {"formatter": "markdown"}},
                {"element_name": "category", "type": "select"},
                {"element_name": "published", "type": "date"},
                {"element_name": "rating", "type": "number"},
            ],
        },
        {
            "handle": "comments",
            "name": "Comments",
            "fields": [
                {"element_name": "article", "type": "relation",
                 "settings": {"related_section": "articles"}},
                {"element_name": "name", "type": "input"},
            ],
        },
    ],
    "associations": [
        {"parent": "articles", "child": "comments", "child_field": "article"},
    ],
    "entries": {
        "articles": [
            {"id": 1, "author_id": 1, "created": "2024-01-01 09:00",
             "values": {"title": "Hello World", "body": "Some *text* here",
                        "category": ["News"], "published": "2024-01-15", "rating": 4}},
            {"id": 2, "author_id": 2, "created": "2024-02-01 09:00",
             "modified": "2024-02-10 12:00",
             "values": {"title": "Second Post", "body": "Plain",
                        "category": ["News", "Tech"], "published": "2024-03-02", "rating": 2}},
            {"id": 3, "author_id": 1, "created": "2024-03-01 09:00",
             "values": {"title": "Third Post", "category": "Tech",
                        "published": "2023-12-24", "rating": 5}},
            {"id": 4, "author_id": 2, "created": "2024-04-01 09:00",
             "values": {"title": "Draft", "rating": 1}},
        ],
        "comments": [
            {"id": 10, "created": "2024-05-01", "values": {"article": 1, "name": "Ann"}},
            {"id": 11, "created": "2024-05-02", "values": {"article": 1, "name": "Bob"}},
            {"id": 12, "created": "2024-05-03", "values": {"article": {"id": 2, "value": "Second Post"},
                                                          "name": "Cid"}},
        ],
    },
}


@pytest.fixture
def catalog_data():
    """The catalog document, for tests that seed through the CLI or importer."""
    return copy.deepcopy(CATALOG)


@pytest.fixture(scope="function")
def catalog(session_factory):
    """
    Articles (1-4) and comments (10-12) linked back to articles 1 and 2.
    `fields` maps '<section>.<element>' to field ids.
    """
    import_fixture(CATALOG, session_factory=session_factory)
    sections = SectionRepository(session_factory)
    fields = FieldRepository(session_factory)

    articles = sections.get_by_handle("articles").id
    comments = sections.get_by_handle("comments").id
    ids = {}
    for handle, section_id in (("articles", articles), ("comments", comments)):
        for f in fields.fetch_by_section(section_id):
            ids[f"{handle}.{f.element_name}"] = f.id

    return SimpleNamespace(
        session_factory=session_factory,
        articles=articles,
        comments=comments,
        fields=ids,
    )


@pytest.fixture(scope="function")
def make_ds(catalog):
    """Build an articles datasource; keyword arguments override the config."""
    def _make(**options):
        options.setdefault("root_element", "articles")
        options.setdefault("source", catalog.articles)
        return SectionDatasource(
            DatasourceConfig(**options),
            session_factory=catalog.session_factory,
        )
    return _make
