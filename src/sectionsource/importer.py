# sectionsource/importer.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from .db import SessionLocal
from .errors import ConfigurationError, NotFoundError
from .fields import get as get_field_type
from .logging import logger
from .repos import EntryRepository, FieldRepository, SectionRepository

"""
Fixture importer for sectionsource.

Seeds a database from one JSON document:

  {
    "sections": [
      {"handle": "articles", "name": "Articles",
       "fields": [{"element_name": "title", "type": "input"}, ...]},
      ...
    ],
    "associations": [
      {"parent": "articles", "child": "comments", "child_field": "article"}
    ],
    "entries": {
      "articles": [
        {"id": 1, "author_id": 1, "created": "2024-01-01 10:00",
         "values": {"title": "Hello"}}
      ]
    }
  }

- Sections are created in document order, then associations, then entries.
- Entry values are keyed by element name and converted by each field type.
- A relation field's `related_section` handle is stored as `related_section_id`.
- The whole document is checked before the first write; a bad reference
  raises NotFoundError and leaves the database untouched.

date: 2026-10-19
version: 0.1.0
"""


def _load(source: str | Path | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(source, Mapping):
        return source
    p = Path(source)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"Fixture file not found: {p}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {p}: {e}")
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{p}: expected a JSON object")
    return data


def _validate(data: Mapping[str, Any]) -> None:
    """Check every handle and element name the document refers to before anything is written."""
    declared: dict[str, set[str]] = {}
    for spec in data.get("sections", []):
        declared[spec["handle"].strip()] = {f["element_name"] for f in spec.get("fields", [])}

    for spec in data.get("sections", []):
        for f in spec.get("fields", []):
            get_field_type(f["type"])
            related = (f.get("settings") or {}).get("related_section")
            if related is not None and related not in declared:
                raise NotFoundError(f"Related section '{related}' not found")

    for assoc in data.get("associations", []):
        parent, child = assoc["parent"], assoc["child"]
        for handle in (parent, child):
            if handle not in declared:
                raise NotFoundError(f"Section '{handle}' not found")
        if assoc["child_field"] not in declared[child]:
            raise NotFoundError(f"Field '{assoc['child_field']}' not found in section '{child}'")
        if assoc.get("parent_field") and assoc["parent_field"] not in declared[parent]:
            raise NotFoundError(f"Field '{assoc['parent_field']}' not found in section '{parent}'")

    for handle, rows in (data.get("entries") or {}).items():
        if handle not in declared:
            raise NotFoundError(f"Section '{handle}' not found")
        for row in rows:
            for name in row.get("values") or {}:
                if name not in declared[handle]:
                    raise NotFoundError(f"Field '{name}' not found in section '{handle}'")


def import_fixture(
    source: str | Path | Mapping[str, Any],
    session_factory=SessionLocal,
) -> dict[str, int]:
    """
    Import sections, fields, associations and entries.
    Returns counts per kind: {'sections': n, 'fields': n, 'associations': n, 'entries': n}.
    """
    data = _load(source)
    _validate(data)

    sections = SectionRepository(session_factory)
    fields = FieldRepository(session_factory)
    entries = EntryRepository(session_factory)

    counts = {"sections": 0, "fields": 0, "associations": 0, "entries": 0}
    section_ids: dict[str, int] = {}
    field_ids: dict[str, dict[str, int]] = {}

    # --- sections --------------------------------------------------------------
    for spec in data.get("sections", []):
        section = sections.create(spec["handle"], spec.get("name"))
        section_ids[section.handle] = section.id
        field_ids[section.handle] = {}
        counts["sections"] += 1

    # fields after all sections exist so relations can point forward
    for spec in data.get("sections", []):
        handle = spec["handle"].strip()
        for order, f in enumerate(spec.get("fields", [])):
            settings = dict(f.get("settings") or {})
            related = settings.pop("related_section", None)
            if related is not None:
                settings["related_section_id"] = section_ids[related]
            created = fields.create(
                section_ids[handle],
                f["element_name"],
                f["type"],
                label=f.get("label"),
                settings=settings,
                sortorder=order,
            )
            field_ids[handle][created.element_name] = created.id
            counts["fields"] += 1

    # --- associations ----------------------------------------------------------
    for assoc in data.get("associations", []):
        parent, child = assoc["parent"], assoc["child"]
        child_field = field_ids[child][assoc["child_field"]]
        parent_field = field_ids[parent].get(assoc["parent_field"]) if assoc.get("parent_field") else None
        sections.associate(section_ids[parent], section_ids[child], child_field, parent_field)
        counts["associations"] += 1

    # --- entries ---------------------------------------------------------------
    for handle, rows in (data.get("entries") or {}).items():
        known = field_ids[handle]
        for row in rows:
            values = {known[name]: raw for name, raw in (row.get("values") or {}).items()}
            entries.create(
                section_ids[handle],
                values,
                author_id=int(row.get("author_id", 1)),
                creation_date=row.get("created"),
                modification_date=row.get("modified"),
                entry_id=row.get("id"),
            )
            counts["entries"] += 1

    logger.info(
        "Imported %d section(s), %d field(s), %d association(s), %d entr(y/ies)",
        counts["sections"], counts["fields"], counts["associations"], counts["entries"],
    )
    return counts
