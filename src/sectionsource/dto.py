# sectionsource/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence


"""
Data transfer objects handed from the repositories to the pipeline.

Records are detached snapshots: the pipeline never touches a live session,
so a record can be read (and the records list mutated by hooks) freely.

date: 2026-10-19
version: 0.1.0
"""


# --- StoredValue -------------------------------------------------------------
@dataclass(frozen=True)
class StoredValue:
    """One stored value of a field; only the columns its type uses are set."""
    value: Optional[str] = None
    handle: Optional[str] = None
    number: Optional[float] = None
    date: Optional[datetime] = None
    relation_id: Optional[int] = None


# --- Record ------------------------------------------------------------------
@dataclass
class Record:
    id: int
    section_id: int
    author_id: int
    creation_date: datetime
    modification_date: datetime
    # field id -> values, in field order
    data: dict[int, list[StoredValue]] = field(default_factory=dict)


# --- SectionDTO / AssociationDTO ---------------------------------------------
@dataclass(frozen=True)
class SectionDTO:
    id: int
    handle: str
    name: str


@dataclass(frozen=True)
class AssociationDTO:
    """A child-association of a section, as seen from the parent."""
    id: int                     # child section id
    handle: str                 # child section handle
    name: str
    child_section_field_id: int
    parent_section_field_id: Optional[int] = None


# --- EntryPage ---------------------------------------------------------------
@dataclass
class EntryPage:
    records: list[Record]
    total_entries: Optional[int]
    total_pages: Optional[int]


# --- SortSpec ----------------------------------------------------------------
@dataclass(frozen=True)
class SortSpec:
    """
    `target` is 'system:id', 'system:creation-date', 'system:modification-date',
    a Field, or None (entry id).
    """
    target: object = None
    order: str = "desc"


# --- converters --------------------------------------------------------------
def to_stored_value(row) -> StoredValue:
    return StoredValue(
        value=row.value,
        handle=row.handle,
        number=row.number,
        date=row.date,
        relation_id=row.relation_id,
    )


def to_record(entry, value_rows: Sequence = ()) -> Record:
    """
    Convert an Entry ORM object plus its (already filtered and ordered)
    EntryValue rows into a Record.
    """
    data: dict[int, list[StoredValue]] = {}
    for row in value_rows:
        data.setdefault(int(row.field_id), []).append(to_stored_value(row))
    return Record(
        id=int(entry.id),
        section_id=int(entry.section_id),
        author_id=int(entry.author_id),
        creation_date=entry.creation_date,
        modification_date=entry.modification_date,
        data=data,
    )


def to_section_dto(section) -> SectionDTO:
    return SectionDTO(id=int(section.id), handle=section.handle, name=section.name)


__all__ = [
    "StoredValue",
    "Record",
    "SectionDTO",
    "AssociationDTO",
    "EntryPage",
    "SortSpec",
    "to_stored_value",
    "to_record",
    "to_section_dto",
]
