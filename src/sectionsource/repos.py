# sectionsource/repos.py
from __future__ import annotations

import json
import math
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .db import SessionLocal
from .dto import (
    AssociationDTO,
    EntryPage,
    Record,
    SectionDTO,
    SortSpec,
    to_record,
    to_section_dto,
)
from .errors import NotFoundError
from .fields import Field, JoinClause, build_field, get as get_field_type
from .fields.date import parse_point
from .models import Entry, EntryValue, FieldDef, Section, SectionAssociation


# --- Session scope -------------------------------------------------------------

@contextmanager
def session_scope(session_factory=SessionLocal):
    s: Session = session_factory()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


# --- Internal helpers ----------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _apply_joins(stmt, joins: Iterable[JoinClause]):
    for j in joins:
        if j.outer:
            stmt = stmt.outerjoin(j.target, j.onclause)
        else:
            stmt = stmt.join(j.target, j.onclause)
    return stmt


# --- Section Repository --------------------------------------------------------

class SectionRepository:
    """
    Data-access boundary for sections and their child associations.
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def create(self, handle: str, name: Optional[str] = None) -> SectionDTO:
        with session_scope(self._session_factory) as s:
            section = Section(handle=handle.strip(), name=(name or handle).strip())
            s.add(section)
            s.flush()
            return to_section_dto(section)

    def get_by_id(self, section_id: int) -> Optional[SectionDTO]:
        with session_scope(self._session_factory) as s:
            section = s.get(Section, section_id)
            return to_section_dto(section) if section else None

    def get_by_handle(self, handle: str) -> Optional[SectionDTO]:
        with session_scope(self._session_factory) as s:
            stmt = select(Section).where(Section.handle == handle)
            section = s.execute(stmt).scalar_one_or_none()
            return to_section_dto(section) if section else None

    def require(self, section_id: int) -> SectionDTO:
        section = self.get_by_id(section_id)
        if section is None:
            raise NotFoundError(f"Section {section_id} not found")
        return section

    def associate(
        self,
        parent_section_id: int,
        child_section_id: int,
        child_section_field_id: int,
        parent_section_field_id: Optional[int] = None,
    ) -> None:
        with session_scope(self._session_factory) as s:
            s.add(
                SectionAssociation(
                    parent_section_id=parent_section_id,
                    parent_section_field_id=parent_section_field_id,
                    child_section_id=child_section_id,
                    child_section_field_id=child_section_field_id,
                )
            )

    def fetch_child_associations(self, section_id: int) -> List[AssociationDTO]:
        with session_scope(self._session_factory) as s:
            stmt = (
                select(SectionAssociation, Section)
                .join(Section, Section.id == SectionAssociation.child_section_id)
                .where(SectionAssociation.parent_section_id == section_id)
                .order_by(SectionAssociation.id.asc())
            )
            return [
                AssociationDTO(
                    id=int(child.id),
                    handle=child.handle,
                    name=child.name,
                    child_section_field_id=int(assoc.child_section_field_id),
                    parent_section_field_id=assoc.parent_section_field_id,
                )
                for assoc, child in s.execute(stmt).all()
            ]


# --- Field Repository ----------------------------------------------------------

class FieldRepository:
    """
    Loads field definitions and hands them out as Field capability objects.
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def create(
        self,
        section_id: int,
        element_name: str,
        type: str,
        *,
        label: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
        sortorder: Optional[int] = None,
    ) -> Field:
        get_field_type(type)  # unknown tags fail before anything is written
        with session_scope(self._session_factory) as s:
            if s.get(Section, section_id) is None:
                raise NotFoundError(f"Section {section_id} not found")
            if sortorder is None:
                sortorder = s.execute(
                    select(func.count()).select_from(FieldDef).where(FieldDef.section_id == section_id)
                ).scalar_one()
            row = FieldDef(
                section_id=section_id,
                element_name=element_name.strip(),
                label=label,
                type=type,
                sortorder=int(sortorder),
                settings_json=json.dumps(settings) if settings else None,
            )
            s.add(row)
            s.flush()
            return build_field(row)

    def fetch(self, field_id: int) -> Optional[Field]:
        with session_scope(self._session_factory) as s:
            row = s.get(FieldDef, field_id)
            return build_field(row) if row else None

    def fetch_many(self, field_ids: Iterable[int]) -> Dict[int, Field]:
        ids = sorted({int(i) for i in field_ids})
        if not ids:
            return {}
        with session_scope(self._session_factory) as s:
            rows = s.execute(select(FieldDef).where(FieldDef.id.in_(ids))).scalars().all()
            return {int(r.id): build_field(r) for r in rows}

    def fetch_by_section(self, section_id: int) -> List[Field]:
        with session_scope(self._session_factory) as s:
            stmt = (
                select(FieldDef)
                .where(FieldDef.section_id == section_id)
                .order_by(FieldDef.sortorder.asc(), FieldDef.id.asc())
            )
            return [build_field(r) for r in s.execute(stmt).scalars().all()]

    def fetch_handle_from_id(self, field_id: int) -> Optional[str]:
        with session_scope(self._session_factory) as s:
            stmt = select(FieldDef.element_name).where(FieldDef.id == field_id)
            return s.execute(stmt).scalar_one_or_none()

    def fetch_field_id_from_element_name(self, element_name: str, section_id: int) -> Optional[int]:
        with session_scope(self._session_factory) as s:
            stmt = select(FieldDef.id).where(
                FieldDef.section_id == section_id,
                FieldDef.element_name == element_name,
            )
            found = s.execute(stmt).scalar_one_or_none()
            return int(found) if found is not None else None


# --- Entry Repository ----------------------------------------------------------

class EntryRepository:
    """
    Data-access boundary for entries.
    - create() converts raw values through each field's storage capability.
    - fetch_by_page() runs one filtered, sorted page and hydrates records.
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    # -- create -----------------------------------------------------------------

    def create(
        self,
        section_id: int,
        values: Optional[Dict[int, Any]] = None,
        *,
        author_id: int = 1,
        creation_date: Any = None,
        modification_date: Any = None,
        entry_id: Optional[int] = None,
    ) -> Record:
        values = {int(k): v for k, v in (values or {}).items()}

        created = parse_point(creation_date) if creation_date is not None else _utcnow()
        modified = parse_point(modification_date) if modification_date is not None else created

        with session_scope(self._session_factory) as s:
            if s.get(Section, section_id) is None:
                raise NotFoundError(f"Section {section_id} not found")

            rows = s.execute(select(FieldDef).where(FieldDef.id.in_(list(values)))).scalars().all()
            fields = {int(r.id): build_field(r) for r in rows}
            missing = sorted(set(values) - set(fields))
            if missing:
                raise NotFoundError(f"Field(s) {missing} not found")

            entry = Entry(
                section_id=section_id,
                author_id=author_id,
                creation_date=created,
                modification_date=modified,
            )
            if entry_id is not None:
                entry.id = int(entry_id)
            s.add(entry)
            s.flush()

            stored: list[EntryValue] = []
            for fid in sorted(values):
                for pos, cols in enumerate(fields[fid].to_storage(values[fid])):
                    ev = EntryValue(entry_id=entry.id, field_id=fid, position=pos, **cols)
                    s.add(ev)
                    stored.append(ev)
            s.flush()
            return to_record(entry, stored)

    # -- fetch ------------------------------------------------------------------

    def fetch_by_page(
        self,
        page: int,
        section_id: int,
        limit: Optional[int],
        where: Sequence = (),
        joins: Sequence[JoinClause] = (),
        group: bool = False,
        skip_count: bool = False,
        hydrate: bool = True,
        projection: Optional[Iterable[str]] = None,
        sort: Optional[SortSpec] = None,
    ) -> EntryPage:
        """
        Returns one page of records plus totals.

        `limit` None means everything. With `skip_count` the totals are None.
        `projection` is a set of element names to hydrate (None = all fields).
        """
        sort = sort or SortSpec()

        with session_scope(self._session_factory) as s:
            ids = select(Entry.id).where(Entry.section_id == section_id)
            ids = _apply_joins(ids, joins)
            for clause in where:
                ids = ids.where(clause)
            if group:
                ids = ids.distinct()
            matched = ids.subquery()

            total_entries: Optional[int] = None
            total_pages: Optional[int] = None
            if not skip_count:
                total_entries = int(s.execute(select(func.count()).select_from(matched)).scalar_one())
                if limit:
                    total_pages = max(1, math.ceil(total_entries / limit))
                else:
                    total_pages = 1

            stmt = select(Entry).where(Entry.id.in_(select(matched.c.id)))
            stmt = self._order(stmt, sort)
            if limit is not None:
                stmt = stmt.offset((max(1, page) - 1) * limit).limit(limit)
            entries = list(s.execute(stmt).scalars().all())

            if hydrate:
                records = self._hydrate(s, section_id, entries, projection)
            else:
                records = [to_record(e) for e in entries]

            return EntryPage(records=records, total_entries=total_entries, total_pages=total_pages)

    def _order(self, stmt, sort: SortSpec):
        order = (sort.order or "desc").lower()
        if order == "random":
            return stmt.order_by(func.random())

        target = sort.target
        if target == "system:creation-date":
            col = Entry.creation_date
        elif target == "system:modification-date":
            col = Entry.modification_date
        elif isinstance(target, Field):
            alias, join = target.sort_join()
            stmt = stmt.outerjoin(alias, join.onclause)
            col = target.sort_column(alias)
        else:
            col = Entry.id

        if order == "asc":
            return stmt.order_by(col.asc(), Entry.id.asc())
        return stmt.order_by(col.desc(), Entry.id.desc())

    def _hydrate(self, s: Session, section_id: int, entries: List[Entry], projection) -> List[Record]:
        if not entries:
            return []
        ids = [e.id for e in entries]
        stmt = select(EntryValue).where(EntryValue.entry_id.in_(ids))
        if projection is not None:
            names = sorted(set(projection))
            field_ids = select(FieldDef.id).where(
                FieldDef.section_id == section_id,
                FieldDef.element_name.in_(names),
            )
            stmt = stmt.where(EntryValue.field_id.in_(field_ids))
        stmt = stmt.order_by(EntryValue.entry_id, EntryValue.field_id, EntryValue.position)

        by_entry: dict[int, list[EntryValue]] = {}
        for row in s.execute(stmt).scalars().all():
            by_entry.setdefault(row.entry_id, []).append(row)
        return [to_record(e, by_entry.get(e.id, [])) for e in entries]

    # -- associations -----------------------------------------------------------

    def fetch_associated_entry_counts(
        self,
        entry_id: int,
        associations: Sequence[AssociationDTO],
    ) -> Dict[int, Dict[int, int]]:
        """
        {child section id: {child field id: number of child entries linking here}}
        """
        out: Dict[int, Dict[int, int]] = {}
        if not associations:
            return out
        with session_scope(self._session_factory) as s:
            for assoc in associations:
                stmt = (
                    select(func.count(func.distinct(EntryValue.entry_id)))
                    .select_from(EntryValue)
                    .join(Entry, Entry.id == EntryValue.entry_id)
                    .where(
                        Entry.section_id == assoc.id,
                        EntryValue.field_id == assoc.child_section_field_id,
                        EntryValue.relation_id == entry_id,
                    )
                )
                count = int(s.execute(stmt).scalar_one())
                out.setdefault(assoc.id, {})[assoc.child_section_field_id] = count
        return out
