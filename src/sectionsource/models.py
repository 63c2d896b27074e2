from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    String,
    Text,
    Float,
    ForeignKey,
    DateTime,
    Integer,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

"""
These are data models for the SectionSource database.
They include:

- Section
- FieldDef
- SectionAssociation
- Entry
- EntryValue

Field data is stored entity-attribute-value style: one EntryValue row per
stored value, with typed columns the field types pick from.

date: 2026-10-19
version: 0.1.0
"""


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Section
# ---------------------------------------------------------------------------

class Section(Base):
    """
    A schema grouping entries of one kind (e.g. 'articles', 'comments').
    """
    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    handle: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)

    fields: Mapped[list["FieldDef"]] = relationship(
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="FieldDef.sortorder",
    )

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, handle={self.handle!r})>"


# ---------------------------------------------------------------------------
# FieldDef
# ---------------------------------------------------------------------------

class FieldDef(Base):
    """
    A typed column definition. `type` is the tag the field registry
    dispatches on; `settings_json` carries per-type options.
    """
    __tablename__ = "fields"
    __table_args__ = (
        UniqueConstraint("section_id", "element_name", name="uq_field_per_section"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    element_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    label: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    sortorder: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    settings_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    section: Mapped["Section"] = relationship(back_populates="fields")

    def __repr__(self) -> str:
        return f"<FieldDef(id={self.id}, element_name={self.element_name!r}, type={self.type!r})>"


# ---------------------------------------------------------------------------
# SectionAssociation
# ---------------------------------------------------------------------------

class SectionAssociation(Base):
    """
    Parent/child link between two sections. The child field is the relation
    field in the child section that points back at parent entries.
    """
    __tablename__ = "section_associations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    parent_section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"), index=True, nullable=False
    )
    parent_section_field_id: Mapped[int | None] = mapped_column(
        ForeignKey("fields.id", ondelete="CASCADE"), nullable=True
    )
    child_section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"), index=True, nullable=False
    )
    child_section_field_id: Mapped[int] = mapped_column(
        ForeignKey("fields.id", ondelete="CASCADE"), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<SectionAssociation(parent={self.parent_section_id}, "
            f"child={self.child_section_id}, field={self.child_section_field_id})>"
        )


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------

class Entry(Base):
    """
    One data row under a section. Timestamps are stored as naive UTC.
    """
    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"), index=True, nullable=False
    )
    author_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    creation_date: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False, index=True
    )
    modification_date: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False, index=True
    )

    values: Mapped[list["EntryValue"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Entry(id={self.id}, section_id={self.section_id})>"


# ---------------------------------------------------------------------------
# EntryValue
# ---------------------------------------------------------------------------

class EntryValue(Base):
    """
    A single stored value of one field for one entry. Multi-valued fields
    (select, relation) store one row per value, ordered by `position`.
    """
    __tablename__ = "entry_values"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("entries.id", ondelete="CASCADE"), index=True, nullable=False
    )
    field_id: Mapped[int] = mapped_column(
        ForeignKey("fields.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    handle: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    number: Mapped[float | None] = mapped_column(Float, nullable=True)
    date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    relation_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    entry: Mapped["Entry"] = relationship(back_populates="values")

    def __repr__(self) -> str:
        return f"<EntryValue(entry_id={self.entry_id}, field_id={self.field_id}, value={self.value!r})>"
