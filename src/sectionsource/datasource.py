# sectionsource/datasource.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence
from xml.etree.ElementTree import Element

from .compat import (
    SYSTEM_CREATION_DATE,
    SYSTEM_ID,
    SYSTEM_MODIFICATION_DATE,
    SYSTEM_PAGINATION,
    canonical_sort_key,
)
from .config import DatasourceConfig
from .db import SessionLocal
from .dto import Record, SectionDTO, SortSpec
from .errors import PageNotFoundError
from .filters import FilterCompiler, is_blank
from .logging import DeprecationNotices, logger
from .output import OutputBuilder, error_element, parse_included_elements, section_element
from .params import ParameterExtractor, resolve_expression, resolve_filters
from .pools import FieldPool, ParameterPool
from .repos import EntryRepository, FieldRepository, SectionRepository
from .utils import pagination_element

"""
Section datasource: one filtered, sorted, paginated retrieval rendered as a tree.

execute() walks four paths and reports which one it took through Outcome:
  forced empty  required parameter missing or a filter unusable  -> DEGRADED
  negated       negate parameter present                          -> DEGRADED
  empty         nothing matched, or page 0 requested              -> DEGRADED
  normal        section, pagination, entries or groups            -> RENDERED
Any of the first three becomes NOT_FOUND when its redirect flag is set.

date: 2026-10-19
version: 0.1.0
"""

NO_RECORDS = "No records found."
REQUIRED_MISSING = "Data source not executed, required parameter is missing."
FORBIDDEN_FOUND = "Data source not executed, forbidden parameter is found."

HOOK_CONTEXT = "/frontend/"

# hook(context, datasource, records, filters); may mutate records in place
EntriesHook = Callable[[str, "SectionDatasource", List[Record], Dict[Any, Any]], None]


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

class OutcomeKind(str, Enum):
    RENDERED = "rendered"
    DEGRADED = "degraded"
    NOT_FOUND = "not_found"


@dataclass
class Outcome:
    kind: OutcomeKind
    tree: Optional[Element] = None
    params: Dict[str, List[Any]] = field(default_factory=dict)
    reason: Optional[str] = None

    def unwrap(self) -> Element:
        if self.kind is OutcomeKind.NOT_FOUND:
            raise PageNotFoundError(self.reason or "Page not found")
        return self.tree


# ---------------------------------------------------------------------------
# SectionDatasource
# ---------------------------------------------------------------------------

class SectionDatasource:
    def __init__(
        self,
        config: DatasourceConfig,
        *,
        session_factory=SessionLocal,
        sections: Optional[SectionRepository] = None,
        fields: Optional[FieldRepository] = None,
        entries: Optional[EntryRepository] = None,
        hooks: Sequence[EntriesHook] = (),
        log=logger,
    ):
        self.config = config
        self.sections = sections or SectionRepository(session_factory)
        self.fields = fields or FieldRepository(session_factory)
        self.entries = entries or EntryRepository(session_factory)
        self.hooks: List[EntriesHook] = list(hooks)
        self.log = log

    def __repr__(self) -> str:
        return f"<SectionDatasource {self.config.root_element!r} source={self.config.source}>"

    def add_hook(self, hook: EntriesHook) -> None:
        self.hooks.append(hook)

    # -- execute ----------------------------------------------------------------

    def execute(self, param_pool: Optional[Dict[str, Any]] = None) -> Outcome:
        """
        Run the datasource against `param_pool` (name -> value or list of values).

        On the normal and empty paths the parameters this datasource outputs
        are written back into `param_pool` when it is a dict.
        """
        cfg = self.config
        notices = DeprecationNotices(self.log)
        pool = ParameterPool(param_pool)
        field_pool = FieldPool(self.fields)

        section = self.sections.require(cfg.source)
        root = Element(cfg.root_element)

        if cfg.required_param and is_blank(resolve_expression(cfg.required_param, pool)):
            return self._forced_empty(root, section)

        if cfg.negate_param and not is_blank(resolve_expression(cfg.negate_param, pool)):
            return self._negated(root, section)

        compiled = FilterCompiler(field_pool, cfg.name, notices).compile(
            resolve_filters(cfg.filters, pool)
        )
        if compiled.force_empty:
            return self._forced_empty(root, section)

        include_pagination = SYSTEM_PAGINATION in cfg.included_elements
        start_page = self._start_page(pool)
        page_number = start_page if cfg.paginate and start_page > 0 else 1
        limit = cfg.limit if cfg.paginate else None

        page = self.entries.fetch_by_page(
            page_number,
            section.id,
            limit,
            where=compiled.where,
            joins=compiled.joins,
            group=compiled.group,
            skip_count=not include_pagination,
            hydrate=True,
            projection=self._projection(),
            sort=self._sort_spec(section, field_pool, notices),
        )
        records = page.records

        for hook in self.hooks:
            hook(HOOK_CONTEXT, self, records, cfg.filters)

        total = page.total_entries
        entries_per_page = limit if limit is not None else total

        if (
            ((total is None or total <= 0 or include_pagination) and not records)
            or start_page == 0
        ):
            if cfg.redirect_on_empty:
                return self._not_found("no records")
            root.append(section_element(section))
            root.append(error_element(NO_RECORDS))
            if include_pagination:
                root.insert(0, pagination_element(0, 0, entries_per_page))
            self.log.debug("Data source %s: empty result", cfg.name)
            return self._finish(OutcomeKind.DEGRADED, root, pool, param_pool, "no records")

        if not cfg.param_output_only:
            root.append(section_element(section))
            if include_pagination:
                root.insert(
                    0,
                    pagination_element(total, page.total_pages, entries_per_page, page_number),
                )

        if cfg.limit is None or cfg.limit > 0:
            self._render(root, section, records, field_pool, pool, notices)

        self.log.debug("Data source %s: %d record(s) rendered", cfg.name, len(records))
        return self._finish(OutcomeKind.RENDERED, root, pool, param_pool)

    # -- rendering --------------------------------------------------------------

    def _render(
        self,
        root: Element,
        section: SectionDTO,
        records: List[Record],
        field_pool: FieldPool,
        pool: ParameterPool,
        notices: DeprecationNotices,
    ) -> None:
        cfg = self.config
        associations = []
        if cfg.associated_entry_counts:
            associations = self.sections.fetch_child_associations(section.id)

        builder = OutputBuilder(
            field_pool,
            ParameterExtractor(cfg.root_element, cfg.param_output, pool, notices),
            self.entries,
            included_elements=cfg.included_elements,
            html_encode=cfg.html_encode,
            param_output_only=cfg.param_output_only,
            associations=associations,
            notices=notices,
        )

        if cfg.group is not None:
            group_field = field_pool.require(
                cfg.group, f"The field used for grouping '{cfg.group}' cannot be found."
            )
            builder.render_groups(root, group_field.group_records(records))
        else:
            builder.render_records(root, records)

    # -- helpers ----------------------------------------------------------------

    def _start_page(self, pool: ParameterPool) -> int:
        raw = self.config.start_page
        if isinstance(raw, int):
            return raw
        resolved = resolve_expression(str(raw), pool)
        return int(resolved) if resolved.isdigit() else 1

    def _projection(self) -> Optional[set[str]]:
        cfg = self.config
        names = {handle for handle, _ in parse_included_elements(cfg.included_elements)}
        names.update(cfg.param_output)
        if cfg.group is not None:
            handle = self.fields.fetch_handle_from_id(cfg.group)
            if handle:
                names.add(handle)
        return names or None

    def _sort_spec(self, section: SectionDTO, field_pool: FieldPool, notices) -> SortSpec:
        cfg = self.config
        if not cfg.sort:
            return SortSpec(order=cfg.order)

        key = canonical_sort_key(cfg.sort, notices)
        if key in (SYSTEM_ID, SYSTEM_CREATION_DATE, SYSTEM_MODIFICATION_DATE):
            return SortSpec(target=key, order=cfg.order)

        field_id = self.fields.fetch_field_id_from_element_name(key, section.id)
        target = field_pool.get(field_id) if field_id is not None else None
        if target is None:
            self.log.info("Data source %s: sort field %r not found, sorting by id", cfg.name, key)
        return SortSpec(target=target, order=cfg.order)

    def _forced_empty(self, root: Element, section: SectionDTO) -> Outcome:
        cfg = self.config
        if cfg.redirect_on_required:
            return self._not_found("required parameter missing")
        attrs = {"required_param": cfg.required_param} if cfg.required_param else {}
        root.append(section_element(section))
        root.append(error_element(REQUIRED_MISSING, **attrs))
        return Outcome(OutcomeKind.DEGRADED, root, reason="required parameter missing")

    def _negated(self, root: Element, section: SectionDTO) -> Outcome:
        cfg = self.config
        if cfg.redirect_on_forbidden:
            return self._not_found("forbidden parameter found")
        root.append(section_element(section))
        root.append(error_element(FORBIDDEN_FOUND, forbidden_param=cfg.negate_param))
        return Outcome(OutcomeKind.DEGRADED, root, reason="forbidden parameter found")

    def _not_found(self, reason: str) -> Outcome:
        self.log.info("Data source %s: not found (%s)", self.config.name, reason)
        return Outcome(OutcomeKind.NOT_FOUND, None, reason=reason)

    def _finish(
        self,
        kind: OutcomeKind,
        root: Element,
        pool: ParameterPool,
        caller_pool: Optional[Dict[str, Any]],
        reason: Optional[str] = None,
    ) -> Outcome:
        params = pool.as_dict()
        if isinstance(caller_pool, dict):
            caller_pool.update(params)
        return Outcome(kind, root, params=params, reason=reason)
