# sectionsource/query.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .config import DatasourceConfig
from .datasource import EntriesHook, Outcome, SectionDatasource
from .db import SessionLocal
from .errors import ConfigurationError
from .logging import logger
from .repos import EntryRepository, FieldRepository, SectionRepository

"""
QueryService for sectionsource.

Runs datasources against a shared parameter pool so that the output
parameters of one ('$ds-articles.system-id') can feed the filters of the
next. It never writes to the database.

date: 2026-10-19
version: 0.1.0
"""


def order_datasources(configs: Sequence[DatasourceConfig]) -> List[DatasourceConfig]:
    """
    Stable topological order: a datasource reading '$ds-<root>' runs after
    the datasource whose root element is <root>. References to roots that are
    not part of the batch are ignored.
    """
    by_root = {c.root_element: c for c in configs}
    if len(by_root) != len(configs):
        raise ConfigurationError("Datasource root elements must be unique")

    ordered: List[DatasourceConfig] = []
    state: Dict[str, str] = {}

    def visit(cfg: DatasourceConfig, path: List[str]) -> None:
        mark = state.get(cfg.root_element)
        if mark == "done":
            return
        if mark == "active":
            cycle = " -> ".join(path + [cfg.root_element])
            raise ConfigurationError(f"Datasource dependency cycle: {cycle}")
        state[cfg.root_element] = "active"
        for dep in sorted(cfg.dependencies()):
            if dep in by_root:
                visit(by_root[dep], path + [cfg.root_element])
        state[cfg.root_element] = "done"
        ordered.append(cfg)

    for cfg in configs:
        visit(cfg, [])
    return ordered


class QueryService:
    """
    Entry point for running configured datasources.

    Responsibilities:
    - Build SectionDatasource objects sharing one set of repositories.
    - Run one datasource, or a batch in dependency order.
    - Carry the parameter pool from one datasource to the next.
    """

    def __init__(
        self,
        session_factory=SessionLocal,
        *,
        hooks: Sequence[EntriesHook] = (),
        log=logger,
    ):
        self.sections = SectionRepository(session_factory)
        self.fields = FieldRepository(session_factory)
        self.entries = EntryRepository(session_factory)
        self.hooks = list(hooks)
        self.log = log

    # -----------------------------------------------------------------------
    # Single
    # -----------------------------------------------------------------------
    def datasource(self, config: DatasourceConfig) -> SectionDatasource:
        return SectionDatasource(
            config,
            sections=self.sections,
            fields=self.fields,
            entries=self.entries,
            hooks=self.hooks,
            log=self.log,
        )

    def run(self, config: DatasourceConfig, params: Optional[Dict[str, Any]] = None) -> Outcome:
        return self.datasource(config).execute(params)

    # -----------------------------------------------------------------------
    # Batch
    # -----------------------------------------------------------------------
    def run_all(
        self,
        configs: Sequence[DatasourceConfig],
        params: Optional[Dict[str, Any]] = None,
    ) -> List[tuple[DatasourceConfig, Outcome]]:
        """
        Run every datasource in dependency order. `params` (created when None)
        accumulates the output parameters of each run.
        """
        pool: Dict[str, Any] = params if params is not None else {}
        results = []
        for cfg in order_datasources(configs):
            self.log.debug("Running data source %s", cfg.name)
            results.append((cfg, self.run(cfg, pool)))
        return results
