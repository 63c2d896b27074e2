# src/sectionsource/cli.py
from __future__ import annotations

"""
SectionSource CLI

Commands:
  init-db   Create the tables in the configured database.
  seed      Import sections, fields, associations and entries from JSON.
  run       Run one or more datasources (JSON config) and print the XML.

Global options:
  --db URL          Database URL (default: SECTIONSOURCE_DATABASE_URL or data/sectionsource.db)
  --log-level LVL   Logging level for the package logger.

date: 2026-10-19
version: 0.1.0
"""

import argparse
import json
import sys
from typing import Optional, Sequence
from xml.etree.ElementTree import Element, indent, tostring

from . import logging as ss_logging
from .config import load_configs
from .datasource import OutcomeKind
from .db import DATABASE_URL, init_db, make_engine, make_session_factory
from .errors import SectionSourceError
from .importer import import_fixture
from .query import QueryService


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _engine(args: argparse.Namespace):
    return make_engine(args.db or DATABASE_URL)


def _parse_params(pairs: Optional[Sequence[str]]) -> dict[str, list[str]]:
    """['page=2', 'tag=a', 'tag=b'] -> {'page': ['2'], 'tag': ['a', 'b']}"""
    out: dict[str, list[str]] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise SectionSourceError(f"Invalid --param {pair!r}; expected NAME=VALUE")
        key, value = pair.split("=", 1)
        out.setdefault(key.strip(), []).append(value)
    return out


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

def cmd_init_db(args: argparse.Namespace) -> int:
    engine = _engine(args)
    init_db(bind=engine)
    print(f"Initialized database at {engine.url}")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    engine = _engine(args)
    init_db(bind=engine)
    counts = import_fixture(args.path, session_factory=make_session_factory(engine=engine))
    print(
        f"Seeded {counts['sections']} section(s), {counts['fields']} field(s), "
        f"{counts['associations']} association(s), {counts['entries']} entr(y/ies)."
    )
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    configs = load_configs(args.config)
    params = _parse_params(args.param)
    service = QueryService(make_session_factory(engine=_engine(args)))

    data = Element("data")
    status = 0
    for cfg, outcome in service.run_all(configs, params):
        if outcome.kind is OutcomeKind.NOT_FOUND:
            print(f"Data source {cfg.name}: not found ({outcome.reason})", file=sys.stderr)
            status = 2
            continue
        data.append(outcome.tree)

    indent(data)
    print(tostring(data, encoding="unicode"))
    if args.params:
        print(json.dumps(params, indent=2, default=str))
    return status


# ------------------------------------------------------------------------------
# Parser
# ------------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="sectionsource", description="SectionSource CLI")
    p.add_argument("--db", default=None, help="Database URL.")
    p.add_argument("--log-level", dest="log_level", default="WARNING",
                   help="Package log level (DEBUG, INFO, WARNING, ...).")
    sub = p.add_subparsers(dest="cmd", required=True)

    # init-db
    sp = sub.add_parser("init-db", help="Create database tables.")
    sp.set_defaults(func=cmd_init_db)

    # seed
    sp = sub.add_parser("seed", help="Import a JSON fixture.")
    sp.add_argument("path", help="Path to the fixture JSON file.")
    sp.set_defaults(func=cmd_seed)

    # run
    sp = sub.add_parser("run", help="Run datasources from a JSON config and print XML.")
    sp.add_argument("config", help="Path to a datasource config (object or list).")
    sp.add_argument("--param", action="append", default=None, metavar="NAME=VALUE",
                    help="Seed the parameter pool (repeatable).")
    sp.add_argument("--params", action="store_true",
                    help="Also print the resulting parameter pool as JSON.")
    sp.set_defaults(func=cmd_run)

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    ss_logging.setup(args.log_level)
    try:
        return args.func(args)
    except SectionSourceError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
