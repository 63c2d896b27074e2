# tests/test_cli.py
from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from sectionsource.cli import main
from sectionsource.logging import logger


# ---------- fixtures ----------

@pytest.fixture(autouse=True)
def reset_logger():
    yield
    # main() configures the package logger; undo it between tests
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{(tmp_path / 'cli.db').as_posix()}"


@pytest.fixture
def seeded(tmp_path: Path, db_url: str, catalog_data) -> str:
    fixture = tmp_path / "catalog.json"
    fixture.write_text(json.dumps(catalog_data), encoding="utf-8")
    assert main(["--db", db_url, "seed", str(fixture)]) == 0
    return db_url


def write_config(tmp_path: Path, data) -> Path:
    p = tmp_path / "ds.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return p


# ---------- tests ----------

def test_init_db(tmp_path, db_url, capsys):
    assert main(["--db", db_url, "init-db"]) == 0
    assert (tmp_path / "cli.db").exists()
    assert "Initialized database" in capsys.readouterr().out


def test_seed_reports_counts(capsys, seeded):
    out = capsys.readouterr().out
    assert "Seeded 2 section(s), 7 field(s), 1 association(s), 7 entr(y/ies)." in out


def test_run_prints_xml(tmp_path, seeded, capsys):
    config = write_config(tmp_path, {
        "root-element": "articles",
        "source": 1,
        "included-elements": ["title"],
        "filters": {"system:id": "1"},
        "param-output": ["system:id"],
    })
    capsys.readouterr()

    assert main(["--db", seeded, "run", str(config), "--params"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("<data>")
    assert '<entry id="1" comments-article="2" comments="2">' in out
    assert "<title handle=\"hello-world\">Hello World</title>" in out
    assert '"ds-articles.system-id": [' in out


def test_run_with_param(tmp_path, seeded, capsys):
    config = write_config(tmp_path, {
        "root_element": "articles",
        "source": 1,
        "filters": {"system:id": "{$wanted}"},
    })
    capsys.readouterr()

    assert main(["--db", seeded, "run", str(config), "--param", "wanted=3"]) == 0
    out = capsys.readouterr().out
    assert '<entry id="3"' in out
    assert '<entry id="1"' not in out


def test_run_not_found_exits_2(tmp_path, seeded, capsys):
    config = write_config(tmp_path, {
        "root_element": "articles",
        "source": 1,
        "filters": {"system:id": "99"},
        "redirect_on_empty": "yes",
    })
    assert main(["--db", seeded, "run", str(config)]) == 2
    assert "not found (no records)" in capsys.readouterr().err


def test_configuration_error_exits_1(tmp_path, seeded, capsys):
    config = write_config(tmp_path, {"root_element": "articles", "source": 1, "bogus": True})
    assert main(["--db", seeded, "run", str(config)]) == 1
    assert "Unknown datasource option" in capsys.readouterr().err


def test_bad_param_syntax(tmp_path, seeded, capsys):
    config = write_config(tmp_path, {"root_element": "articles", "source": 1})
    assert main(["--db", seeded, "run", str(config), "--param", "oops"]) == 1
    assert "NAME=VALUE" in capsys.readouterr().err
