# tests/test_config.py
from __future__ import annotations

import json

import pytest

from sectionsource.config import DatasourceConfig, load_configs
from sectionsource.errors import ConfigurationError


def test_defaults():
    cfg = DatasourceConfig(root_element="news", source="3")
    assert cfg.source == 3
    assert cfg.name == "news"
    assert cfg.order == "desc"
    assert cfg.limit == 20
    assert cfg.paginate is True
    assert cfg.associated_entry_counts is True
    assert cfg.included_elements == [] and cfg.param_output == []


def test_from_mapping_accepts_yes_no_and_hyphenated_keys():
    cfg = DatasourceConfig.from_mapping({
        "root-element": "news",
        "source": 1,
        "paginate": "no",
        "html-encode": "yes",
        "param-output": "system:id",
        "limit": "-1",
        "group": "",
        "start-page": "2",
        "order": "ASC",
    })
    assert cfg.paginate is False
    assert cfg.html_encode is True
    assert cfg.param_output == ["system:id"]
    assert cfg.limit is None
    assert cfg.group is None
    assert cfg.start_page == 2
    assert cfg.order == "asc"


@pytest.mark.parametrize(
    "data",
    [
        {"root_element": "news"},
        {"source": 1},
        {"root_element": "news", "source": 1, "colour": "red"},
        {"root_element": "news", "source": 1, "paginate": "maybe"},
        {"root_element": "news", "source": 1, "order": "sideways"},
        {"root_element": "news", "source": "x"},
        {"root_element": " ", "source": 1},
    ],
)
def test_from_mapping_rejects_bad_config(data):
    with pytest.raises(ConfigurationError):
        DatasourceConfig.from_mapping(data)


def test_dependencies():
    cfg = DatasourceConfig(
        root_element="comments",
        source=2,
        filters={"6": "{$ds-articles.system-id}", "7": ["{$ds-authors}", "x"]},
        required_param="$ds-articles.system-id",
        negate_param="{$ds-comments.title}",
    )
    assert cfg.dependencies() == {"articles", "authors"}


def test_load_configs(tmp_path):
    one = tmp_path / "one.json"
    one.write_text(json.dumps({"root_element": "news", "source": 1}), encoding="utf-8")
    many = tmp_path / "many.json"
    many.write_text(json.dumps([
        {"root_element": "a", "source": 1},
        {"root_element": "b", "source": 2, "filters": {"system:id": "1"}},
    ]), encoding="utf-8")

    assert [c.root_element for c in load_configs(one)] == ["news"]
    configs = load_configs(many)
    assert [c.root_element for c in configs] == ["a", "b"]
    assert configs[1].filters == {"system:id": "1"}


def test_load_configs_errors(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_configs(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        load_configs(bad)
