import json

import pytest

from analyze.errors import ConfigInvalid
from analyze.types import UIElement
from skill.config import apply_overrides, find_config_file, load_config, load_config_file, parse_config
from skill.risk import classify_risk


def test_defaults():
    cfg = parse_config(None)
    assert cfg.classification.destructive == "include-with-warning"
    assert cfg.classification.navigation == "exclude"
    assert cfg.output.format == "iife"
    assert cfg.output.file_extension == ".mcp.js"
    assert cfg.llm.temperature == 0.1
    assert cfg.spec_version == "0.1"


def test_camel_case_keys():
    cfg = parse_config({
        "classification": {"customRules": [{"match": "archive", "risk": "destructive"}]},
        "output": {"fileExtension": ".tools.js", "format": "esm"},
        "specVersion": "0.2",
    })
    assert cfg.classification.custom_rules[0].match == "archive"
    assert cfg.output.file_extension == ".tools.js"
    assert cfg.output.format == "esm"
    assert cfg.spec_version == "0.2"


def test_invalid_value_raises():
    with pytest.raises(ConfigInvalid) as exc:
        parse_config({"output": {"format": "cjs"}}, source="afc.config.json")
    assert exc.value.code == "CONFIG_INVALID"
    assert "output.format" in exc.value.message


def test_find_walks_upward(tmp_path):
    (tmp_path / ".afcrc.json").write_text(json.dumps({"output": {"format": "esm"}}), encoding="utf-8")
    nested = tmp_path / "src" / "components"
    nested.mkdir(parents=True)
    assert find_config_file(str(nested)) == str(tmp_path / ".afcrc.json")
    assert load_config(str(nested)).output.format == "esm"


def test_package_json_key(tmp_path):
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "app", "afc": {"classification": {"destructive": "exclude"}}}), encoding="utf-8")
    assert load_config(str(tmp_path)).classification.destructive == "exclude"


def test_package_json_without_key_is_ignored(tmp_path):
    (tmp_path / "package.json").write_text(json.dumps({"name": "app"}), encoding="utf-8")
    project = tmp_path / "app"
    project.mkdir()
    # a package.json without an "afc" key is not a config file
    path = find_config_file(str(project))
    assert path is None or not path.startswith(str(tmp_path))


def test_broken_json_raises(tmp_path):
    path = tmp_path / ".afcrc.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigInvalid):
        load_config_file(str(path))
    with pytest.raises(ConfigInvalid):
        load_config_file(str(tmp_path / "missing.json"))


def _risk(label, cfg_data, tool_name):
    cfg = parse_config(cfg_data)
    result = classify_risk(UIElement(tag="button", label=label), None, cfg.risk_rules())
    return apply_overrides(result, tool_name, cfg)


def test_custom_rule_applies_first():
    r = _risk("Archive", {"classification": {"customRules": [{"match": "archive", "risk": "destructive"}]}}, "archive")
    assert r.risk == "destructive"
    assert r.reason == 'Matches custom rule "archive"'


def test_exclude_glob_wins():
    r = _risk("Save", {"classification": {"exclude": ["save*"]}}, "save_profile")
    assert r.risk == "excluded"


def test_include_glob_rescues_builtin_exclusion():
    r = _risk("Docs link", {"classification": {"include": ["docs_*"]}}, "docs_link")
    assert classify_risk(UIElement(tag="button", label="Docs link")).risk == "excluded"
    assert r.risk == "caution"


def test_navigation_include_policy():
    r = _risk("Docs link", {"classification": {"navigation": "include"}}, "docs_link")
    assert r.risk == "caution"


def test_destructive_exclude_policy():
    r = _risk("Delete", {"classification": {"destructive": "exclude"}}, "delete")
    assert r.risk == "excluded"
    assert _risk("Delete", {}, "delete").risk == "destructive"


def test_extra_keywords():
    r = _risk("Archive", {"classification": {"keywords": {"destructive": ["archive"]}}}, "archive")
    assert r.risk == "destructive"
