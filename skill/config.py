"""
skill.config

插桩配置（pydantic 模型），所有字段可选，与默认值合并：

  classification.destructive = "include-with-warning"
  classification.navigation  = "exclude"
  output.format              = "iife"
  output.file_extension      = ".mcp.js"
  llm.temperature            = 0.1
  spec_version               = "0.1"

配置文件查找（从 search_from 向上逐级）：.afcrc.json → afc.config.json → package.json 的 "afc" 键。
键名同时接受 camelCase（customRules / fileExtension）与 snake_case。
"""

from __future__ import annotations

import fnmatch
import json
import os
from dataclasses import replace
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from analyze.errors import ConfigInvalid

from .risk import DEFAULT_RULES, RiskClassification, RiskRules


CONFIG_FILE_NAMES = (".afcrc.json", "afc.config.json")
PACKAGE_JSON_KEY = "afc"

RiskLevel = Literal["safe", "caution", "destructive", "excluded"]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CustomRule(_Model):
    match: str
    risk: RiskLevel


class KeywordExtras(_Model):
    excluded: List[str] = Field(default_factory=list)
    destructive: List[str] = Field(default_factory=list)
    caution: List[str] = Field(default_factory=list)


class ClassificationConfig(_Model):
    include: List[str] = Field(default_factory=list, description="工具名 glob：强制保留（内置排除 → caution）")
    exclude: List[str] = Field(default_factory=list, description="工具名 glob：强制排除")
    destructive: Literal["exclude", "include-with-warning"] = "include-with-warning"
    navigation: Literal["exclude", "include"] = "exclude"
    custom_rules: List[CustomRule] = Field(default_factory=list)
    keywords: KeywordExtras = Field(default_factory=KeywordExtras)


class OutputConfig(_Model):
    format: Literal["iife", "esm"] = "iife"
    file_extension: str = ".mcp.js"


class LLMSettings(_Model):
    backend: Optional[Literal["none", "openai"]] = None
    model: Optional[str] = None
    temperature: float = 0.1


class InstrumentConfig(_Model):
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    spec_version: str = "0.1"

    def risk_rules(self) -> RiskRules:
        kw = self.classification.keywords
        if not (kw.excluded or kw.destructive or kw.caution):
            return DEFAULT_RULES
        return DEFAULT_RULES.extended(excluded=kw.excluded, destructive=kw.destructive, caution=kw.caution)


def default_config() -> InstrumentConfig:
    return InstrumentConfig()


def parse_config(data: Optional[Dict[str, Any]], source: str = "<inline>") -> InstrumentConfig:
    if data is None:
        return default_config()
    if not isinstance(data, dict):
        raise ConfigInvalid(source, "config root must be a JSON object")
    try:
        return InstrumentConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        raise ConfigInvalid(source, f"{loc}: {first.get('msg', str(e))}", original=e) from e


def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigInvalid(path, f"invalid JSON ({e.msg} at line {e.lineno})", original=e) from e
    except OSError as e:
        raise ConfigInvalid(path, f"unreadable ({e})", original=e) from e


def find_config_file(search_from: Optional[str] = None) -> Optional[str]:
    cur = os.path.abspath(search_from or os.getcwd())
    if os.path.isfile(cur):
        cur = os.path.dirname(cur)
    while True:
        for name in CONFIG_FILE_NAMES:
            p = os.path.join(cur, name)
            if os.path.isfile(p):
                return p
        pkg = os.path.join(cur, "package.json")
        if os.path.isfile(pkg):
            try:
                with open(pkg, "r", encoding="utf-8") as f:
                    if PACKAGE_JSON_KEY in (json.load(f) or {}):
                        return pkg
            except (OSError, json.JSONDecodeError, TypeError):
                # 坏的 package.json 不属于本工具的配置
                pass
        parent = os.path.dirname(cur)
        if parent == cur:
            return None
        cur = parent


def load_config_file(path: str) -> InstrumentConfig:
    """Load an explicitly named config file (no upward search)."""
    if not os.path.isfile(path):
        raise ConfigInvalid(path, "file does not exist")
    data = _read_json(path)
    if os.path.basename(path) == "package.json":
        data = data.get(PACKAGE_JSON_KEY) if isinstance(data, dict) else None
    return parse_config(data, source=path)


def load_config(search_from: Optional[str] = None) -> InstrumentConfig:
    path = find_config_file(search_from)
    if path is None:
        return default_config()
    return load_config_file(path)


# ----------------------------- overrides -----------------------------

def _glob_hit(name: str, patterns: List[str]) -> Optional[str]:
    for p in patterns:
        if fnmatch.fnmatchcase(name, p):
            return p
    return None


def apply_overrides(result: RiskClassification, tool_name: str,
                    config: Optional[InstrumentConfig]) -> RiskClassification:
    """Layer the user's classification settings over the built-in cascade result."""
    if config is None:
        return result
    cls = config.classification
    out = result
    builtin_excluded = result.risk == "excluded"

    text = " ".join(result.signals + [tool_name.lower()])
    for rule in cls.custom_rules:
        if rule.match and rule.match.lower() in text:
            out = replace(out, risk=rule.risk, reason=f'Matches custom rule "{rule.match}"', category="custom")
            builtin_excluded = False
            break

    hit = _glob_hit(tool_name, cls.exclude)
    if hit:
        return replace(out, risk="excluded", reason=f'Excluded by config pattern "{hit}"', category="config")

    hit = _glob_hit(tool_name, cls.include)
    if hit and builtin_excluded and out.risk == "excluded":
        out = replace(out, risk="caution", reason=f'Included by config pattern "{hit}" ({out.reason})', category="config")

    if cls.navigation == "include" and out.risk == "excluded" and out.category == "navigation":
        out = replace(out, risk="caution", reason=f"Navigation allowed by config ({out.reason})")

    if cls.destructive == "exclude" and out.risk == "destructive":
        out = replace(out, risk="excluded", reason=f"Destructive tools excluded by config ({out.reason})")

    return out
