"""
skill.risk

工具风险分级（确定性、按顺序的规则级联，首个命中即返回）：
  1) excluded: 导航意图 / 文件上传标记（无论其他信号）
  2) destructive: 破坏性关键词，或任意 DELETE 调用
  3) caution: 变更类关键词，或任意 POST/PUT/PATCH 调用
  4) safe: 默认（包括没有处理器的情况）

所有文本信号（按钮 label/name/id、处理器名、处理器体）小写后拼接，做子串匹配。
关键词表是纯数据（RiskRules），可经配置追加。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from analyze.types import EventHandler, UIElement


RISK_LEVELS = ("safe", "caution", "destructive", "excluded")

NAVIGATION_KEYWORDS = ("navigate", "redirect", "route", "link", "href", "goto")
FILE_UPLOAD_MARKERS = ("file-upload", "upload-file")
DESTRUCTIVE_KEYWORDS = (
    "delete", "remove", "destroy", "drop", "purge", "erase",
    "revoke", "terminate", "cancel", "unsubscribe", "deactivate",
    "reset", "wipe", "clear-all",
)
CAUTION_KEYWORDS = (
    "update", "edit", "modify", "change", "save", "submit",
    "post", "put", "patch", "send", "publish", "create",
    "toggle", "enable", "disable", "set",
)
DESTRUCTIVE_METHODS = ("DELETE",)
MUTATION_METHODS = ("POST", "PUT", "PATCH")


@dataclass(frozen=True)
class RiskRules:
    navigation: Tuple[str, ...] = NAVIGATION_KEYWORDS
    file_upload: Tuple[str, ...] = FILE_UPLOAD_MARKERS
    destructive: Tuple[str, ...] = DESTRUCTIVE_KEYWORDS
    caution: Tuple[str, ...] = CAUTION_KEYWORDS

    def extended(self, *, excluded=(), destructive=(), caution=()) -> "RiskRules":
        """A copy with extra keywords appended (lowercased) to each tier."""
        def low(xs) -> Tuple[str, ...]:
            return tuple(str(x).lower() for x in xs if str(x).strip())

        return RiskRules(
            navigation=self.navigation + low(excluded),
            file_upload=self.file_upload,
            destructive=self.destructive + low(destructive),
            caution=self.caution + low(caution),
        )


DEFAULT_RULES = RiskRules()


@dataclass
class RiskClassification:
    risk: str
    reason: str
    keyword: Optional[str] = None
    # navigation | file-upload | destructive | mutation | http | default
    category: str = "default"
    signals: List[str] = field(default_factory=list)


def collect_signals(trigger: Optional[UIElement], handler: Optional[EventHandler]) -> List[str]:
    signals: List[str] = []
    if trigger is not None:
        for v in (trigger.label, trigger.name, trigger.id):
            if v:
                signals.append(v.lower())
    if handler is not None:
        for v in (handler.name, handler.body):
            if v:
                signals.append(v.lower())
    return signals


def _first_hit(text: str, keywords: Tuple[str, ...]) -> Optional[str]:
    for kw in keywords:
        if kw and kw in text:
            return kw
    return None


def classify_risk(trigger: Optional[UIElement] = None, handler: Optional[EventHandler] = None,
                  rules: RiskRules = DEFAULT_RULES) -> RiskClassification:
    signals = collect_signals(trigger, handler)
    text = " ".join(signals)
    methods = [c.method.upper() for c in (handler.api_calls if handler else [])]

    kw = _first_hit(text, rules.navigation)
    if kw:
        return RiskClassification("excluded", f'Matches excluded pattern: "{kw}"', kw, "navigation", signals)
    kw = _first_hit(text, rules.file_upload)
    if kw:
        return RiskClassification("excluded", f'Matches excluded pattern: "{kw}"', kw, "file-upload", signals)

    kw = _first_hit(text, rules.destructive)
    if kw:
        return RiskClassification("destructive", f'Contains destructive keyword: "{kw}"', kw, "destructive", signals)
    if any(m in DESTRUCTIVE_METHODS for m in methods):
        return RiskClassification("destructive", "Handler makes DELETE API call", None, "http", signals)

    kw = _first_hit(text, rules.caution)
    if kw:
        return RiskClassification("caution", f'Contains mutation keyword: "{kw}"', kw, "mutation", signals)
    if any(m in MUTATION_METHODS for m in methods):
        return RiskClassification("caution", f"Handler makes {', '.join(methods)} API call", None, "http", signals)

    return RiskClassification("safe", "No mutation or destructive signals detected", None, "default", signals)
