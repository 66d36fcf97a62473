"""
skill.locators

静态元素 ↔ 运行时探针元素的对齐，以及回退选择器列表的合成。

打分（各信号仅在两侧都有值时生效，总分封顶 1.0）：
  id 相等 0.5 / name 相等 0.4 / 测试钩子属性相等 0.6 / 工具钩子属性相等 0.8 /
  label 与可访问名相等 0.4（单侧包含 0.2）/ 推断角色相等 0.2

最佳匹配分 > 0.3 时按探针元素合成策略，否则退回纯静态推导的策略；
任何元素最终都至少有一条策略。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from analyze.constants import TEST_HOOK_ATTRS, TOOL_HOOK_ATTRS
from analyze.types import SelectorStrategy, UIElement
from detect.schema import ProbeElement


MATCH_THRESHOLD = 0.3

W_ID = 0.5
W_NAME = 0.4
W_TEST_HOOK = 0.6
W_TOOL_HOOK = 0.8
W_LABEL_EQUAL = 0.4
W_LABEL_PARTIAL = 0.2
W_ROLE = 0.2

# 合成策略的固定置信度
S_TOOL_HOOK = 1.0
S_TEST_HOOK = 0.9
S_LABEL = 0.8
S_ROLE = 0.6
S_CSS_FLOOR = 0.2

# 纯静态推导的固定置信度
A_TEST_HOOK = 0.9
A_ID = 0.5
A_NAME = 0.4
A_TAG = 0.1

_INPUT_ROLES = {
    "submit": "button",
    "button": "button",
    "reset": "button",
    "image": "button",
    "text": "textbox",
    "email": "textbox",
    "password": "textbox",
    "search": "textbox",
    "url": "textbox",
    "tel": "textbox",
    "checkbox": "checkbox",
    "radio": "radio",
}
_TAG_ROLES = {"button": "button", "select": "combobox", "textarea": "textbox", "form": "form"}

_SIMPLE_ID_RE = re.compile(r"^[A-Za-z][\w-]*$")


@dataclass
class MatchResult:
    element: UIElement
    probe_element: Optional[ProbeElement]
    score: float


def infer_role(tag: str, input_type: Optional[str] = None) -> str:
    """Fixed tag+subtype → ARIA role table (falls back to the tag itself)."""
    if tag == "input":
        return _INPUT_ROLES.get((input_type or "text").lower(), tag)
    if tag == "button":
        return "button"
    return _TAG_ROLES.get(tag, tag)


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def attr_selector(attr: str, value: str) -> str:
    return f'[{attr}="{_quote(value)}"]'


def _first_hook(attrs: Dict[str, str], names: Sequence[str]) -> Optional[Tuple[str, str]]:
    for name in names:
        v = attrs.get(name)
        if v:
            return name, v
    return None


def _same_hook(a: Dict[str, str], b: Dict[str, str], names: Sequence[str]) -> bool:
    for name in names:
        va, vb = a.get(name), b.get(name)
        if va and vb and va == vb:
            return True
    return False


def score_match(el: UIElement, pe: ProbeElement) -> float:
    score = 0.0
    if el.id and pe.id and el.id == pe.id:
        score += W_ID
    if el.name and pe.name and el.name == pe.name:
        score += W_NAME
    if _same_hook(el.attributes, pe.attributes, TEST_HOOK_ATTRS):
        score += W_TEST_HOOK
    if _same_hook(el.attributes, pe.attributes, TOOL_HOOK_ATTRS):
        score += W_TOOL_HOOK

    static_label = (el.label or el.aria_label or "").strip().lower()
    probe_label = (pe.accessible_name or "").strip().lower()
    if static_label and probe_label:
        if static_label == probe_label:
            score += W_LABEL_EQUAL
        elif static_label in probe_label or probe_label in static_label:
            score += W_LABEL_PARTIAL

    explicit = el.accessibility.role if el.accessibility and el.accessibility.role else None
    expected = explicit or infer_role(el.tag, el.input_type)
    if pe.role and expected == pe.role:
        score += W_ROLE
    return min(score, 1.0)


def _sorted(strategies: List[SelectorStrategy]) -> List[SelectorStrategy]:
    # sorted() 稳定：同分保持加入顺序
    return sorted(strategies, key=lambda s: s.score, reverse=True)


def synthesize_strategies(pe: ProbeElement, match_score: float) -> List[SelectorStrategy]:
    out: List[SelectorStrategy] = []
    hook = _first_hook(pe.attributes, TOOL_HOOK_ATTRS)
    if hook:
        out.append(SelectorStrategy("tool-hook", attr_selector(*hook), S_TOOL_HOOK))
    hook = _first_hook(pe.attributes, TEST_HOOK_ATTRS)
    if hook:
        out.append(SelectorStrategy("test-id", attr_selector(*hook), S_TEST_HOOK))
    name = (pe.accessible_name or "").strip()
    if name:
        out.append(SelectorStrategy("label", name, S_LABEL))
        if pe.role:
            out.append(SelectorStrategy("role", f"{pe.role}:{name}", S_ROLE))
    out.append(SelectorStrategy("css", pe.selector, max(S_CSS_FLOOR, match_score * 0.5)))
    return _sorted(out)


def ast_fallback_strategies(el: UIElement) -> List[SelectorStrategy]:
    """Selectors derivable from source alone; never empty."""
    out: List[SelectorStrategy] = []
    hook = _first_hook(el.attributes, TEST_HOOK_ATTRS)
    if hook:
        out.append(SelectorStrategy("test-id", attr_selector(*hook), A_TEST_HOOK))
    if el.id:
        sel = f"#{el.id}" if _SIMPLE_ID_RE.match(el.id) else attr_selector("id", el.id)
        out.append(SelectorStrategy("css", sel, A_ID))
    if el.name:
        out.append(SelectorStrategy("css", f"{el.tag}{attr_selector('name', el.name)}", A_NAME))
    if not out:
        out.append(SelectorStrategy("css", el.tag, A_TAG))
    return _sorted(out)


def best_match(el: UIElement, probe_elements: Sequence[ProbeElement]) -> Tuple[Optional[ProbeElement], float]:
    best: Optional[ProbeElement] = None
    best_score = 0.0
    for pe in probe_elements:
        s = score_match(el, pe)
        if s > best_score:
            best, best_score = pe, s
    return best, best_score


def reconcile(static_elements: Sequence[UIElement], probe_elements: Sequence[ProbeElement],
              *, verbose: bool = False) -> List[MatchResult]:
    """Attach `selector_fallback` to every static element (in place)."""
    results: List[MatchResult] = []
    for el in static_elements:
        pe, score = best_match(el, probe_elements)
        if pe is not None and score > MATCH_THRESHOLD:
            el.selector_fallback = synthesize_strategies(pe, score)
        else:
            pe = None
            el.selector_fallback = ast_fallback_strategies(el)
        results.append(MatchResult(element=el, probe_element=pe, score=score))
    if verbose:
        matched = sum(1 for r in results if r.probe_element is not None)
        print(f"[skill.locators] matched {matched}/{len(results)} static elements against {len(probe_elements)} probe elements")
    return results
