"""
analyze.collect
三种方言共享的元素收集器（事件驱动：start / data / end）。

各方言解析器只负责把自己的语法拆成「开始标签 + 属性、文本、结束标签」三类事件，
这里统一完成：
  - 交互标签白名单 + 第三方组件映射；
  - 表单嵌套跟踪（parent_form_id 指向最近的外层表单）；
  - label 解析（显式属性 → <label for> → 外层 <label> → 按钮内文本）；
  - 校验标记、无障碍提示、<select> 的 option 收集（含 el-option 等组件库选项）；
  - 组件库按钮的 type="primary" 之类主题值不当作 input type，native-type/htmlType 优先；
  - 事件属性与取值属性的原始表达式记录（交给 assemble 解析）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from .constants import (
    BUTTON_INPUT_TYPES,
    EXPLICIT_LABEL_ATTRS,
    INTERACTIVE_TAGS,
    KNOWN_INPUT_COMPONENTS,
    KNOWN_INPUT_COMPONENTS_LOWER,
    NATIVE_BUTTON_TYPE_ATTRS,
    OPTION_TAGS,
)
from .types import AccessibilityHints, UIElement
from .utils import clean_label, dict_get_ci


@dataclass
class Dialect:
    name: str
    case_sensitive: bool
    label_for_attrs: Tuple[str, ...]
    # 属性名 -> 事件类型（submit/click/change），不是事件属性则返回 None
    event_attr: Callable[[str], Optional[str]]
    # 属性名是否承载取值绑定（value={x} / v-model="x"）
    value_attr: Callable[[str], bool]


@dataclass
class Binding:
    """One event attribute found on a tag (interactive or not)."""

    kind: str
    expr: str
    tag: str
    element: Optional[UIElement] = None
    element_id: Optional[str] = None


@dataclass
class CollectResult:
    elements: List[UIElement] = field(default_factory=list)
    bindings: List[Binding] = field(default_factory=list)
    value_bindings: List[Tuple[UIElement, str]] = field(default_factory=list)


@dataclass
class _Frame:
    tag: str
    kind: str  # form | label | button | select | option | textarea | other
    element: Optional[UIElement] = None
    label_for: Optional[str] = None
    value: Optional[str] = None
    text: List[str] = field(default_factory=list)


@dataclass
class _Pending:
    element: UIElement
    explicit: Optional[str]
    wrapping: Optional[_Frame]
    inner: Optional[_Frame]
    fallback_text: Optional[str] = None


class ElementCollector:
    def __init__(self, dialect: Dialect):
        self.dialect = dialect
        self._stack: List[_Frame] = []
        self._forms: List[str] = []
        self._form_count = 0
        self._pending: List[_Pending] = []
        self._label_for: Dict[str, List[str]] = {}
        self._no_label_text = 0
        self.result = CollectResult()

    # ----------------------------- resolution -----------------------------

    def resolve_native(self, tag: str) -> Tuple[Optional[str], Optional[str]]:
        """Tag name -> (native tag, default input type) or (None, None)."""
        if self.dialect.case_sensitive:
            if tag in INTERACTIVE_TAGS:
                return tag, None
            return KNOWN_INPUT_COMPONENTS.get(tag, (None, None))
        lname = tag.lower()
        if lname in INTERACTIVE_TAGS:
            return lname, None
        return KNOWN_INPUT_COMPONENTS_LOWER.get(lname) or KNOWN_INPUT_COMPONENTS_LOWER.get(
            lname.replace("-", ""), (None, None)
        )

    # ----------------------------- events -----------------------------

    def start(self, tag: str, attrs: Dict[str, str], self_closing: bool = False,
              exprs: Optional[Set[str]] = None) -> Optional[UIElement]:
        exprs = exprs or set()
        lname = tag if self.dialect.case_sensitive else tag.lower()
        native, default_type = self.resolve_native(tag)

        el: Optional[UIElement] = None
        kind = "other"
        if lname == "label":
            kind = "label"
        elif lname in OPTION_TAGS:
            kind = "option"
        if native is not None:
            el = self._make_element(native, default_type, attrs, exprs)
            kind = el.tag if el.tag in ("form", "button", "select", "textarea") else "other"

        self._record_bindings(lname, attrs, el)

        option_value = None
        if kind == "option":
            for a in ("value", "label"):
                if attrs.get(a) and a not in exprs:
                    option_value = attrs[a]
                    break

        if self_closing:
            if kind == "option" and option_value is not None:
                self._add_option(option_value)
            return el

        frame = _Frame(tag=lname, kind=kind, element=el)
        if kind == "label":
            frame.label_for = None
            for a in self.dialect.label_for_attrs:
                if a in attrs and a not in exprs:
                    frame.label_for = attrs[a]
                    break
        elif kind == "option":
            frame.value = option_value
        elif kind == "form" and el is not None:
            self._forms.append(el.form_key or "")
        elif kind == "button" and self._pending:
            self._pending[-1].inner = frame
        if kind in ("select", "textarea"):
            self._no_label_text += 1
        self._stack.append(frame)
        return el

    def data(self, text: str) -> None:
        if not text or not self._stack:
            return
        for frame in self._stack:
            if frame.kind == "label" and self._no_label_text == 0:
                frame.text.append(text)
            elif frame.kind in ("button", "option"):
                frame.text.append(text)

    def end(self, tag: str) -> None:
        if not tag:
            return
        lname = tag if self.dialect.case_sensitive else tag.lower()
        idx = None
        for k in range(len(self._stack) - 1, -1, -1):
            if self._stack[k].tag == lname:
                idx = k
                break
        if idx is None:
            return
        while len(self._stack) > idx:
            self._close(self._stack.pop())

    def finish(self) -> CollectResult:
        while self._stack:
            self._close(self._stack.pop())
        for p in self._pending:
            el = p.element
            label = p.explicit
            if label is None and el.id and el.id in self._label_for:
                label = self._label_for[el.id][0]
            if label is None and p.wrapping is not None:
                label = clean_label("".join(p.wrapping.text))
            if label is None and el.tag == "button":
                if p.inner is not None:
                    label = clean_label("".join(p.inner.text))
                if label is None:
                    label = clean_label(p.fallback_text)
            el.label = label
        return self.result

    # ----------------------------- internals -----------------------------

    def _close(self, frame: _Frame) -> None:
        if frame.kind in ("select", "textarea"):
            self._no_label_text = max(0, self._no_label_text - 1)
        if frame.kind == "form" and self._forms:
            self._forms.pop()
        elif frame.kind == "label" and frame.label_for:
            text = clean_label("".join(frame.text))
            if text:
                self._label_for.setdefault(frame.label_for, []).append(text)
        elif frame.kind == "option":
            value = frame.value if frame.value is not None else clean_label("".join(frame.text))
            if value is not None:
                self._add_option(value)

    def _add_option(self, value: str) -> None:
        select = self._enclosing("select")
        if select is not None and select.element is not None and value not in select.element.options:
            select.element.options.append(value)

    def _enclosing(self, kind: str) -> Optional[_Frame]:
        for frame in reversed(self._stack):
            if frame.kind == kind:
                return frame
        return None

    def _make_element(self, native: str, default_type: Optional[str], attrs: Dict[str, str],
                      exprs: Set[str]) -> UIElement:
        def lit(*names: str) -> Optional[str]:
            for nm in names:
                if nm in attrs and nm not in exprs:
                    return attrs[nm]
            return None

        input_type = lit("type") or default_type
        fallback_text = None
        if native == "input" and input_type and input_type.lower() in BUTTON_INPUT_TYPES:
            native = "button"
            fallback_text = lit("value")
        if input_type:
            input_type = input_type.lower()
        if native == "button":
            native_type = lit(*NATIVE_BUTTON_TYPE_ATTRS)
            if native_type:
                input_type = native_type.lower()
            if input_type not in BUTTON_INPUT_TYPES:
                input_type = None

        el = UIElement(
            tag=native,
            id=lit("id"),
            name=lit("name"),
            input_type=input_type,
            attributes=dict(attrs),
            parent_form_id=self._forms[-1] if self._forms else None,
        )
        if native == "form":
            self._form_count += 1
            el.form_key = el.id or el.name or f"form_{self._form_count}"

        el.validation = self._validation(attrs, exprs)
        aria_label = lit("aria-label", "ariaLabel")
        described = lit("aria-describedby", "ariaDescribedby", "ariaDescribedBy")
        role = lit("role")
        if aria_label or described or role:
            el.accessibility = AccessibilityHints(aria_label=aria_label, aria_described_by=described, role=role)

        explicit = None
        for a in EXPLICIT_LABEL_ATTRS:
            explicit = clean_label(lit(a))
            if explicit:
                break

        self._pending.append(
            _Pending(
                element=el,
                explicit=explicit,
                wrapping=self._enclosing("label"),
                inner=None,
                fallback_text=fallback_text,
            )
        )
        self.result.elements.append(el)
        return el

    def _validation(self, attrs: Dict[str, str], exprs: Set[str]) -> List[str]:
        out: List[str] = []
        req = dict_get_ci(attrs, "required")
        if req is not None and req.strip().lower() != "false":
            out.append("required")
        for key, marker in (("minLength", "minLength"), ("maxLength", "maxLength"), ("pattern", "pattern")):
            v = dict_get_ci(attrs, key)
            if v and key.lower() not in {e.lower() for e in exprs}:
                out.append(f"{marker}:{v}")
        return out

    def _record_bindings(self, lname: str, attrs: Dict[str, str], el: Optional[UIElement]) -> None:
        for aname, value in attrs.items():
            kind = self.dialect.event_attr(aname)
            if kind is not None:
                if value and value != "true":
                    self.result.bindings.append(
                        Binding(
                            kind=kind,
                            expr=value,
                            tag=el.tag if el is not None else lname,
                            element=el,
                            element_id=attrs.get("id"),
                        )
                    )
            elif el is not None and self.dialect.value_attr(aname) and value and value != "true":
                self.result.value_bindings.append((el, value))

