"""
analyze.assemble
把收集器结果（元素 + 事件绑定 + 取值绑定）与作用域源码组装成 ComponentInfo：

1) 事件表达式 → EventHandler（具名引用解析函数体；内联处理器过滤琐碎 setter）
2) 取值表达式 → StateBinding（直接同名 / 一层点路径）
3) 组件类型分类（form / action / mixed / display）
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .collect import Binding, CollectResult
from .types import ComponentInfo, EventHandler, PropDefinition, StateBinding, StateVariable, UIElement
from .utils import (
    JsScanner,
    extract_api_calls,
    find_function,
    is_trivial_setter,
    member_tail,
    strip_block,
)


_HANDLE_SUBMIT_RE = re.compile(r"^(?:[\w$]+\.)*handleSubmit\s*\(\s*(?P<arg>[^,()]+?)\s*(?:,[^()]*)?\)$", re.DOTALL)
_ARROW_RE = re.compile(r"^(?P<a>async\s*)?(?:\([^()]*\)|[A-Za-z_$][\w$]*)\s*(?::[^=]+)?=>\s*(?P<body>.*)$", re.DOTALL)
_FUNCTION_EXPR_RE = re.compile(r"^(?P<a>async\s+)?function\b[^(]*\(", re.DOTALL)
_SINGLE_CALL_RE = re.compile(r"^(?:this\.)?(?P<name>[A-Za-z_$][\w$]*)\s*\(", re.DOTALL)
_DOTTED_RE = re.compile(r"^(?P<obj>[A-Za-z_$][\w$]*)\.(?:values\.)?(?P<field>[A-Za-z_$][\w$]*)$")

FunctionFinder = Callable[[str], Optional["ResolvedHandler"]]


@dataclass
class ResolvedHandler:
    name: str
    body: Optional[str] = None
    is_async: bool = False


def scope_finder(*scopes: str) -> FunctionFinder:
    """Look a function up in each scope text in turn (component body first, then the file)."""

    def _find(name: str) -> Optional[ResolvedHandler]:
        for scope in scopes:
            fn = find_function(scope, name)
            if fn is not None:
                return ResolvedHandler(name=fn.name, body=fn.body, is_async=fn.is_async)
        return None

    return _find


class _InlineNamer:
    def __init__(self):
        self._used: Dict[str, int] = {}

    def __call__(self, kind: str) -> str:
        base = f"inline_{kind}_handler"
        n = self._used.get(base, 0) + 1
        self._used[base] = n
        return base if n == 1 else f"{base}_{n}"


def _single_call(stmt: str) -> Optional[str]:
    """Name of the function when `stmt` is exactly one call `name(...)`."""
    m = _SINGLE_CALL_RE.match(stmt)
    if not m:
        return None
    open_idx = stmt.index("(", m.end() - 1)
    close = JsScanner(stmt).match_bracket(open_idx)
    if close != len(stmt) - 1:
        return None
    return m.group("name")


def resolve_handler_expr(expr: str, kind: str, find: FunctionFinder,
                         namer: Callable[[str], str]) -> Optional[ResolvedHandler]:
    """Event attribute expression -> handler, or None when it is a trivial state setter."""
    s = (expr or "").strip().rstrip(";").strip()
    if not s:
        return None

    ref = member_tail(s)
    if ref is not None:
        return find(ref) or ResolvedHandler(name=ref)

    m = _HANDLE_SUBMIT_RE.match(s)
    if m:
        inner = m.group("arg").strip()
        ref = member_tail(inner)
        if ref is not None:
            return find(ref) or ResolvedHandler(name=ref)
        s = inner

    is_async = False
    m = _ARROW_RE.match(s)
    if m:
        is_async = bool(m.group("a"))
        body = m.group("body").strip()
    else:
        fm = _FUNCTION_EXPR_RE.match(s)
        if fm:
            is_async = bool(fm.group("a"))
            brace = s.find("{")
            body = s[brace:] if brace >= 0 else s
        else:
            body = s

    called = _single_call(strip_block(body))
    if called is not None and not called.startswith("set"):
        found = find(called)
        if found is not None:
            return found

    if is_trivial_setter(body):
        return None
    return ResolvedHandler(name=namer(kind), body=body, is_async=is_async)


def build_handlers(bindings: List[Binding], find: FunctionFinder) -> List[EventHandler]:
    namer = _InlineNamer()
    handlers: List[EventHandler] = []
    seen: Dict[str, EventHandler] = {}
    for b in bindings:
        resolved = resolve_handler_expr(b.expr, b.kind, find, namer)
        if resolved is None:
            continue
        if b.element is not None:
            b.element.handlers.setdefault(b.kind, resolved.name)
        if resolved.name in seen:
            continue
        h = EventHandler(
            name=resolved.name,
            event=b.kind,
            element_tag=b.tag,
            element_id=b.element_id,
            body=resolved.body,
            is_async=resolved.is_async,
            api_calls=extract_api_calls(resolved.body),
        )
        seen[resolved.name] = h
        handlers.append(h)
    return handlers


def bind_state(value_bindings, state_variables: List[StateVariable]) -> None:
    by_name = {v.name: v for v in state_variables}
    for el, expr in value_bindings:
        s = expr.strip()
        if s.startswith("this."):
            s = s[len("this."):]
        if s.startswith("state.") and s[len("state."):] in by_name:
            s = s[len("state."):]
        direct = by_name.get(s)
        if direct is not None:
            el.state_binding = StateBinding(variable=direct.name, setter=direct.setter)
            continue
        m = _DOTTED_RE.match(s)
        if m and m.group("obj") in by_name:
            obj = by_name[m.group("obj")]
            el.state_binding = StateBinding(variable=m.group("field"), setter=obj.setter, access_path=s)


def classify_component(elements: List[UIElement], handlers: List[EventHandler]) -> str:
    has_form = any(e.tag == "form" for e in elements)
    has_inputs = any(e.tag in ("input", "textarea", "select") for e in elements)
    has_buttons = any(e.tag == "button" for e in elements)
    has_submit = any(h.event == "submit" for h in handlers)
    if (has_form or has_submit) and has_inputs:
        return "form"
    if has_buttons and not has_inputs:
        return "action"
    if has_inputs or has_buttons:
        return "mixed"
    return "display"


def assemble_component(
    name: str,
    collected: CollectResult,
    find: FunctionFinder,
    *,
    state_variables: Optional[List[StateVariable]] = None,
    props: Optional[List[PropDefinition]] = None,
    form_library: Optional[str] = None,
    extra_bindings: Optional[List[Binding]] = None,
) -> ComponentInfo:
    states = list(state_variables or [])
    bind_state(collected.value_bindings, states)
    handlers = build_handlers(list(collected.bindings) + list(extra_bindings or []), find)
    return ComponentInfo(
        name=name,
        type=classify_component(collected.elements, handlers),
        elements=collected.elements,
        handlers=handlers,
        state_variables=states,
        props=list(props or []),
        form_library=form_library,
    )
