"""
analyze.jsx_parser
React（.tsx/.jsx）解析：

1) 组件发现：PascalCase 的函数声明 / const 箭头（含 memo、forwardRef 包装）/ 类组件；
2) 在组件源码片段上运行容错 JSX 扫描器，把标签事件喂给 ElementCollector；
3) 状态：useState / useRef / useReducer / useForm(react-hook-form) / useFormik，类组件 state；
4) props：解构的第一个参数 + interface / type 字面量。
"""

from __future__ import annotations

import html
import os
import re
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from .assemble import assemble_component, scope_finder
from .collect import Dialect, ElementCollector
from .constants import FORM_LIBRARY_HOOKS, REGISTER_SPREAD_RE
from .types import ComponentAnalysis, ComponentInfo, PropDefinition, StateBinding, StateVariable
from .utils import (
    JsScanner,
    infer_state_type,
    js_literal,
    object_entries,
    pascal_case,
    read_function,
    skip_ws,
)


_JSX_EVENTS = {"onSubmit": "submit", "onClick": "click", "onChange": "change"}
_VALUE_ATTRS = {"value", "checked"}

JSX_DIALECT = Dialect(
    name="react",
    case_sensitive=True,
    label_for_attrs=("htmlFor", "for"),
    event_attr=_JSX_EVENTS.get,
    value_attr=lambda a: a in _VALUE_ATTRS,
)

_TAG_NAME_RE = re.compile(r"[A-Za-z_$][\w$.:-]*")
_ATTR_NAME_RE = re.compile(r"[A-Za-z_$][\w$:.-]*")
_REQUIRED_OPT_RE = re.compile(r"required\s*:\s*(?!false\b)")


class JsxWalker:
    """Tolerant JSX walk over one component's source text."""

    def __init__(self, src: str, collector: ElementCollector):
        self.src = src
        self.scanner = JsScanner(src)
        self.collector = collector
        self.form_library: Optional[str] = None

    def walk(self) -> None:
        i = 0
        while i < len(self.src):
            i = self.scanner.skip(i, "", on_jsx=self.element) + 1

    def _expr(self, i: int) -> int:
        """Index of the `}` closing an expression container opened just before i."""
        return self.scanner.skip(i, "}", on_jsx=self.element)

    def element(self, i: int) -> int:
        src, n = self.src, len(self.src)
        j = i + 1
        if src.startswith(">", j):
            return self._children(j + 1, "")
        m = _TAG_NAME_RE.match(src, j)
        if not m:
            return i
        tag = m.group(0)
        j = m.end()

        attrs = {}
        exprs: Set[str] = set()
        spreads: List[str] = []
        self_closing = False
        while True:
            j = skip_ws(src, j)
            if j >= n:
                return i
            c = src[j]
            if src.startswith("/>", j):
                self_closing = True
                j += 2
                break
            if c == ">":
                j += 1
                break
            if c == "{":
                k = self._expr(j + 1)
                inner = src[j + 1:k].strip()
                if inner.startswith("..."):
                    spreads.append(inner[3:].strip())
                j = k + 1
                continue
            am = _ATTR_NAME_RE.match(src, j)
            if not am:
                return i
            aname = am.group(0)
            j = skip_ws(src, am.end())
            if not src.startswith("=", j):
                attrs[aname] = "true"
                continue
            j = skip_ws(src, j + 1)
            if j >= n:
                return i
            if src[j] in "'\"":
                k = src.find(src[j], j + 1)
                if k < 0:
                    return i
                attrs[aname] = html.unescape(src[j + 1:k])
                j = k + 1
            elif src[j] == "{":
                k = self._expr(j + 1)
                raw = src[j + 1:k].strip()
                literal = js_literal(raw)
                if literal is not None:
                    attrs[aname] = literal
                else:
                    attrs[aname] = raw
                    exprs.add(aname)
                j = k + 1
            else:
                return i

        field = self._apply_spreads(spreads, attrs)
        el = self.collector.start(tag, attrs, self_closing=self_closing, exprs=exprs)
        if el is not None and field is not None:
            el.state_binding = StateBinding(
                variable=field.split(".")[-1],
                access_path=field if "." in field else None,
            )
        if self_closing:
            return j
        return self._children(j, tag)

    def _apply_spreads(self, spreads: List[str], attrs) -> Optional[str]:
        field = None
        for s in spreads:
            m = REGISTER_SPREAD_RE.match(s)
            if not m:
                continue
            field = m.group("field")
            attrs.setdefault("name", field)
            if _REQUIRED_OPT_RE.search(m.group("rest") or ""):
                attrs.setdefault("required", "true")
            self.form_library = self.form_library or (
                "react-hook-form" if m.group("fn") == "register" else "formik"
            )
        return field

    def _children(self, j: int, tag: str) -> int:
        src, n = self.src, len(self.src)
        while j < n:
            c = src[j]
            if src.startswith("</", j):
                k = src.find(">", j)
                self.collector.end(tag)
                return n if k < 0 else k + 1
            if c == "<":
                k = self.element(j)
                if k == j:
                    self.collector.data("<")
                    j += 1
                else:
                    j = k
            elif c == "{":
                k = self._expr(j + 1)
                literal = js_literal(src[j + 1:k])
                if literal is not None:
                    self.collector.data(literal)
                j = k + 1
            else:
                k = j
                while k < n and src[k] not in "<{":
                    k += 1
                self.collector.data(html.unescape(src[j:k]))
                j = k
        self.collector.end(tag)
        return n


# ----------------------------- component discovery -----------------------------

@dataclass
class _Found:
    name: str
    start: int
    end: int
    params: str
    body_start: int


_FUNC_DECL_RE = re.compile(
    r"(?m)^[ \t]*(?P<export>export\s+(?:default\s+)?)?(?:async\s+)?function\s*(?P<name>[A-Z][\w$]*)?\s*(?:<[^<>()]*>)?\s*(?=\()"
)
_CONST_DECL_RE = re.compile(
    r"(?m)^[ \t]*(?:export\s+)?(?:const|let|var)\s+(?P<name>[A-Z][\w$]*)\s*(?::[^=\n]+)?=\s*"
    r"(?P<wrap>(?:(?:React\.)?(?:memo|forwardRef)\s*(?:<[^()]*?>)?\s*\(\s*)*)"
)
_CLASS_DECL_RE = re.compile(
    r"(?m)^[ \t]*(?:export\s+)?(?:default\s+)?class\s+(?P<name>[A-Z][\w$]*)\s+extends\s+(?:React\.)?(?:Pure)?Component\b[^{]*"
)


def _discover(src: str, file_name: str) -> List[_Found]:
    sc = JsScanner(src)
    found: List[_Found] = []

    for m in _FUNC_DECL_RE.finditer(src):
        name = m.group("name")
        if name is None:
            if not (m.group("export") and "default" in m.group("export")):
                continue
            name = pascal_case(os.path.splitext(os.path.basename(file_name))[0])
        p_open = m.end()
        p_close = sc.match_bracket(p_open)
        b_open = sc.skip(p_close + 1, "{")
        if b_open >= len(src):
            continue
        b_close = sc.match_bracket(b_open)
        found.append(_Found(name, m.start(), b_close + 1, src[p_open + 1:p_close], b_open))

    for m in _CONST_DECL_RE.finditer(src):
        parsed = read_function(src, m.end(), scanner=sc)
        if parsed is None:
            continue
        _, _, end = parsed
        p_open = src.find("(", m.end())
        params = ""
        head = src[m.end():p_open].strip() if p_open >= 0 else "-"
        if p_open < end and (head in ("", "async") or head.startswith("function")):
            p_close = sc.match_bracket(p_open)
            params = src[p_open + 1:p_close]
        found.append(_Found(m.group("name"), m.start(), end, params, m.end()))

    for m in _CLASS_DECL_RE.finditer(src):
        b_open = m.end()
        if b_open >= len(src) or src[b_open] != "{":
            continue
        b_close = sc.match_bracket(b_open)
        found.append(_Found(m.group("name"), m.start(), b_close + 1, "", b_open))

    found.sort(key=lambda f: f.start)
    out: List[_Found] = []
    for f in found:
        if out and f.start < out[-1].end:
            continue
        out.append(f)
    return out


# ----------------------------- state -----------------------------

_USE_STATE_RE = re.compile(
    r"(?:const|let|var)\s*\[\s*(?P<name>[\w$]+)\s*(?:,\s*(?P<setter>[\w$]+)\s*)?\]\s*=\s*(?:React\.)?useState\s*(?:<[^()]*?>)?\s*\("
)
_USE_REF_RE = re.compile(r"(?:const|let|var)\s+(?P<name>[\w$]+)\s*=\s*(?:React\.)?useRef\s*(?:<[^()]*?>)?\s*\(")
_USE_REDUCER_RE = re.compile(
    r"(?:const|let|var)\s*\[\s*(?P<name>[\w$]+)\s*(?:,\s*(?P<setter>[\w$]+)\s*)?\]\s*=\s*(?:React\.)?useReducer\s*\("
)
_FORM_HOOK_RE = re.compile(
    r"(?:const|let|var)\s+(?P<target>\{[^}]*\}|[\w$]+)\s*=\s*(?P<hook>" + "|".join(FORM_LIBRARY_HOOKS) + r")\s*(?:<[^()]*?>)?\s*\("
)
_CLASS_STATE_RE = re.compile(r"(?:this\.)?state\s*(?::[^=\n]+)?=\s*(?=\{)")


def _call_args(src: str, sc: JsScanner, open_idx: int) -> List[str]:
    close = sc.match_bracket(open_idx)
    args: List[str] = []
    i = open_idx + 1
    while i < close:
        end = min(sc.skip(i, ","), close)
        arg = src[i:end].strip()
        if arg:
            args.append(arg)
        i = end + 1
    return args


def extract_state(src: str) -> Tuple[List[StateVariable], Optional[str]]:
    sc = JsScanner(src)
    found: List[Tuple[int, StateVariable]] = []
    form_library = None

    for m in _USE_STATE_RE.finditer(src):
        args = _call_args(src, sc, m.end() - 1)
        init = args[0] if args else None
        found.append((m.start(), StateVariable(
            name=m.group("name"), setter=m.group("setter"), initial_value=init,
            type=infer_state_type(init), kind="state",
        )))
    for m in _USE_REF_RE.finditer(src):
        args = _call_args(src, sc, m.end() - 1)
        init = args[0] if args else None
        found.append((m.start(), StateVariable(
            name=m.group("name"), initial_value=init, type="object", kind="ref",
        )))
    for m in _USE_REDUCER_RE.finditer(src):
        args = _call_args(src, sc, m.end() - 1)
        init = args[1] if len(args) > 1 else None
        found.append((m.start(), StateVariable(
            name=m.group("name"), setter=m.group("setter"), initial_value=init,
            type=infer_state_type(init) if init else "object", kind="reducer",
        )))
    for m in _FORM_HOOK_RE.finditer(src):
        target = m.group("target")
        name = target if not target.startswith("{") else m.group("hook")
        form_library = form_library or FORM_LIBRARY_HOOKS[m.group("hook")]
        found.append((m.start(), StateVariable(name=name, type="object", kind="form_library")))
    for m in _CLASS_STATE_RE.finditer(src):
        b_open = m.end()
        b_close = sc.match_bracket(b_open)
        for key, value in object_entries(src[b_open:b_close + 1]):
            found.append((m.start(), StateVariable(
                name=key, setter="setState", initial_value=value,
                type=infer_state_type(value), kind="state",
            )))
        break

    found.sort(key=lambda t: t[0])
    return [v for _, v in found], form_library


# ----------------------------- props -----------------------------

_MEMBER_RE = re.compile(r"^\s*(?:readonly\s+)?(?P<name>[\w$]+)(?P<opt>\?)?\s*:\s*(?P<type>.+?)\s*$", re.DOTALL)


def type_members(type_text: str) -> List[PropDefinition]:
    """Members of a `{ a: string; b?: number }` type literal body."""
    s = type_text.strip()
    if s.startswith("{"):
        s = s[1:]
        if s.endswith("}"):
            s = s[:-1]
    sc = JsScanner(s)
    out: List[PropDefinition] = []
    i = 0
    while i < len(s):
        end = sc.skip(i, ";,\n")
        part = s[i:end].strip()
        i = end + 1
        m = _MEMBER_RE.match(part)
        if m:
            out.append(PropDefinition(name=m.group("name"), type=m.group("type"), required=not m.group("opt")))
    return out


def resolve_type(src: str, type_name: str) -> List[PropDefinition]:
    sc = JsScanner(src)
    n = re.escape(type_name)
    m = re.search(r"\binterface\s+" + n + r"\b[^{]*(?=\{)", src) or re.search(
        r"\btype\s+" + n + r"\s*(?:<[^>]*>)?\s*=\s*(?=\{)", src
    )
    if not m:
        return []
    b_open = m.end()
    b_close = sc.match_bracket(b_open)
    return type_members(src[b_open:b_close + 1])


_DESTRUCTURED_RE = re.compile(r"^(?P<key>[\w$]+)\s*(?::\s*[\w$]+\s*)?(?:=\s*(?P<default>.+))?$", re.DOTALL)


def destructured_defaults(pattern: str) -> List[Tuple[str, Optional[str]]]:
    """`{ a, b = 1, c: alias = 'x', ...rest }` -> [(a, None), (b, '1'), (c, "'x'")]"""
    s = pattern.strip()[1:-1] if pattern.strip().startswith("{") else pattern
    sc = JsScanner(s)
    out: List[Tuple[str, Optional[str]]] = []
    i = 0
    while i < len(s):
        end = sc.skip(i, ",")
        part = s[i:end].strip()
        i = end + 1
        m = _DESTRUCTURED_RE.match(part)
        if m:
            default = m.group("default")
            out.append((m.group("key"), default.strip() if default else None))
    return out


def extract_props(params: str, src: str) -> List[PropDefinition]:
    p = params.strip()
    if not p:
        return []
    sc = JsScanner(p)
    first_end = sc.skip(0, ",")
    first = p[:first_end].strip()

    pattern, annotation = first, None
    if first.startswith("{"):
        close = sc.match_bracket(0)
        pattern = first[:close + 1]
        rest = first[close + 1:].strip()
        if rest.startswith(":"):
            annotation = rest[1:].strip()
    else:
        m = re.match(r"^([\w$]+)\s*(?::\s*(.+))?$", first, re.DOTALL)
        if not m:
            return []
        pattern, annotation = None, m.group(2)

    typed: List[PropDefinition] = []
    if annotation:
        if annotation.startswith("{"):
            typed = type_members(annotation)
        else:
            tm = re.match(r"^(?:React\.)?(?:PropsWithChildren|FC|ComponentProps)?\s*<?\s*([\w$]+)", annotation)
            if tm:
                typed = resolve_type(src, tm.group(1))

    if pattern is None:
        return typed

    by_name = {d.name: d for d in typed}
    out = list(typed)
    for key, default in destructured_defaults(pattern):
        if key in by_name:
            if default is not None:
                by_name[key].default_value = default
                by_name[key].required = False
            continue
        prop = PropDefinition(name=key, type=None, required=default is None, default_value=default)
        by_name[key] = prop
        out.append(prop)
    return out


# ----------------------------- entry -----------------------------

def _analyze(found: _Found, src: str) -> ComponentInfo:
    span = src[found.start:found.end]
    collector = ElementCollector(JSX_DIALECT)
    walker = JsxWalker(src[found.body_start:found.end], collector)
    walker.walk()
    collected = collector.finish()

    states, library = extract_state(span)
    return assemble_component(
        found.name,
        collected,
        scope_finder(span, src),
        state_variables=states,
        props=extract_props(found.params, src),
        form_library=library or walker.form_library,
    )


def parse_jsx(source: str, file_name: str) -> ComponentAnalysis:
    components = []
    for found in _discover(source, file_name):
        comp = _analyze(found, source)
        if not comp.is_empty():
            components.append(comp)
    return ComponentAnalysis(file_name=file_name, framework="react", components=components)
