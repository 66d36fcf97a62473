"""
analyze.vue_parser
Vue 单文件组件（.vue）解析：<template> 走 MarkupWalker（BeautifulSoup）遍历，<script>/<script setup> 提供
状态、props、方法体。

- 事件：@submit.prevent="x" / v-on:click="x"（修饰符忽略）
- 取值：v-model / v-model:value / :value / :checked / :model-value
- 状态：ref / shallowRef / reactive / computed，Options API 的 data()
- 组件名：name 选项（或 defineOptions），否则取文件名
"""

from __future__ import annotations

import os
import re
from typing import List, Optional, Tuple

from .assemble import assemble_component, scope_finder
from .collect import Dialect, ElementCollector
from .errors import ParseFailed
from .html_parser import MarkupWalker
from .jsx_parser import resolve_type, type_members
from .types import ComponentAnalysis, PropDefinition, StateVariable
from .utils import JsScanner, infer_state_type, js_literal, object_entries, pascal_case


def _vue_event(attr: str) -> Optional[str]:
    a = attr.lower()
    if a.startswith("@"):
        a = a[1:]
    elif a.startswith("v-on:"):
        a = a[len("v-on:"):]
    else:
        return None
    a = a.split(".", 1)[0]
    return a if a in ("submit", "click", "change") else None


def _vue_value(attr: str) -> bool:
    a = attr.lower()
    if a.startswith("v-model"):
        return True
    return a in (":value", "v-bind:value", ":checked", "v-bind:checked", ":model-value", ":modelvalue")


VUE_DIALECT = Dialect(
    name="vue",
    case_sensitive=False,
    label_for_attrs=("for",),
    event_attr=_vue_event,
    value_attr=_vue_value,
)

_MUSTACHE_RE = re.compile(r"\{\{.*?\}\}", re.DOTALL)


class TemplateWalker(MarkupWalker):
    """MarkupWalker that drops `{{ interpolations }}` from text content."""

    def text(self, data: str) -> None:
        super().text(_MUSTACHE_RE.sub(" ", data))


_TEMPLATE_OPEN_RE = re.compile(r"<template(\s[^>]*)?>", re.IGNORECASE)
_TEMPLATE_CLOSE_RE = re.compile(r"</template\s*>", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script(?P<attrs>\s[^>]*)?>(?P<body>.*?)</script\s*>", re.IGNORECASE | re.DOTALL)


def split_blocks(source: str) -> Tuple[Optional[str], List[str]]:
    """(template inner text or None, [script bodies])"""
    scripts = [m.group("body") for m in _SCRIPT_RE.finditer(source)]
    stripped = _SCRIPT_RE.sub("", source)
    m_open = _TEMPLATE_OPEN_RE.search(stripped)
    closes = list(_TEMPLATE_CLOSE_RE.finditer(stripped))
    if not m_open or not closes or closes[-1].start() < m_open.end():
        return None, scripts
    return stripped[m_open.end():closes[-1].start()], scripts


# ----------------------------- script analysis -----------------------------

_REF_RE = re.compile(r"(?:const|let|var)\s+(?P<name>[\w$]+)\s*(?::[^=\n]+)?=\s*(?P<fn>ref|shallowRef|reactive|computed)\s*(?:<[^()]*?>)?\s*\(")
_DATA_FN_RE = re.compile(r"\bdata\s*\(\s*\)\s*(?::[^{]+)?\{")
_DATA_ARROW_RE = re.compile(r"\bdata\s*:\s*\(\s*\)\s*=>\s*\(\s*(?=\{)")
_RETURN_OBJ_RE = re.compile(r"\breturn\s*(?=\{)")
_OPTIONS_OBJECT_RE = re.compile(r"(?:export\s+default|defineComponent\s*\(|defineOptions\s*\()\s*(?=\{)")
_DEFINE_PROPS_RE = re.compile(r"\bdefineProps\s*(?P<generic><)?")
_PROPS_OPTION_RE = re.compile(r"(?<![\w$.])props\s*:\s*(?=[\[{])")
_VEE_VALIDATE_RE = re.compile(r"""from\s+(['"])vee-validate\1""")


def extract_state(script: str) -> List[StateVariable]:
    sc = JsScanner(script)
    out: List[StateVariable] = []
    for m in _REF_RE.finditer(script):
        open_idx = m.end() - 1
        init = None
        if m.group("fn") != "computed":
            end = sc.skip(open_idx + 1, ",)")
            init = script[open_idx + 1:end].strip() or None
        kind = {"ref": "ref", "shallowRef": "ref", "reactive": "state", "computed": "other"}[m.group("fn")]
        type_ = "object" if m.group("fn") == "reactive" else infer_state_type(init)
        out.append(StateVariable(name=m.group("name"), initial_value=init, type=type_, kind=kind))

    body = None
    m = _DATA_FN_RE.search(script)
    if m:
        b_open = m.end() - 1
        b_close = sc.match_bracket(b_open)
        rm = _RETURN_OBJ_RE.search(script, b_open, b_close)
        if rm:
            o_close = sc.match_bracket(rm.end())
            body = script[rm.end():o_close + 1]
    else:
        m = _DATA_ARROW_RE.search(script)
        if m:
            o_close = sc.match_bracket(m.end())
            body = script[m.end():o_close + 1]
    if body:
        for key, value in object_entries(body):
            out.append(StateVariable(name=key, initial_value=value, type=infer_state_type(value), kind="state"))
    return out


def _option_props(text: str) -> List[PropDefinition]:
    s = text.strip()
    if s.startswith("["):
        names = re.findall(r"""(['"])([\w$-]+)\1""", s)
        return [PropDefinition(name=n, required=False) for _, n in names]
    out: List[PropDefinition] = []
    for key, value in object_entries(s):
        v = (value or "").strip()
        if v.startswith("{"):
            opts = dict(object_entries(v))
            required = (opts.get("required") or "").strip() == "true"
            default = opts.get("default")
            type_ = (opts.get("type") or "").strip() or None
            out.append(PropDefinition(
                name=key, type=type_.lower() if type_ else None, required=required,
                default_value=default.strip() if default is not None else None,
            ))
        else:
            out.append(PropDefinition(name=key, type=v.lower() or None, required=False))
    return out


def extract_props(script: str) -> List[PropDefinition]:
    sc = JsScanner(script)
    m = _DEFINE_PROPS_RE.search(script)
    if m:
        i = m.end()
        if m.group("generic"):
            # defineProps<{ ... }>() / defineProps<Props>()
            close = script.find(">()", i)
            type_text = script[i:close if close >= 0 else len(script)].strip()
            props = type_members(type_text) if type_text.startswith("{") else resolve_type(script, type_text)
        else:
            open_idx = script.find("(", m.end() - 1)
            close = sc.match_bracket(open_idx)
            props = _option_props(script[open_idx + 1:close])
        # withDefaults(defineProps<...>(), { a: 1 })
        wd = re.search(r"\bwithDefaults\s*\(", script)
        if wd:
            call_close = sc.match_bracket(wd.end() - 1)
            inner = script[wd.end():call_close]
            comma = JsScanner(inner).skip(0, ",")
            defaults = dict(object_entries(inner[comma + 1:]))
            for p in props:
                if p.name in defaults:
                    p.default_value = defaults[p.name]
                    p.required = False
        return props
    m = _PROPS_OPTION_RE.search(script)
    if m:
        close = sc.match_bracket(m.end())
        return _option_props(script[m.end():close + 1])
    return []


def component_name(script: str) -> Optional[str]:
    """`name` option of `export default {}` / defineComponent({}) / defineOptions({})."""
    sc = JsScanner(script)
    for m in _OPTIONS_OBJECT_RE.finditer(script):
        close = sc.match_bracket(m.end())
        for key, value in object_entries(script[m.end():close + 1]):
            if key == "name" and value:
                literal = js_literal(value)
                if literal:
                    return literal
    return None


def parse_vue(source: str, file_name: str) -> ComponentAnalysis:
    template, scripts = split_blocks(source)
    if template is None and not scripts:
        raise ParseFailed(file_name, "no <template> or <script> block found")

    collector = ElementCollector(VUE_DIALECT)
    if template is not None:
        TemplateWalker(collector).walk(template)
    collected = collector.finish()

    script = "\n".join(scripts)
    name = component_name(script) or pascal_case(os.path.splitext(os.path.basename(file_name))[0])
    comp = assemble_component(
        name,
        collected,
        scope_finder(script),
        state_variables=extract_state(script),
        props=extract_props(script),
        form_library="vee-validate" if _VEE_VALIDATE_RE.search(script) else None,
    )
    components = [] if comp.is_empty() else [comp]
    return ComponentAnalysis(file_name=file_name, framework="vue", components=components)
