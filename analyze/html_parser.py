"""
analyze.html_parser
纯标记（.html/.htm）解析：整个文件视作一个组件，组件名取文件名。

- 标签遍历基于 BeautifulSoup（html.parser 后端，容错，未闭合标签不会报错）；
- 内联 onclick/onsubmit/onchange 属性作为处理器；
- <script> 文本用于解析具名处理器（onclick="remove()"）以及
  getElementById('x').addEventListener('click', fn) 形式的绑定。
"""

from __future__ import annotations

import os
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from .assemble import assemble_component, scope_finder
from .collect import Binding, Dialect, ElementCollector
from .constants import HTML_VOID_TAGS
from .types import ComponentAnalysis, UIElement
from .utils import JsScanner


_HTML_EVENTS = {"onsubmit": "submit", "onclick": "click", "onchange": "change"}

HTML_DIALECT = Dialect(
    name="html",
    case_sensitive=False,
    label_for_attrs=("for",),
    event_attr=lambda a: _HTML_EVENTS.get(a.lower()),
    value_attr=lambda a: False,
)


class MarkupWalker:
    """Walk HTML-ish markup (BeautifulSoup, html.parser backend) into an ElementCollector.

    <script> text is kept aside in `scripts`; <style> and comments are dropped.
    """

    _BOOLEAN_ATTRS = frozenset({
        "required", "disabled", "checked", "selected", "multiple", "readonly", "hidden", "autofocus", "novalidate",
    })

    def __init__(self, collector: ElementCollector):
        self.collector = collector
        self.scripts: List[str] = []

    def walk(self, markup: str) -> None:
        soup = BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
        self._children(soup)

    def text(self, data: str) -> None:
        self.collector.data(data)

    @classmethod
    def _attrs(cls, attrs: Dict[str, Optional[str]]) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for k, v in attrs.items():
            # html.parser reports valueless attributes as ""
            if v is None or (v == "" and k.lower() in cls._BOOLEAN_ATTRS):
                v = "true"
            out[k] = v
        return out

    def _children(self, node: Tag) -> None:
        for child in node.children:
            if isinstance(child, Tag):
                self._element(child)
            elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
                self.text(str(child))

    def _element(self, tag: Tag) -> None:
        name = tag.name
        if name == "script":
            self.scripts.append(tag.get_text())
            return
        if name == "style":
            return
        void = name in HTML_VOID_TAGS
        self.collector.start(name, self._attrs(tag.attrs), self_closing=void)
        self._children(tag)
        if not void:
            self.collector.end(name)


# getElementById('x') / querySelector('#x')
_LOOKUP = (
    r"""document\s*\.\s*(?:getElementById\(\s*(?P<q1>['"])(?P<id>[\w:.-]+)(?P=q1)\s*\)"""
    r"""|querySelector\(\s*(?P<q2>['"])#(?P<idq>[\w:-]+)(?P=q2)\s*\))"""
)
_VAR_LOOKUP_RE = re.compile(r"(?:const|let|var)\s+(?P<var>[\w$]+)\s*=\s*" + _LOOKUP)
_DIRECT_LISTENER_RE = re.compile(
    _LOOKUP + r"""\s*\??\.\s*addEventListener\(\s*(?P<q3>['"])(?P<event>submit|click|change)(?P=q3)\s*,\s*"""
)
_VAR_LISTENER_RE = re.compile(
    r"""(?<![\w$.])(?P<var>[\w$]+)\s*\??\.\s*addEventListener\(\s*(?P<q>['"])(?P<event>submit|click|change)(?P=q)\s*,\s*"""
)


def _listener_expr(script: str, start: int) -> str:
    end = JsScanner(script).skip(start, ",)")
    return script[start:end].strip()


def script_listener_bindings(script: str, elements: List[UIElement]) -> List[Binding]:
    """addEventListener registrations resolved to (element, event, handler expr)."""
    by_id = {e.id: e for e in elements if e.id}
    found: List[Tuple[int, Binding]] = []

    def _binding(el_id: Optional[str], event: str, expr: str) -> Binding:
        el = by_id.get(el_id) if el_id else None
        return Binding(kind=event, expr=expr, tag=el.tag if el else "element", element=el, element_id=el_id)

    for m in _DIRECT_LISTENER_RE.finditer(script):
        el_id = m.group("id") or m.group("idq")
        found.append((m.start(), _binding(el_id, m.group("event"), _listener_expr(script, m.end()))))

    var_ids = {}
    for m in _VAR_LOOKUP_RE.finditer(script):
        var_ids[m.group("var")] = m.group("id") or m.group("idq")
    for m in _VAR_LISTENER_RE.finditer(script):
        var = m.group("var")
        if var not in var_ids:
            continue
        found.append((m.start(), _binding(var_ids[var], m.group("event"), _listener_expr(script, m.end()))))

    found.sort(key=lambda t: t[0])
    return [b for _, b in found]


def parse_html(source: str, file_name: str) -> ComponentAnalysis:
    collector = ElementCollector(HTML_DIALECT)
    walker = MarkupWalker(collector)
    walker.walk(source)
    collected = collector.finish()

    script = "\n".join(walker.scripts)
    name = os.path.splitext(os.path.basename(file_name))[0] or "page"
    comp = assemble_component(
        name,
        collected,
        scope_finder(script),
        extra_bindings=script_listener_bindings(script, collected.elements),
    )
    components = [] if comp.is_empty() else [comp]
    return ComponentAnalysis(file_name=file_name, framework="html", components=components)
