"""
analyze.utils
源码文本层面的启发式工具：

- JsScanner：容错的 JS/TS 扫描器（跳过字符串 / 模板字符串 / 注释 / 正则 / 内嵌 JSX，
  跟踪括号深度），供括号匹配、函数体定位、JSX 属性表达式切分使用；
- find_function：在一段作用域文本里按名字定位函数体（声明 / 箭头 / 方法简写 / 类字段）；
- extract_api_calls：从处理函数体中提取出站 HTTP 调用；
- to_snake_case / clean_label / infer_state_type 等小工具。

全部是 best-effort：遇到不规则代码返回 None / 空列表，而不是抛异常。
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .constants import FETCH_CALL_RE, METHOD_OPTION_RE, VERB_CALL_RE
from .types import ApiCall


_JSX_PREV_CHARS = set("([{,;:?=&|!>}")
_JSX_PREV_WORDS = {"return", "yield", "default", "case", "await", "in", "of", "do", "else"}
_REGEX_PREV_CHARS = set("(,=:[!&|?{};")
_IDENT_CHARS = re.compile(r"[\w$]")


def jsx_can_start(src: str, i: int) -> bool:
    """Whether the `<` at src[i] opens a JSX element rather than a comparison / generic."""
    if i + 1 >= len(src):
        return False
    nxt = src[i + 1]
    if not (nxt.isalpha() or nxt == ">" or nxt == "_"):
        return False
    j = i - 1
    while j >= 0 and src[j].isspace():
        j -= 1
    if j < 0:
        return True
    if src[j] in _JSX_PREV_CHARS:
        return True
    k = j
    while k >= 0 and _IDENT_CHARS.match(src[k]):
        k -= 1
    return src[k + 1:j + 1] in _JSX_PREV_WORDS


class JsScanner:
    """Bracket-aware scanning over JS/TS/JSX text.

    `skip(i, closers)` walks forward from `i` and returns the index of the first character
    in `closers` found at bracket depth 0 (not consumed). A closing bracket that was never
    opened also stops the walk, so scanning an argument list stops at the call's `)`.
    Returns len(src) when nothing matches.
    """

    def __init__(self, src: str):
        self.src = src
        self.n = len(src)

    def skip(self, i: int, closers: str, on_jsx: Optional[Callable[[int], int]] = None) -> int:
        src, n = self.src, self.n
        depth = 0
        while i < n:
            c = src[i]
            if depth == 0 and c in closers:
                return i
            if c == "'" or c == '"':
                i = self.skip_string(i)
                continue
            if c == "`":
                i = self.skip_template(i)
                continue
            if c == "/" and i + 1 < n:
                nxt = src[i + 1]
                if nxt == "/":
                    j = src.find("\n", i)
                    i = n if j < 0 else j
                    continue
                if nxt == "*":
                    j = src.find("*/", i + 2)
                    i = n if j < 0 else j + 2
                    continue
                if self._regex_can_start(i):
                    i = self.skip_regex(i)
                    continue
            if c in "([{":
                depth += 1
            elif c in ")]}":
                if depth == 0:
                    return i
                depth -= 1
            elif c == "<" and jsx_can_start(src, i):
                j = (on_jsx or self.skip_jsx)(i)
                if j > i:
                    i = j
                    continue
            i += 1
        return n

    def match_bracket(self, open_idx: int) -> int:
        """Index of the bracket closing the one at open_idx (len(src) if unbalanced)."""
        closer = {"(": ")", "[": "]", "{": "}"}[self.src[open_idx]]
        return self.skip(open_idx + 1, closer)

    def skip_string(self, i: int) -> int:
        q = self.src[i]
        j = i + 1
        while j < self.n:
            c = self.src[j]
            if c == "\\":
                j += 2
                continue
            if c == q or c == "\n":
                return j + 1
            j += 1
        return self.n

    def skip_template(self, i: int) -> int:
        j = i + 1
        while j < self.n:
            c = self.src[j]
            if c == "\\":
                j += 2
                continue
            if c == "`":
                return j + 1
            if c == "$" and self.src.startswith("${", j):
                j = self.skip(j + 2, "}") + 1
                continue
            j += 1
        return self.n

    def skip_regex(self, i: int) -> int:
        j = i + 1
        in_class = False
        while j < self.n:
            c = self.src[j]
            if c == "\\":
                j += 2
                continue
            if c == "\n":
                return j
            if c == "[":
                in_class = True
            elif c == "]":
                in_class = False
            elif c == "/" and not in_class:
                j += 1
                while j < self.n and self.src[j].isalpha():
                    j += 1
                return j
            j += 1
        return self.n

    def _regex_can_start(self, i: int) -> bool:
        j = i - 1
        while j >= 0 and self.src[j] in " \t":
            j -= 1
        if j < 0:
            return True
        c = self.src[j]
        if c in _REGEX_PREV_CHARS or c == "\n":
            return True
        k = j
        while k >= 0 and _IDENT_CHARS.match(self.src[k]):
            k -= 1
        return self.src[k + 1:j + 1] in ("return", "typeof", "case", "in", "of")

    def skip_jsx(self, i: int) -> int:
        """Skip one JSX element (or fragment) starting at `<`. Returns i when it isn't one."""
        src, n = self.src, self.n
        depth = 0
        j = i
        while j < n:
            c = src[j]
            if c == "<":
                if src.startswith("</", j):
                    k = src.find(">", j)
                    if k < 0:
                        return n
                    depth -= 1
                    j = k + 1
                    if depth <= 0:
                        return j
                    continue
                end, self_closing = self._skip_open_tag(j)
                if end is None:
                    if depth == 0:
                        return i
                    j += 1
                    continue
                j = end
                if not self_closing:
                    depth += 1
                elif depth == 0:
                    return j
                continue
            if c == "{" and depth > 0:
                j = self.skip(j + 1, "}") + 1
                continue
            if depth == 0:
                return j
            j += 1
        return n

    def _skip_open_tag(self, i: int) -> Tuple[Optional[int], bool]:
        src, n = self.src, self.n
        if src.startswith("<>", i):
            return i + 2, False
        m = _TAG_NAME_RE.match(src, i + 1)
        if not m:
            return None, False
        j = m.end()
        while j < n:
            c = src[j]
            if c == "'" or c == '"':
                j = self.skip_string(j)
            elif c == "{":
                j = self.skip(j + 1, "}") + 1
            elif src.startswith("/>", j):
                return j + 2, True
            elif c == ">":
                return j + 1, False
            elif c == "<":
                return None, False
            else:
                j += 1
        return None, False


_TAG_NAME_RE = re.compile(r"[A-Za-z_$][\w$.:-]*")


def skip_ws(src: str, i: int) -> int:
    n = len(src)
    while i < n and src[i].isspace():
        i += 1
    return i


# ----------------------------- literals / objects -----------------------------

_STRING_LITERAL_RE = re.compile(r"""^(['"])(.*)\1$""", re.DOTALL)
_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")


def js_literal(expr: str) -> Optional[str]:
    """Plain literal text of a JS expression (`"x"`, `'x'`, `` `x` ``, 42, true), else None."""
    s = (expr or "").strip()
    m = _STRING_LITERAL_RE.match(s)
    if m:
        return m.group(2)
    if len(s) >= 2 and s[0] == "`" and s[-1] == "`" and "${" not in s:
        return s[1:-1]
    if _NUMBER_RE.match(s) or s in ("true", "false"):
        return s
    return None


def object_entries(text: str) -> List[Tuple[str, Optional[str]]]:
    """Top-level `key: value` entries of an object literal / destructuring pattern.

    Accepts the text with or without the outer braces. Shorthand entries (`a`, `a = 1`)
    yield their default (or None) as value.
    """
    s = text.strip()
    if s.startswith("{"):
        s = s[1:]
        if s.rstrip().endswith("}"):
            s = s.rstrip()[:-1]
    scanner = JsScanner(s)
    out: List[Tuple[str, Optional[str]]] = []
    i = 0
    while i < len(s):
        end = scanner.skip(i, ",")
        part = s[i:end].strip()
        i = end + 1
        if not part or part.startswith("..."):
            continue
        m = re.match(r"""^(?:async\s+)?(?:get\s+|set\s+)?(['"]?)([\w$-]+)\1\s*(\??)\s*(?:([:=])\s*(.*))?$""", part, re.DOTALL)
        if not m:
            # method shorthand: save() { ... }
            m2 = re.match(r"^(?:async\s+)?([\w$]+)\s*\(", part)
            if m2:
                out.append((m2.group(1), part))
            continue
        out.append((m.group(2), m.group(5).strip() if m.group(5) is not None else None))
    return out


def infer_state_type(initial: Optional[str]) -> str:
    s = (initial or "").strip()
    if not s:
        return "string"
    if s in ("true", "false"):
        return "boolean"
    if _NUMBER_RE.match(s):
        return "number"
    if s.startswith("{"):
        return "object"
    if s.startswith("["):
        return "array"
    return "string"


# ----------------------------- text -----------------------------

_WS_RE = re.compile(r"\s+")


def clean_label(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace and drop trailing `:` / `*` markers; None if nothing is left."""
    if text is None:
        return None
    s = _WS_RE.sub(" ", html.unescape(text)).strip()
    s = s.rstrip(":*").strip()
    return s or None


def to_snake_case(text: Optional[str]) -> str:
    s = text or ""
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", s)
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    s = re.sub(r"[^A-Za-z0-9]+", "_", s).lower()
    s = re.sub(r"_+", "_", s)
    return s.strip("_")


def pascal_case(text: str) -> str:
    parts = re.split(r"[^A-Za-z0-9]+", text or "")
    return "".join(p[:1].upper() + p[1:] for p in parts if p) or "Component"


# ----------------------------- functions -----------------------------

@dataclass
class FoundFunction:
    name: str
    body: str
    is_async: bool = False


_FN_TAIL_RE = re.compile(r"\s*(async\b\s*)?(function\b\s*\*?\s*[\w$]*\s*)?(?:<[^<>()]*>)?\s*")
_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")
_TYPE_ONLY_BODY_RE = re.compile(r"void|any|unknown|never|boolean|string|number|Promise<.*>;?", re.DOTALL)


def read_function(src: str, i: int, *, scanner: Optional[JsScanner] = None,
                  allow_method: bool = False) -> Optional[Tuple[str, bool, int]]:
    """Parse `[async] (params) => body` / `[async] function (params) {}` starting at i.

    Returns (body, is_async, end_index) or None.
    """
    sc = scanner or JsScanner(src)
    m = _FN_TAIL_RE.match(src, i)
    is_async = bool(m.group(1))
    has_kw = bool(m.group(2))
    j = m.end()
    if j < len(src) and src[j] == "(":
        j = sc.match_bracket(j) + 1
    elif not has_kw and not allow_method:
        im = _IDENT_RE.match(src, j)
        if not im:
            return None
        j = im.end()
    else:
        return None
    j = skip_ws(src, j)
    if j < len(src) and src[j] == ":":
        # return type annotation
        k = j + 1
        while k < len(src):
            k = sc.skip(k, "{=")
            if k >= len(src) or src[k] == "{" or src.startswith("=>", k):
                break
            k += 1
        j = k
    j = skip_ws(src, j)
    arrow = src.startswith("=>", j)
    if arrow:
        j = skip_ws(src, j + 2)
    elif not (has_kw or allow_method):
        return None
    if j < len(src) and src[j] == "{":
        end = sc.match_bracket(j)
        return src[j:end + 1], is_async, min(end + 1, len(src))
    if not arrow:
        return None
    end = sc.skip(j, ";,\n")
    return src[j:end].strip(), is_async, end


def find_function(scope: str, name: str) -> Optional[FoundFunction]:
    """Locate the body of a function named `name` declared somewhere in `scope`.

    Covers `function name() {}`, `const name = (...) => ...` (optionally wrapped in
    useCallback), object / class methods `name() {}`, and `name: (...) => ...` /
    `name = (...) => ...` properties and class fields.
    """
    if not scope or not name:
        return None
    n = re.escape(name)
    sc = JsScanner(scope)
    patterns = (
        (re.compile(r"(?<![\w$.])(async\s+)?function\s*\*?\s*" + n + r"\s*(?=[(<])"), True),
        (re.compile(r"\b(?:const|let|var)\s+" + n + r"\s*(?::[^=\n]+)?=\s*(?:(?:React\.)?useCallback\s*\(\s*)?"), False),
        (re.compile(r"(?m)^[ \t]*(?:(?:public|private|protected|static|readonly)\s+)*" + n + r"\s*(?::[^=\n]+)?=(?![=>])\s*"), False),
        (re.compile(r"(?<![\w$.])" + n + r"\s*:\s*(?=(?:async\b|function\b|\(|[\w$]+\s*=>))"), False),
        (re.compile(r"(?m)^[ \t]*(?:(?:public|private|protected|static)\s+)*(async\s+)?" + n + r"\s*(?=\()"), True),
    )
    for rx, is_method in patterns:
        for m in rx.finditer(scope):
            prefix_async = bool(m.groups() and m.group(1))
            if is_method:
                parsed = _read_method(scope, m.end(), sc)
            else:
                parsed = read_function(scope, m.end(), scanner=sc)
            if parsed is None:
                continue
            body, is_async, _ = parsed
            if _TYPE_ONLY_BODY_RE.fullmatch(body.strip()):
                # a function *type* in an interface, not a definition
                continue
            return FoundFunction(name=name, body=body, is_async=is_async or prefix_async)
    return None


def _read_method(src: str, i: int, sc: JsScanner) -> Optional[Tuple[str, bool, int]]:
    j = skip_ws(src, i)
    if j < len(src) and src[j] == "<":
        j = src.find(">", j) + 1 or len(src)
    if j >= len(src) or src[j] != "(":
        return None
    j = sc.match_bracket(j) + 1
    j = skip_ws(src, j)
    if j < len(src) and src[j] == ":":
        j = sc.skip(j + 1, "{")
    if j >= len(src) or src[j] != "{":
        return None
    end = sc.match_bracket(j)
    return src[j:end + 1], False, end + 1


# ----------------------------- handler heuristics -----------------------------

_TRIVIAL_CALL_RE = re.compile(r"^(?:this\.)?set[A-Z][\w$]*\s*\((?P<args>.*)\)$", re.DOTALL)
_TRIVIAL_ASSIGN_RE = re.compile(
    r"^[\w$.\[\]'\"]+\s*=\s*(?:\$event|e|ev|evt|event)(?:\.(?:target|currentTarget))?(?:\.(?:value|checked))?$"
)


def strip_block(body: str) -> str:
    s = (body or "").strip()
    while s.startswith("{") and s.endswith("}"):
        s = s[1:-1].strip()
    while s.startswith("(") and s.endswith(")") and JsScanner(s).match_bracket(0) == len(s) - 1:
        s = s[1:-1].strip()
    return s.rstrip(";").strip()


def is_trivial_setter(body: Optional[str]) -> bool:
    """A single `setX(...)` call or a single `x = e.target.value` style assignment."""
    s = strip_block(body or "")
    if not s:
        return True
    sc = JsScanner(s)
    if sc.skip(0, ";") < len(s):
        return False
    m = _TRIVIAL_CALL_RE.match(s)
    if m and sc.skip(s.index("(") + 1, ")") == len(s) - 1:
        return True
    return bool(_TRIVIAL_ASSIGN_RE.match(s))


def extract_api_calls(body: Optional[str]) -> List[ApiCall]:
    """Best-effort HTTP call detection: fetch-like calls and `client.verb(url)` calls."""
    if not body:
        return []
    found: List[Tuple[int, ApiCall]] = []
    sc = JsScanner(body)
    for m in FETCH_CALL_RE.finditer(body):
        open_idx = body.find("(", m.start())
        end = sc.skip(open_idx + 1, ")")
        mm = METHOD_OPTION_RE.search(body, m.end(), end)
        method = mm.group("method").upper() if mm else "GET"
        found.append((m.start(), ApiCall(method=method, url=m.group("url"))))
    for m in VERB_CALL_RE.finditer(body):
        found.append((m.start(), ApiCall(method=m.group("method").upper(), url=m.group("url"))))
    found.sort(key=lambda t: t[0])
    return [c for _, c in found]


def member_tail(expr: str) -> Optional[str]:
    """`this.handleSave` / `props.onSave` / `save` -> last identifier; None for anything else."""
    m = re.fullmatch(r"\s*(?:[A-Za-z_$][\w$]*\s*\??\.\s*)*([A-Za-z_$][\w$]*)\s*", expr or "")
    return m.group(1) if m else None


def dict_get_ci(d: Dict[str, str], *keys: str) -> Optional[str]:
    """First present key, matching case-insensitively."""
    lowered = {k.lower(): v for k, v in d.items()}
    for k in keys:
        if k in d:
            return d[k]
        v = lowered.get(k.lower())
        if v is not None:
            return v
    return None
