"""
基于工具提案生成浏览器端处理器代码（模板为基线，LLM 可选）。

用法：
  body = generate_handler(proposal)                      # 模板，无网络
  body = generate_handler(proposal, backend=OpenAIBackend())  # LLM，失败或缺 return 时回退模板
  text = render_module(proposals, bodies, fmt="iife")    # 注册到 window.mcp 的脚本

行为：
- 选择器优先取 selector_fallback（运行时对齐后的策略列表），否则按源码属性推导；
- 缓存命中直接返回（skill.cache），新生成的代码立即写回缓存；
- 产出的处理器只使用 FRAMEWORK_HELPERS 里定义的 DOM 辅助函数。
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional

from analyze.types import UIElement

from .args_schema import schema_field_keys
from .build import ToolProposal
from .cache import HandlerCache, get_cached_handler, set_cached_handler
from .llm_client import NoneBackend
from .locators import attr_selector


FRAMEWORK_HELPERS = r"""
function __afcFind(selectors) {
  for (const sel of selectors) {
    try {
      const el = document.querySelector(sel);
      if (el) return el;
    } catch (e) { /* not a CSS selector */ }
  }
  throw new Error('Element not found matching any of: ' + selectors.join(', '));
}

function __afcSetValue(selectors, value) {
  const el = __afcFind(selectors);
  const proto = el instanceof HTMLTextAreaElement ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
  const setter = Object.getOwnPropertyDescriptor(proto, 'value')?.set;
  if (setter) setter.call(el, value); else el.value = value;
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
}

function __afcSetChecked(selectors, checked) {
  const el = __afcFind(selectors);
  const setter = Object.getOwnPropertyDescriptor(HTMLInputElement.prototype, 'checked')?.set;
  if (setter) setter.call(el, !!checked); else el.checked = !!checked;
  el.dispatchEvent(new Event('change', { bubbles: true }));
}

function __afcSetSelect(selectors, value) {
  const el = __afcFind(selectors);
  el.value = value;
  el.dispatchEvent(new Event('change', { bubbles: true }));
}

function __afcClick(selectors) {
  __afcFind(selectors).click();
}
"""

SYSTEM_PROMPT = "You are a precise code generator. Output only the requested code, no markdown fences, no explanation."


def selector_list(el: UIElement) -> List[str]:
    """CSS selectors to try, in order, for one element."""
    out: List[str] = []
    if el.selector_fallback:
        for s in el.selector_fallback:
            if s.strategy == "label":
                out.append(attr_selector("aria-label", s.value))
                out.append(attr_selector("placeholder", s.value))
            elif s.strategy != "role":
                out.append(s.value)
    else:
        if el.id:
            out.append(attr_selector("id", el.id))
        for attr in ("data-testid", "data-mcp"):
            if el.attributes.get(attr):
                out.append(attr_selector(attr, el.attributes[attr]))
        if el.name:
            out.append(f"{el.tag}{attr_selector('name', el.name)}")
        if el.aria_label:
            out.append(attr_selector("aria-label", el.aria_label))
    if not out:
        out.append(f'{el.tag}[type="{el.input_type}"]' if el.input_type else el.tag)
    deduped: List[str] = []
    for s in out:
        if s not in deduped:
            deduped.append(s)
    return deduped


def build_set_call(el: UIElement, param_expr: str) -> str:
    sels = json.dumps(selector_list(el), ensure_ascii=False)
    if el.tag == "select":
        return f"__afcSetSelect({sels}, {param_expr})"
    if el.input_type in ("checkbox", "radio"):
        return f"__afcSetChecked({sels}, {param_expr})"
    return f"__afcSetValue({sels}, {param_expr})"


def build_submit_call(trigger: Optional[UIElement]) -> Optional[str]:
    if trigger is None:
        return None
    sels = selector_list(trigger)
    if trigger.tag == "form":
        sels = [f'{s} [type="submit"]' for s in sels]
    return f"__afcClick({json.dumps(sels, ensure_ascii=False)})"


def build_template_handler(tool: ToolProposal) -> str:
    """Handler body from static data alone (no LLM)."""
    inputs = tool.source_mapping.input_elements
    lines = ["try {"]
    for el, key in zip(inputs, schema_field_keys(inputs)):
        if key is None:
            continue
        ref = f"params[{json.dumps(key)}]"
        lines.append(f"  if ({ref} !== undefined) {build_set_call(el, ref)};")
    submit = build_submit_call(tool.source_mapping.trigger_element)
    if submit:
        if inputs:
            lines.append("  await new Promise((r) => setTimeout(r, 100));")
        lines.append(f"  {submit};")
    lines.append(f"  return {{ success: true, message: {json.dumps(tool.description, ensure_ascii=False)} }};")
    lines.append("} catch (err) {")
    lines.append("  return { success: false, message: err instanceof Error ? err.message : String(err) };")
    lines.append("}")
    return "\n".join(lines)


def build_handler_prompt(tool: ToolProposal, source_excerpt: Optional[str] = None) -> str:
    props = tool.input_schema.get("properties", {})
    fields = "\n".join(f"  - {k} ({v.get('type')}): {v.get('description', '')}" for k, v in props.items())
    inputs = tool.source_mapping.input_elements
    selectors = "\n".join(
        f"  - {json.dumps(selector_list(el), ensure_ascii=False)} -> {el.label or el.name or el.id or el.tag}"
        for el in inputs
    )
    trigger = tool.source_mapping.trigger_element
    trigger_sel = json.dumps(selector_list(trigger), ensure_ascii=False) if trigger is not None else "unknown"
    excerpt = f"Source context:\n```\n{source_excerpt[:800]}\n```\n" if source_excerpt else ""
    return (
        "You are generating a JavaScript handler for a browser-side agent tool.\n\n"
        f"Tool name: {tool.name}\n"
        f"Description: {tool.description}\n\n"
        f"Input parameters:\n{fields or '  (none)'}\n\n"
        f"Known DOM selectors (try in order):\n{selectors or '  (none)'}\n"
        f"Trigger selectors: {trigger_sel}\n\n"
        "Available DOM helpers (already defined in scope, each takes a selector array):\n"
        "- __afcSetValue(selectors, value)\n"
        "- __afcSetChecked(selectors, checked)\n"
        "- __afcSetSelect(selectors, value)\n"
        "- __afcClick(selectors)\n\n"
        f"{excerpt}"
        "Generate ONLY the body of `async (params) => { ... }`.\n"
        "1. Fill each input from params using the helpers.\n"
        "2. Then trigger the submit/action.\n"
        "3. Return { success: true, message: '...' } on success.\n"
        "4. Wrap in try/catch and return { success: false, message: err.message } on error.\n"
        "5. Use only the selectors listed above.\n"
        "Respond with the handler body only."
    )


def generate_handler(
    tool: ToolProposal,
    backend=None,
    *,
    cache: Optional[HandlerCache] = None,
    source_excerpt: Optional[str] = None,
    temperature: float = 0.1,
    verbose: bool = False,
) -> str:
    cached = get_cached_handler(tool, cache)
    if cached is not None:
        if verbose:
            print(f"[skill.codegen] cache hit: {tool.name}")
        return cached

    if backend is None or isinstance(backend, NoneBackend):
        body = build_template_handler(tool)
    else:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_handler_prompt(tool, source_excerpt)},
        ]
        try:
            body = backend.generate(messages, temperature=temperature).strip()
        except Exception as e:
            if verbose:
                print(f"[skill.codegen] LLM failed for {tool.name} ({type(e).__name__}: {e}); using template")
            body = build_template_handler(tool)
        else:
            if "return" not in body:
                if verbose:
                    print(f"[skill.codegen] LLM body for {tool.name} has no return; using template")
                body = build_template_handler(tool)

    set_cached_handler(tool, body, cache)
    return body


def _indent(text: str, pad: str) -> str:
    return "\n".join(pad + line if line else line for line in text.splitlines())


def render_module(proposals: List[ToolProposal], bodies: Dict[str, str], fmt: str = "iife") -> str:
    """Script that registers the given tools on `window.mcp` (iife) or exports them (esm)."""
    blocks: List[str] = []
    for p in proposals:
        tool = p.to_agent_tool()
        blocks.append(
            "{\n"
            f"  name: {json.dumps(tool['name'])},\n"
            f"  description: {json.dumps(tool['description'], ensure_ascii=False)},\n"
            f"  inputSchema: {json.dumps(tool['inputSchema'], ensure_ascii=False)},\n"
            "  handler: async (params) => {\n"
            f"{_indent(bodies.get(p.name) or build_template_handler(p), '    ')}\n"
            "  },\n"
            "}"
        )
    tools = "[\n" + ",\n".join(_indent(b, "  ") for b in blocks) + "\n]"
    if fmt == "esm":
        return f"{FRAMEWORK_HELPERS}\nexport const tools = {tools};\n"
    if fmt != "iife":
        raise ValueError(f"unknown output format: {fmt!r}")
    return (
        "(function () {\n"
        f"{_indent(FRAMEWORK_HELPERS.strip(), '  ')}\n\n"
        f"  const tools = {_indent(tools, '  ').lstrip()};\n"
        "  if (window.mcp && typeof window.mcp.registerTool === 'function') {\n"
        "    tools.forEach((t) => window.mcp.registerTool(t));\n"
        "  }\n"
        "})();\n"
    )
