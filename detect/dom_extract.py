"""
detect.dom_extract
页面内执行的提取脚本（page.evaluate）。

返回 ProbeElement 形状的 dict 列表（键名为 snake_case）：
  - 跳过 display:none / visibility:hidden / opacity:0 的元素；
  - 跳过宽或高为 0 的元素（<form> 除外）；
  - 可访问名：aria-label → aria-labelledby → 按钮文本 → submit 的 value →
    label[for] → 外层 <label> → placeholder；
  - 角色：显式 role，否则按 tag + type 推断；
  - 结构化选择器：工具钩子 / 测试钩子属性 → 非随机 id → tag[name] → tag。
"""

from __future__ import annotations

from typing import List

from analyze.constants import TEST_HOOK_ATTRS, TOOL_HOOK_ATTRS

from .constants import CANDIDATE_SELECTOR

TOOL_HOOKS: List[str] = list(TOOL_HOOK_ATTRS)
TEST_HOOKS: List[str] = list(TEST_HOOK_ATTRS)

EXTRACT_JS = r"""
(opts) => {
  const out = [];
  const hooks = opts.toolHooks.concat(opts.testHooks);
  const q = (v) => String(v).replace(/\\/g, '\\\\').replace(/"/g, '\\"');
  const text = (el) => ((el && (el.innerText || el.textContent)) || '').trim();

  function structuralSelector(el) {
    for (const h of hooks) {
      if (el.hasAttribute(h)) return `[${h}="${q(el.getAttribute(h))}"]`;
    }
    const id = el.id;
    if (id && !/\d{4,}/.test(id) && !id.includes('radix-') && !id.includes(':')) {
      return /^[A-Za-z][\w-]*$/.test(id) ? `#${id}` : `[id="${q(id)}"]`;
    }
    const tag = el.tagName.toLowerCase();
    const name = el.getAttribute('name');
    if (name) return `${tag}[name="${q(name)}"]`;
    return tag;
  }

  function accessibleName(el, tag) {
    if (el.hasAttribute('aria-label')) return el.getAttribute('aria-label');
    if (el.hasAttribute('aria-labelledby')) {
      const ids = el.getAttribute('aria-labelledby').split(/\s+/).filter(Boolean);
      const parts = ids.map((i) => text(document.getElementById(i))).filter(Boolean);
      if (parts.length) return parts.join(' ');
    }
    if (tag === 'button' || el.getAttribute('role') === 'button') return text(el);
    if (tag === 'input' && ['submit', 'button', 'reset'].includes(el.type)) return el.value || '';
    if (el.id) {
      const lab = document.querySelector(`label[for="${q(el.id)}"]`);
      if (lab && text(lab)) return text(lab);
    }
    const wrap = el.closest('label');
    if (wrap && text(wrap)) return text(wrap);
    return el.getAttribute('placeholder') || '';
  }

  function inferRole(el, tag) {
    const explicit = el.getAttribute('role');
    if (explicit) return explicit;
    const type = (el.getAttribute('type') || 'text').toLowerCase();
    if (tag === 'button') return 'button';
    if (tag === 'input') {
      if (['submit', 'button', 'reset', 'image'].includes(type)) return 'button';
      if (['text', 'email', 'password', 'search', 'url', 'tel'].includes(type)) return 'textbox';
      if (type === 'checkbox' || type === 'radio') return type;
    }
    if (tag === 'select') return 'combobox';
    if (tag === 'textarea') return 'textbox';
    if (tag === 'form') return 'form';
    return tag;
  }

  document.querySelectorAll(opts.selector).forEach((el) => {
    if (!(el instanceof HTMLElement)) return;
    const tag = el.tagName.toLowerCase();
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0') return;
    const rect = el.getBoundingClientRect();
    if (tag !== 'form' && (rect.width === 0 || rect.height === 0)) return;

    const attributes = {};
    for (const a of Array.from(el.attributes)) attributes[a.name] = a.value;

    out.push({
      tag,
      id: el.id || null,
      name: el.getAttribute('name') || null,
      input_type: tag === 'input' ? el.type : null,
      accessible_name: (accessibleName(el, tag) || '').trim(),
      role: inferRole(el, tag),
      selector: structuralSelector(el),
      bounds: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
      attributes,
      is_interactive: tag !== 'form',
    });
  });
  return out;
}
"""


def extract_args() -> dict:
    """Argument object handed to EXTRACT_JS."""
    return {"selector": CANDIDATE_SELECTOR, "toolHooks": TOOL_HOOKS, "testHooks": TEST_HOOKS}
