from __future__ import annotations

"""
skill.args_schema

从工具候选的输入元素推导 input schema（JSON Schema object 形状）：
- 字段名：name → id → 绑定的状态变量 → label，统一转成小写 snake；
- 类型：按 input 子类型查表（number/range → number，checkbox → boolean，其余 → string）；
- required：元素带 "required" 校验标记时必填；
- <select>：描述追加 "(select field)"，有 option 时给出 enum。

同名字段不覆盖，依次加后缀 _2/_3。
"""

from typing import Any, Dict, List, Optional

from analyze.types import UIElement
from analyze.utils import to_snake_case


INPUT_TYPE_TO_JSON = {
    "number": "number",
    "range": "number",
    "checkbox": "boolean",
    "date": "string",
    "datetime-local": "string",
    "time": "string",
    "month": "string",
    "week": "string",
}


def json_type(el: UIElement) -> str:
    return INPUT_TYPE_TO_JSON.get((el.input_type or "text").lower(), "string")


def raw_field_name(el: UIElement) -> Optional[str]:
    for v in (el.name, el.id, el.state_binding.variable if el.state_binding else None, el.label):
        if v:
            return v
    return None


def field_key(el: UIElement) -> Optional[str]:
    """Normalized identifier of an input element (None when nothing usable)."""
    raw = raw_field_name(el)
    key = to_snake_case(raw) if raw else ""
    return key or None


def describe_field(el: UIElement) -> str:
    desc = el.label or el.aria_label
    if el.tag == "select":
        return f"{desc} (select field)" if desc else "select field"
    return desc or f"{el.input_type or el.tag} field"


def unique_key(key: str, taken: Dict[str, Any]) -> str:
    if key not in taken:
        return key
    n = 2
    while f"{key}_{n}" in taken:
        n += 1
    return f"{key}_{n}"


def build_input_schema(inputs: List[UIElement]) -> Dict[str, Any]:
    properties: Dict[str, Dict[str, Any]] = {}
    required: List[str] = []
    for el in inputs:
        key = field_key(el)
        if key is None:
            continue
        key = unique_key(key, properties)
        prop: Dict[str, Any] = {"type": json_type(el), "description": describe_field(el)}
        if el.tag == "select" and el.options:
            prop["enum"] = list(el.options)
        properties[key] = prop
        if el.is_required:
            required.append(key)
    return {"type": "object", "properties": properties, "required": required}


def schema_field_keys(inputs: List[UIElement]) -> List[Optional[str]]:
    """Per-input schema keys, aligned with `inputs` (None for inputs without a key)."""
    taken: Dict[str, Any] = {}
    out: List[Optional[str]] = []
    for el in inputs:
        key = field_key(el)
        if key is not None:
            key = unique_key(key, taken)
            taken[key] = True
        out.append(key)
    return out
