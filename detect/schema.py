"""探针数据模型（Pydantic）。

作用：统一运行时探针输出的元素结构，供 skill.locators 做静态 ↔ 运行时对齐。
输入：页面内提取脚本返回的 dict 列表。
输出：ProbeElement / ProbeResult。
依赖：pydantic
"""

from __future__ import annotations
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class Bounds(BaseModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class ProbeElement(BaseModel):
    tag: str
    id: Optional[str] = None
    name: Optional[str] = Field(default=None, description="name 属性")
    input_type: Optional[str] = None
    accessible_name: str = Field(default="", description="计算得到的可访问名")
    role: Optional[str] = None
    selector: str = Field(description="结构化选择器：钩子属性 → 非随机 id → tag[name] → tag")
    bounds: Bounds = Field(default_factory=Bounds)
    attributes: Dict[str, str] = Field(default_factory=dict)
    is_interactive: bool = True


class ProbeResult(BaseModel):
    url: str
    elements: List[ProbeElement] = Field(default_factory=list)
    # epoch 毫秒
    timestamp: int
