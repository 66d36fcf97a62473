"""
skill.cache

生成的处理器代码的增量缓存：键 = 工具“交互面”的哈希。

哈希只覆盖：组件名；每个输入元素的 tag/name/type/label/是否绑定状态；
触发元素的 tag/name/label；处理器名/事件；以及 input schema。
样式、布局、源码位置都不参与，所以改 class 名不会让缓存失效。

磁盘格式：{hash: {"handlerBody": str, "timestamp": epoch_ms}}，无淘汰策略。
首次访问时懒加载，之后常驻内存；每次写入立即落盘（临时文件 + os.replace）。
文件损坏或不可读时按空缓存处理。单写者假设：多进程并发写不加锁。
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import time
from typing import Any, Dict, Optional

from .build import ToolProposal


CACHE_DIR = ".afc_instrument"
CACHE_FILE = "cache.json"


def surface_signature(tool: ToolProposal) -> Dict[str, Any]:
    sm = tool.source_mapping
    t = sm.trigger_element
    h = sm.handler
    return {
        "c": sm.component_name,
        "e": [
            {"t": el.tag, "n": el.name, "i": el.input_type, "l": el.label, "s": el.state_binding is not None}
            for el in sm.input_elements
        ],
        "t": {"t": t.tag, "n": t.name, "l": t.label} if t is not None else None,
        "h": {"n": h.name, "ev": h.event} if h is not None else None,
        "schema": tool.input_schema,
    }


def hash_interactive_surface(tool: ToolProposal) -> str:
    payload = json.dumps(surface_signature(tool), sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class HandlerCache:
    """hash → handler body store. `path=None` keeps everything in memory (tests)."""

    def __init__(self, path: Optional[str] = None, *, verbose: bool = False) -> None:
        self.path = path
        self.verbose = verbose
        self._entries: Optional[Dict[str, Dict[str, Any]]] = None

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._entries is not None:
            return self._entries
        self._entries = {}
        if not self.path or not os.path.exists(self.path):
            return self._entries
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            if self.verbose:
                print(f"[skill.cache] unreadable cache {self.path} ({type(e).__name__}); starting empty")
            return self._entries
        if not isinstance(data, dict):
            if self.verbose:
                print(f"[skill.cache] malformed cache {self.path}; starting empty")
            return self._entries
        for k, v in data.items():
            if isinstance(v, dict) and isinstance(v.get("handlerBody"), str):
                self._entries[k] = v
        if self.verbose:
            print(f"[skill.cache] loaded {len(self._entries)} entries from {self.path}")
        return self._entries

    def _save(self) -> None:
        if not self.path:
            return
        folder = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(folder, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".cache-", suffix=".json", dir=folder)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._entries, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def __len__(self) -> int:
        return len(self._load())

    def get(self, key: str) -> Optional[str]:
        entry = self._load().get(key)
        return entry["handlerBody"] if entry else None

    def set(self, key: str, handler_body: str) -> None:
        self._load()[key] = {"handlerBody": handler_body, "timestamp": int(time.time() * 1000)}
        self._save()

    def clear(self) -> None:
        self._entries = {}
        self._save()


_default_cache: Optional[HandlerCache] = None


def default_cache_path() -> str:
    return os.path.join(os.getcwd(), CACHE_DIR, CACHE_FILE)


def get_default_cache() -> HandlerCache:
    """Process-wide cache under ./.afc_instrument/cache.json (created on first use)."""
    global _default_cache
    if _default_cache is None:
        _default_cache = HandlerCache(default_cache_path())
    return _default_cache


def get_cached_handler(tool: ToolProposal, cache: Optional[HandlerCache] = None) -> Optional[str]:
    store = cache if cache is not None else get_default_cache()
    return store.get(hash_interactive_surface(tool))


def set_cached_handler(tool: ToolProposal, handler_body: str, cache: Optional[HandlerCache] = None) -> None:
    store = cache if cache is not None else get_default_cache()
    store.set(hash_interactive_surface(tool), handler_body)
