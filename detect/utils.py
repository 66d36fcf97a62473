"""
detect.utils
URL 校验与时间戳等小工具。
"""

from __future__ import annotations

import time
from urllib.parse import urlparse

from .errors import INVALID_URL, ProbeFailed


def validate_url(url: str) -> None:
    """校验 URL（仅允许 http/https/file），非法则抛 ProbeFailed。"""
    parsed = urlparse(url or "")
    if parsed.scheme == "file" and parsed.path:
        return
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ProbeFailed(
            code=INVALID_URL,
            stage="init",
            message=f"unsupported URL: {url!r} (expected http:// or https://)",
            url=url,
        )


def now_ms() -> int:
    return int(time.time() * 1000)
