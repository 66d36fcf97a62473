"""
detect.errors
探针异常类型定义。

ProbeFailed 覆盖浏览器启动、导航、预置脚本与提取各阶段的失败；
调用方捕获后应继续使用纯静态分析结果。
"""

from dataclasses import dataclass
from typing import Optional


INVALID_URL = "INVALID_URL"
LAUNCH_ERROR = "LAUNCH_ERROR"
SESSION_ERROR = "SESSION_ERROR"
NAV_TIMEOUT = "NAV_TIMEOUT"
NAV_ERROR = "NAV_ERROR"
SETUP_SCRIPT_ERROR = "SETUP_SCRIPT_ERROR"
EXTRACT_ERROR = "EXTRACT_ERROR"


@dataclass
class ProbeFailed(Exception):
    """探针失败（可恢复）。

    code: 错误码（INVALID_URL/NAV_TIMEOUT 等）
    stage: 出错阶段（init/launch/session/navigate/setup/extract）
    message: 人类可读的错误信息
    url: 目标 URL
    original: 可选，原始异常对象
    """

    code: str
    stage: str
    message: str
    url: Optional[str] = None
    original: Optional[Exception] = None

    def __str__(self) -> str:
        base = f"[{self.code}@{self.stage}] {self.message}"
        if self.url:
            base += f" (url={self.url})"
        return base
