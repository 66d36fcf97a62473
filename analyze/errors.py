"""
analyze.errors
异常类型定义。

InstrumentError 是所有致命错误的统一封装：
- code: 机器可区分的错误码（UNSUPPORTED_TYPE/PARSE_FAILED/...）
- message: 人类可读信息
- suggestion: 可操作的修复建议（CLI 展示用）
"""

from dataclasses import dataclass
from typing import Iterable, Optional


NO_INSTRUMENTABLE_ELEMENTS = "NO_ELEMENTS"


@dataclass
class InstrumentError(Exception):
    """分析流程致命错误。

    code: 错误码
    message: 人类可读的错误信息
    suggestion: 可选，修复建议
    file_name: 可选，出错的源文件
    original: 可选，原始异常对象
    """

    code: str
    message: str
    suggestion: Optional[str] = None
    file_name: Optional[str] = None
    original: Optional[Exception] = None

    def __str__(self) -> str:  # pragma: no cover
        base = f"[{self.code}] {self.message}"
        if self.file_name:
            base += f" (file={self.file_name})"
        return base


class UnsupportedFileType(InstrumentError):
    def __init__(self, file_name: str, ext: str, supported: Iterable[str]) -> None:
        exts = ", ".join(supported)
        super().__init__(
            code="UNSUPPORTED_TYPE",
            message=f'File type "{ext or "(none)"}" is not supported.',
            suggestion=f"Supported types: {exts}",
            file_name=file_name,
        )


class ParseFailed(InstrumentError):
    def __init__(self, file_name: str, detail: str, original: Optional[Exception] = None) -> None:
        super().__init__(
            code="PARSE_FAILED",
            message=f"Could not parse {file_name}: {detail}",
            suggestion="Make sure the file contains valid .html, .tsx, .jsx or .vue source code.",
            file_name=file_name,
            original=original,
        )


class SourceNotFound(InstrumentError):
    def __init__(self, path: str, original: Optional[Exception] = None) -> None:
        super().__init__(
            code="FILE_NOT_FOUND",
            message=f"Could not read file: {path}",
            suggestion="Check the path and try again.",
            file_name=path,
            original=original,
        )


class ConfigInvalid(InstrumentError):
    def __init__(self, source: str, detail: str, original: Optional[Exception] = None) -> None:
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Invalid configuration in {source}: {detail}",
            suggestion="Fix or remove the offending keys; every field is optional.",
            file_name=source,
            original=original,
        )


def no_elements_message(file_name: str) -> str:
    """空结果的用户提示（不是错误）。"""
    return (
        f"No forms, buttons, or interactive elements found in {file_name}. "
        "Nothing went wrong; try pointing at a specific page or form component."
    )


def format_error(err: Exception) -> str:
    """将异常格式化为 CLI 展示文本（带修复建议）。"""
    if isinstance(err, InstrumentError):
        out = f"\n✖ {err.message}"
        if err.suggestion:
            out += f"\n  → {err.suggestion}"
        return out
    suggestion = getattr(err, "suggestion", None)
    out = f"\n✖ {err}"
    if suggestion:
        out += f"\n  → {suggestion}"
    return out
