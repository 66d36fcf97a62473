"""
analyze.parse_file
按扩展名分派到对应方言解析器（html / react / vue），统一返回 ComponentAnalysis。

用法：
  python -m analyze.parse_file path/to/Component.tsx
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Callable, Dict

from .constants import SUPPORTED_EXTENSIONS
from .errors import InstrumentError, ParseFailed, SourceNotFound, UnsupportedFileType, format_error
from .html_parser import parse_html
from .jsx_parser import parse_jsx
from .types import ComponentAnalysis
from .vue_parser import parse_vue


Parser = Callable[[str, str], ComponentAnalysis]

PARSERS: Dict[str, Parser] = {
    "html": parse_html,
    "react": parse_jsx,
    "vue": parse_vue,
}


def detect_framework(file_name: str) -> str:
    ext = os.path.splitext(file_name)[1].lower()
    framework = SUPPORTED_EXTENSIONS.get(ext)
    if framework is None:
        raise UnsupportedFileType(file_name, ext, sorted(SUPPORTED_EXTENSIONS))
    return framework


def parse_source(source: str, file_name: str) -> ComponentAnalysis:
    """Parse in-memory source text. The file name only selects the dialect and names things."""
    framework = detect_framework(file_name)
    if "\x00" in source:
        raise ParseFailed(file_name, "file looks binary (NUL bytes)")
    try:
        return PARSERS[framework](source, file_name)
    except InstrumentError:
        raise
    except (ValueError, IndexError, KeyError, RecursionError) as e:
        raise ParseFailed(file_name, f"{type(e).__name__}: {e}", original=e) from e


def read_source(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError as e:
        raise SourceNotFound(path, original=e) from e
    except UnicodeDecodeError as e:
        raise ParseFailed(path, "file is not valid UTF-8 text", original=e) from e
    except OSError as e:
        raise SourceNotFound(path, original=e) from e


def parse_file(path: str) -> ComponentAnalysis:
    detect_framework(path)
    return parse_source(read_source(path), path)


def _cli() -> int:
    ap = argparse.ArgumentParser(description="Extract the interactive surface of a UI source file")
    ap.add_argument("path", help=".html / .htm / .tsx / .jsx / .vue file")
    args = ap.parse_args()
    try:
        analysis = parse_file(args.path)
    except InstrumentError as e:
        print(format_error(e))
        return 1
    print(json.dumps(analysis.to_dict(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(_cli())
