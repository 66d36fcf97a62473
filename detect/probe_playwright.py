"""
Detect | 运行时探针（Python + Playwright）

接口：
    probe(url: str, *, headless=True, timeout_ms=10000, setup_script=None) -> ProbeResult

流程：
    1) 启动独立的 chromium 会话并打开新页面；
    2) goto(url, wait_until="load")，再固定等待 500ms 以便 React/Vue 完成客户端渲染；
    3) 可选：执行预置脚本（打开弹窗/推进多步流程），再等待 500ms；
    4) 在页面内执行 detect.dom_extract.EXTRACT_JS，得到可交互元素列表。

说明：
    - 无论成功或失败，浏览器都会在返回前关闭；
    - 所有失败统一封装为 ProbeFailed，由调用方决定是否退回纯静态结果；
    - 探针本身不做重试。
    - 需要浏览器内核：`python -m playwright install chromium`。
"""

from __future__ import annotations

import argparse
import json
from typing import List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright
from pydantic import ValidationError

from .constants import DEFAULT_TIMEOUT_MS, NAV_WAIT_UNTIL, SETTLE_MS
from .dom_extract import EXTRACT_JS, extract_args
from .errors import (
    EXTRACT_ERROR,
    LAUNCH_ERROR,
    NAV_ERROR,
    NAV_TIMEOUT,
    SESSION_ERROR,
    SETUP_SCRIPT_ERROR,
    ProbeFailed,
)
from .schema import ProbeElement, ProbeResult
from .utils import now_ms, validate_url


def _extract(page, url: str) -> List[ProbeElement]:
    try:
        raw = page.evaluate(EXTRACT_JS, extract_args())
    except PlaywrightError as e:
        raise ProbeFailed(EXTRACT_ERROR, "extract", f"extraction script failed: {e}", url, e) from e
    try:
        return [ProbeElement.model_validate(item) for item in (raw or [])]
    except ValidationError as e:
        raise ProbeFailed(EXTRACT_ERROR, "extract", f"unexpected extraction payload: {e}", url, e) from e


def _run_session(browser, url: str, timeout_ms: int, setup_script: Optional[str], settle_ms: int,
                 headless: bool, verbose: bool) -> List[ProbeElement]:
    context = browser.new_context()
    page = context.new_page()
    page.set_default_timeout(timeout_ms)
    if verbose:
        print(f"[detect.probe] goto {url} (timeout={timeout_ms}ms, headless={headless})")
    try:
        page.goto(url, wait_until=NAV_WAIT_UNTIL, timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        raise ProbeFailed(NAV_TIMEOUT, "navigate", f"navigation timed out after {timeout_ms}ms", url, e) from e
    except PlaywrightError as e:
        raise ProbeFailed(NAV_ERROR, "navigate", f"navigation failed: {e}", url, e) from e
    page.wait_for_timeout(settle_ms)

    if setup_script:
        try:
            page.evaluate(setup_script)
        except PlaywrightError as e:
            raise ProbeFailed(SETUP_SCRIPT_ERROR, "setup", f"setup script failed: {e}", url, e) from e
        page.wait_for_timeout(settle_ms)

    return _extract(page, url)


def probe(
    url: str,
    *,
    headless: bool = True,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    setup_script: Optional[str] = None,
    settle_ms: int = SETTLE_MS,
    verbose: bool = False,
) -> ProbeResult:
    """Render `url` and return its live interactive elements.

    Raises ProbeFailed on any failure, Playwright errors outside the staged calls
    included (code SESSION_ERROR); the browser is closed on every exit path.
    """
    validate_url(url)
    try:
        with sync_playwright() as p:
            try:
                browser = p.chromium.launch(headless=headless)
            except PlaywrightError as e:
                raise ProbeFailed(LAUNCH_ERROR, "launch", f"browser launch failed: {e}", url, e) from e
            try:
                elements = _run_session(browser, url, timeout_ms, setup_script, settle_ms, headless, verbose)
            finally:
                browser.close()
                if verbose:
                    print("[detect.probe] browser closed")
    except PlaywrightError as e:
        # errors outside the staged calls (driver start, new_context, waits)
        raise ProbeFailed(SESSION_ERROR, "session", f"browser session failed: {e}", url, e) from e

    if verbose:
        print(f"[detect.probe] elements={len(elements)}")
    return ProbeResult(url=url, elements=elements, timestamp=now_ms())


def probe_safely(url: str, *, verbose: bool = False, **kwargs) -> Optional[ProbeResult]:
    """probe() that reports failure as None (static results stay valid)."""
    try:
        return probe(url, verbose=verbose, **kwargs)
    except ProbeFailed as e:
        if verbose:
            print(f"[detect.probe] skipped: {e}")
        return None


def _cli() -> int:
    ap = argparse.ArgumentParser(description="Probe a running page for its interactive elements")
    ap.add_argument("url")
    ap.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
    ap.add_argument("--headed", action="store_true", help="show the browser window")
    ap.add_argument("--setup-script", default=None, help="JS evaluated before extraction")
    args = ap.parse_args()
    try:
        result = probe(args.url, headless=not args.headed, timeout_ms=args.timeout_ms,
                       setup_script=args.setup_script, verbose=True)
    except ProbeFailed as e:
        print(f"✖ {e}")
        return 1
    print(json.dumps(result.model_dump(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(_cli())
