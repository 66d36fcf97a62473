"""
端到端插桩流程：源码 → 结构分析 → （可选）运行时探针对齐 → 工具提案 → （可选）处理器代码。

用法（CLI）:
  python -m skill.instrument src/ContactForm.tsx
  python -m skill.instrument page.html --url http://localhost:5173 --json
  python -m skill.instrument a.tsx b.vue --write --llm none

行为：
- 不支持的扩展名直接失败（批量时在处理任何文件之前检查）；
- 单个文件解析失败不影响同批其他文件；
- 探针失败只记录原因，继续使用纯静态选择器；提供了 --url 时才做稳定性评估；
- 没有可插桩元素是一个正常结果（outcome=NO_ELEMENTS），不是错误。
"""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from analyze.errors import (
    NO_INSTRUMENTABLE_ELEMENTS,
    InstrumentError,
    ParseFailed,
    SourceNotFound,
    format_error,
    no_elements_message,
)
from analyze.parse_file import detect_framework, parse_source, read_source
from analyze.types import ComponentAnalysis
from detect.errors import ProbeFailed
from detect.probe_playwright import probe
from detect.schema import ProbeElement, ProbeResult

from .build import ToolProposal, build_proposals
from .cache import HandlerCache
from .codegen import generate_handler, render_module
from .config import InstrumentConfig, load_config, load_config_file
from .llm_client import detect_backend
from .locators import reconcile


OUTCOME_OK = "OK"
OUTCOME_ERROR = "ERROR"


@dataclass
class InstrumentResult:
    file_name: str
    outcome: str
    analysis: Optional[ComponentAnalysis] = None
    proposals: List[ToolProposal] = field(default_factory=list)
    message: Optional[str] = None
    probe: Optional[ProbeResult] = None
    probe_error: Optional[str] = None
    error: Optional[InstrumentError] = None

    @property
    def ok(self) -> bool:
        return self.outcome != OUTCOME_ERROR

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "file_name": self.file_name,
            "outcome": self.outcome,
            "proposals": [p.to_dict() for p in self.proposals],
        }
        if self.message:
            out["message"] = self.message
        if self.probe_error:
            out["probe_error"] = self.probe_error
        if self.error is not None:
            out["error"] = {"code": self.error.code, "message": self.error.message,
                            "suggestion": self.error.suggestion}
        return out


Prober = Callable[..., ProbeResult]


def instrument_source(
    source: str,
    file_name: str,
    *,
    config: Optional[InstrumentConfig] = None,
    probe_url: Optional[str] = None,
    probe_options: Optional[Dict[str, Any]] = None,
    prober: Prober = probe,
    verbose: bool = False,
) -> InstrumentResult:
    """Run the pipeline on in-memory source. Fatal errors (InstrumentError) propagate."""
    analysis = parse_source(source, file_name)
    if verbose:
        n = len(analysis.all_elements())
        print(f"[skill.instrument] {file_name}: framework={analysis.framework} components={len(analysis.components)} elements={n}")

    probe_result: Optional[ProbeResult] = None
    probe_error: Optional[str] = None
    if probe_url:
        try:
            probe_result = prober(probe_url, verbose=verbose, **(probe_options or {}))
        except ProbeFailed as e:
            probe_error = str(e)
            if verbose:
                print(f"[skill.instrument] probe failed, static selectors only: {e}")
        live: List[ProbeElement] = probe_result.elements if probe_result is not None else []
        reconcile(analysis.all_elements(), live, verbose=verbose)

    proposals = build_proposals(
        analysis,
        config=config,
        assess_stability_gate=probe_url is not None,
        verbose=verbose,
    )
    if not proposals:
        return InstrumentResult(
            file_name=file_name,
            outcome=NO_INSTRUMENTABLE_ELEMENTS,
            analysis=analysis,
            message=no_elements_message(os.path.basename(file_name)),
            probe=probe_result,
            probe_error=probe_error,
        )
    return InstrumentResult(
        file_name=file_name,
        outcome=OUTCOME_OK,
        analysis=analysis,
        proposals=proposals,
        probe=probe_result,
        probe_error=probe_error,
    )


def instrument_file(path: str, *, config: Optional[InstrumentConfig] = None, **kwargs) -> InstrumentResult:
    detect_framework(path)
    if config is None:
        config = load_config(os.path.dirname(os.path.abspath(path)))
    return instrument_source(read_source(path), path, config=config, **kwargs)


def instrument_files(paths: List[str], **kwargs) -> List[InstrumentResult]:
    """Batch mode: unsupported extensions fail up front; per-file read/parse failures are reported."""
    for p in paths:
        detect_framework(p)
    results: List[InstrumentResult] = []
    for p in paths:
        try:
            results.append(instrument_file(p, **kwargs))
        except (ParseFailed, SourceNotFound) as e:
            if kwargs.get("verbose"):
                print(f"[skill.instrument] {p}: {e.code}")
            results.append(InstrumentResult(file_name=p, outcome=OUTCOME_ERROR, message=e.message, error=e))
    return results


def output_path(source_path: str, config: InstrumentConfig) -> str:
    stem, _ = os.path.splitext(source_path)
    return stem + config.output.file_extension


def write_handlers(
    result: InstrumentResult,
    config: InstrumentConfig,
    *,
    backend=None,
    cache: Optional[HandlerCache] = None,
    include_unselected: bool = False,
    verbose: bool = False,
) -> Optional[str]:
    """Generate handler code for the selected proposals and write the tools module next to the source."""
    chosen = [p for p in result.proposals if include_unselected or p.selected]
    if not chosen:
        return None
    bodies = {p.name: generate_handler(p, backend, cache=cache, temperature=config.llm.temperature,
                                       verbose=verbose) for p in chosen}
    out = output_path(result.file_name, config)
    with open(out, "w", encoding="utf-8") as f:
        f.write(render_module(chosen, bodies, fmt=config.output.format))
    if verbose:
        print(f"[skill.instrument] wrote {len(chosen)} tool(s) -> {out}")
    return out


def _print_summary(result: InstrumentResult) -> None:
    print(f"\n{result.file_name}")
    if result.outcome == OUTCOME_ERROR and result.error is not None:
        print(format_error(result.error))
        return
    if result.outcome == NO_INSTRUMENTABLE_ELEMENTS:
        print(f"  ⚠ {result.message}")
        return
    if result.probe_error:
        print(f"  ⚠ runtime probe skipped: {result.probe_error}")
    for p in result.proposals:
        mark = "x" if p.selected else " "
        print(f"  [{mark}] {p.index}. {p.name} ({p.risk}) - {p.description}")
        if p.risk_reason:
            print(f"        risk: {p.risk_reason}")
        if p.is_stable is False:
            print(f"        unstable: {p.stability_reason}")


def _cli() -> int:
    ap = argparse.ArgumentParser(description="Propose agent tools for the interactive surface of UI source files")
    ap.add_argument("paths", nargs="+", help=".html / .htm / .tsx / .jsx / .vue files")
    ap.add_argument("--url", default=None, help="running instance to probe for live selectors")
    ap.add_argument("--setup-script", default=None, help="JS evaluated in the page before extraction")
    ap.add_argument("--timeout-ms", type=int, default=10000)
    ap.add_argument("--config", default=None, help="explicit config file (default: search upward)")
    ap.add_argument("--json", action="store_true", help="print results as JSON")
    ap.add_argument("--write", action="store_true", help="generate handlers and write the tools module")
    ap.add_argument("--all", action="store_true", help="with --write: include unselected tools")
    ap.add_argument("--llm", default=None, help="handler generation backend: none | openai")
    ap.add_argument("--model", default=None)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    try:
        config = load_config_file(args.config) if args.config else None
        probe_options = {"timeout_ms": args.timeout_ms, "setup_script": args.setup_script}
        results = instrument_files(args.paths, config=config, probe_url=args.url,
                                   probe_options=probe_options, verbose=args.verbose)
    except InstrumentError as e:
        print(format_error(e))
        return 1

    if args.write:
        backends: Dict[Tuple[Optional[str], Optional[str]], Any] = {}
        for r in results:
            if r.outcome != OUTCOME_OK:
                continue
            cfg = config or load_config(os.path.dirname(os.path.abspath(r.file_name)))
            key = (args.llm or cfg.llm.backend, args.model or cfg.llm.model)
            if key not in backends:
                try:
                    backends[key] = detect_backend(*key, verbose=args.verbose)
                except (RuntimeError, ValueError) as e:
                    print(f"\n✖ {e}")
                    return 1
            write_handlers(r, cfg, backend=backends[key], include_unselected=args.all, verbose=args.verbose)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=2))
    else:
        for r in results:
            _print_summary(r)
    return 0 if all(r.ok for r in results) else 1


if __name__ == "__main__":
    raise SystemExit(_cli())
