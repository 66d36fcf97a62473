"""
LLM 客户端封装（OpenAI 兼容）。

环境变量（可写在 .env 中，由 python-dotenv 加载，不覆盖已存在的变量）：
- AFC_ENV_FILE: 指定 .env 路径（默认 CWD/.env）
- AFC_LLM_MODEL: 模型名（默认 gpt-4o-mini）
- AFC_LLM_API_KEY: API Key（缺省时回退 OPENAI_API_KEY）
- AFC_LLM_BASE_URL: 自定义 Base URL（可选，用于 OpenAI 兼容网关）
- AFC_LLM_MAX_RETRIES / AFC_LLM_RETRY_BASE_SEC / AFC_LLM_REQUEST_TIMEOUT: 健壮性参数

后端：
- NoneBackend：不发起任何调用，处理器代码完全走模板（基线，而非异常情况）
- OpenAIBackend：chat.completions + 指数退避重试
"""

from __future__ import annotations

import os
import time
from typing import Dict, List, Optional

from dotenv import load_dotenv


Message = Dict[str, str]

DEFAULT_MODEL = "gpt-4o-mini"
BACKENDS = ("none", "openai")


def _load_dotenv_if_needed() -> None:
    """加载 .env 到进程环境（AFC_ENV_FILE 优先，其次 CWD/.env）；不覆盖已有变量。"""
    explicit = os.environ.get("AFC_ENV_FILE", "").strip()
    if explicit:
        load_dotenv(explicit, override=False)
    else:
        load_dotenv(os.path.join(os.getcwd(), ".env"), override=False)


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


class LLMConfig:
    def __init__(self, model: Optional[str] = None) -> None:
        _load_dotenv_if_needed()
        self.model = model or os.environ.get("AFC_LLM_MODEL", "").strip() or DEFAULT_MODEL
        self.api_key = (os.environ.get("AFC_LLM_API_KEY", "") or os.environ.get("OPENAI_API_KEY", "")).strip()
        self.base_url = os.environ.get("AFC_LLM_BASE_URL", "").strip() or None
        self.max_retries = int(_env_float("AFC_LLM_MAX_RETRIES", 2))
        self.retry_base_sec = _env_float("AFC_LLM_RETRY_BASE_SEC", 1.5)
        self.request_timeout = _env_float("AFC_LLM_REQUEST_TIMEOUT", 60.0)

    def validate(self) -> None:
        if not self.api_key:
            raise RuntimeError("AFC_LLM_API_KEY (or OPENAI_API_KEY) is not set")


class NoneBackend:
    name = "none"

    def generate(self, messages: List[Message], *, temperature: float = 0.1,
                 max_tokens: Optional[int] = None) -> str:
        raise RuntimeError("the 'none' backend does not generate text; use the template handler")


class OpenAIBackend:
    name = "openai"

    def __init__(self, config: Optional[LLMConfig] = None, *, client=None, verbose: bool = False) -> None:
        self.config = config or LLMConfig()
        self.config.validate()
        self.verbose = verbose
        if client is None:
            from openai import OpenAI

            client = OpenAI(api_key=self.config.api_key, base_url=self.config.base_url)
        self.client = client

    def generate(self, messages: List[Message], *, temperature: float = 0.1,
                 max_tokens: Optional[int] = None) -> str:
        cfg = self.config
        if self.verbose:
            print(f"[llm] model={cfg.model} base_url={cfg.base_url or 'openai-default'}")
            print(f"[llm] prompt_chars={sum(len(m.get('content', '')) for m in messages)} temperature={temperature}")
        attempts = max(1, cfg.max_retries)
        err: Optional[Exception] = None
        for i in range(attempts):
            try:
                resp = self.client.chat.completions.create(
                    model=cfg.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=cfg.request_timeout,
                )
                text = (resp.choices[0].message.content or "").strip()
                if self.verbose:
                    print(f"[llm] completion_len={len(text)} attempt={i+1}")
                return text
            except Exception as e:
                err = e
                if i + 1 >= attempts:
                    break
                backoff = cfg.retry_base_sec * (2 ** i)
                if self.verbose:
                    print(f"[llm] error={type(e).__name__}: {e}; retry in {backoff:.1f}s …")
                time.sleep(backoff)
        assert err is not None
        raise err


def detect_backend(explicit: Optional[str] = None, model: Optional[str] = None, *, verbose: bool = False):
    """explicit 名称优先；否则有 API Key 用 openai，没有就用 none。"""
    if explicit:
        name = explicit.strip().lower()
        if name == "none":
            return NoneBackend()
        if name == "openai":
            return OpenAIBackend(LLMConfig(model), verbose=verbose)
        raise ValueError(f'unknown LLM backend "{explicit}" (valid: {", ".join(BACKENDS)})')
    cfg = LLMConfig(model)
    if cfg.api_key:
        return OpenAIBackend(cfg, verbose=verbose)
    return NoneBackend()


__all__ = ["LLMConfig", "NoneBackend", "OpenAIBackend", "detect_backend"]
