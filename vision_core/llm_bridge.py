from __future__ import annotations
import json, os, pathlib, time
from dataclasses import dataclass
from typing import Any, Dict, List
import logging

from openai import AzureOpenAI

log = logging.getLogger(__name__)

AZURE_ENV_KEYS: Dict[str, str] = {
    "endpoint": "AZURE_OPENAI_ENDPOINT",
    "api_key": "AZURE_OPENAI_API_KEY",
    "api_version": "AZURE_OPENAI_API_VERSION",
    "deployment": "AZURE_OPENAI_DEPLOYMENT",
}
LLM_LOG_PATH = "llm_career_log.jsonl"


class LLMUnavailable(RuntimeError):
    """No LLM backend is configured or the call failed."""


@dataclass(frozen=True)
class AzureSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str


def _settings_from_json(path: str = ".azure_config.json") -> Dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists():
        return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return {k: str(j.get(k, "")) for k in AZURE_ENV_KEYS}


def azure_settings() -> AzureSettings:
    cfg = {k: os.getenv(env, "") for k, env in AZURE_ENV_KEYS.items()}
    if not all(cfg.values()):
        for k, v in _settings_from_json().items():
            if not cfg.get(k):
                cfg[k] = v
    missing = [AZURE_ENV_KEYS[k] for k, v in cfg.items() if not v]
    if missing:
        raise LLMUnavailable(f"Azure OpenAI not configured. Missing: {', '.join(missing)}")
    return AzureSettings(**cfg)


def azure_configured() -> bool:
    try:
        azure_settings()
    except LLMUnavailable:
        return False
    return True


def backend_in_use() -> str:
    b = (os.getenv("LLM_BACKEND") or "").lower()
    return b if b == "azure" else "none"


def azure_client(s: AzureSettings | None = None) -> AzureOpenAI:
    s = s or azure_settings()
    return AzureOpenAI(azure_endpoint=s.endpoint, api_key=s.api_key, api_version=s.api_version)


def _log_call(kind: str, prompt: str, reply: str, t0: float, error: str | None = None) -> None:
    entry = {
        "ts": round(time.time(), 3),
        "kind": kind,
        "backend": backend_in_use(),
        "prompt": prompt[:800],
        "reply": reply[:1200],
        "error": error,
        "rt_ms": int((time.time() - t0) * 1000),
    }
    try:
        with open(LLM_LOG_PATH, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except OSError as exc:
        log.debug("llm log write failed: %s", exc)


def complete(
    system: str,
    user: str,
    *,
    kind: str = "completion",
    temperature: float = 0.7,
    max_tokens: int = 1000,
    top_p: float = 1.0,
) -> str:
    """Single-turn chat completion against the configured deployment."""
    if backend_in_use() != "azure":
        raise LLMUnavailable("LLM backend disabled (set LLM_BACKEND=azure)")
    t0 = time.time()
    s = azure_settings()
    try:
        resp = azure_client(s).chat.completions.create(
            model=s.deployment,
            messages=[{"role": "system", "content": system}, {"role": "user", "content": user}],
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
        )
    except Exception as exc:
        _log_call(kind, user, "", t0, error=str(exc))
        raise LLMUnavailable(str(exc)) from exc
    content = (resp.choices[0].message.content if resp.choices else None) or ""
    _log_call(kind, user, content, t0)
    if not content.strip():
        raise LLMUnavailable("No response generated from model")
    return content


def status() -> Dict[str, Any]:
    backend = backend_in_use()
    configured = backend == "azure" and azure_configured()
    return {
        "backend": backend,
        "status": "configured" if configured else "missing_configuration",
    }


__all__: List[str] = [
    "LLMUnavailable", "AzureSettings", "azure_settings", "azure_configured",
    "backend_in_use", "azure_client", "complete", "status",
]
