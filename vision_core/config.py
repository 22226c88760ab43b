from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


QUESTION_TIME_LIMIT_S: float = 30.0
TIMEOUT_ANSWER: str = "timeout"
CANT_SEE_ANSWER: str = "can't see"
CANT_SEE_PHRASES: tuple[str, ...] = ("can't see", "cannot see", "can not see", "nothing", "none", "")

NORMAL_STANDARD_MIN: int = 5
DEFICIENT_STANDARD_MIN: int = 4
NORMAL_VISIBLE_MIN: int = 6
PATTERN_MAX: int = 3
CANT_SEE_MIN: int = 3
BORDERLINE_MISSED: tuple[int, int] = (1, 3)
SEVERITY_MILD_MAX_PCT: float = 30.0
SEVERITY_MODERATE_MAX_PCT: float = 60.0

CONFIDENCE_INVALID: int = 0
CONFIDENCE_NORMAL: int = 95
CONFIDENCE_DEFICIENT: int = 85
CONFIDENCE_CANT_SEE: int = 75
CONFIDENCE_BORDERLINE: int = 60
CONFIDENCE_INCONCLUSIVE: int = 40

# Two historical readings of the confirmation and diagnostic nodes.
CANT_SEE_IS_PATTERN: bool = False
ABSENT_DIAGNOSTIC_TYPE: str = "general"

COMPLETE_MIN_ANSWERS: int = 17
RECENT_LIMIT: int = 10
ANALYTICS_RANGE_DAYS: int = 30

CAREER_ENABLED: bool = True
CAREER_LLM_ENABLED: bool = False
CAREER_TEMPERATURE: float = 0.7
CAREER_MAX_TOKENS: int = 2500
CHAT_MAX_TOKENS: int = 600

DEBUG_TRACE: bool = False

# // env overrides for staging/ops; defaults match the reference test.
QUESTION_TIME_LIMIT_S = _env_float("QUESTION_TIME_LIMIT_S", QUESTION_TIME_LIMIT_S)
CANT_SEE_IS_PATTERN = _env_bool("CANT_SEE_IS_PATTERN", CANT_SEE_IS_PATTERN)
ABSENT_DIAGNOSTIC_TYPE = os.getenv("ABSENT_DIAGNOSTIC_TYPE", ABSENT_DIAGNOSTIC_TYPE)
COMPLETE_MIN_ANSWERS = _env_int("COMPLETE_MIN_ANSWERS", COMPLETE_MIN_ANSWERS)
CAREER_ENABLED = _env_bool("CAREER_ENABLED", CAREER_ENABLED)
CAREER_LLM_ENABLED = _env_bool("CAREER_LLM_ENABLED", CAREER_LLM_ENABLED)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)


def _env_true(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes", "on")


def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("USE_LLM_CAREER"): cfg["CAREER_LLM_ENABLED"] = _env_true("USE_LLM_CAREER")
    if e.get("LLM_BACKEND"): cfg["LLM_BACKEND"] = e.get("LLM_BACKEND")
    for k in ("CANT_SEE_IS_PATTERN", "CAREER_ENABLED"):
        if e.get(k): cfg[k] = _env_true(k)
    if e.get("ABSENT_DIAGNOSTIC_TYPE"): cfg["ABSENT_DIAGNOSTIC_TYPE"] = e.get("ABSENT_DIAGNOSTIC_TYPE")
    if e.get("CAREER_TEMPERATURE"): cfg["CAREER_TEMPERATURE"] = _env_float("CAREER_TEMPERATURE", CAREER_TEMPERATURE)
    if e.get("CAREER_MAX_TOKENS"): cfg["CAREER_MAX_TOKENS"] = _env_int("CAREER_MAX_TOKENS", CAREER_MAX_TOKENS)
    return cfg
