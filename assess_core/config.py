from __future__ import annotations
import os, json, pathlib


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


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


QUESTION_COUNT_MIN: int = 5
QUESTION_COUNT_MAX: int = 50
QUESTION_COUNT_DEFAULT: int = 10

LLM_BACKEND: str = "openai"
GENERATION_MODEL: str = "gpt-4o"
EVALUATION_MODEL: str = "gpt-4o-mini"
LLM_TEMPERATURE: float = 0.7
EVALUATION_TEMPERATURE: float = 0.2
LLM_TIMEOUT: float = 120.0
LLM_LOG_PATH: str = "llm_call_log.jsonl"

PUBLIC_BASE_URL: str = "http://localhost:3000"
ALLOWED_ORIGINS: tuple[str, ...] = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)

NO_ANSWER_TEXT: str = "No answer"
SCORE_BANDS: tuple[tuple[float, str], ...] = (
    (80.0, "Excellent"),
    (60.0, "Good"),
    (40.0, "Fair"),
)
SCORE_BAND_FLOOR: str = "Needs improvement"

# // env overrides for staging/ops
QUESTION_COUNT_MIN = _env_int("QUESTION_COUNT_MIN", QUESTION_COUNT_MIN)
QUESTION_COUNT_MAX = _env_int("QUESTION_COUNT_MAX", QUESTION_COUNT_MAX)
QUESTION_COUNT_DEFAULT = _env_int("QUESTION_COUNT_DEFAULT", QUESTION_COUNT_DEFAULT)
LLM_BACKEND = _env_str("LLM_BACKEND", LLM_BACKEND).lower()
GENERATION_MODEL = _env_str("GENERATION_MODEL", GENERATION_MODEL)
EVALUATION_MODEL = _env_str("EVALUATION_MODEL", EVALUATION_MODEL)
LLM_TEMPERATURE = _env_float("LLM_TEMPERATURE", LLM_TEMPERATURE)
EVALUATION_TEMPERATURE = _env_float("EVALUATION_TEMPERATURE", EVALUATION_TEMPERATURE)
LLM_TIMEOUT = _env_float("LLM_TIMEOUT", LLM_TIMEOUT)
LLM_LOG_PATH = os.getenv("LLM_LOG_PATH", LLM_LOG_PATH)
PUBLIC_BASE_URL = _env_str("PUBLIC_BASE_URL", PUBLIC_BASE_URL).rstrip("/")
if os.getenv("ALLOWED_ORIGINS"):
    ALLOWED_ORIGINS = tuple(o.strip() for o in os.environ["ALLOWED_ORIGINS"].split(",") if o.strip())


def clamp_question_count(value: object) -> int:
    try:
        n = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return QUESTION_COUNT_DEFAULT
    return max(QUESTION_COUNT_MIN, min(QUESTION_COUNT_MAX, n))


def score_label(score: float) -> str:
    for floor, label in SCORE_BANDS:
        if score >= floor:
            return label
    return SCORE_BAND_FLOOR


def load_config() -> dict:
    """Merge ``config.json`` (if present) with environment overrides."""
    cfg: dict = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except Exception: cfg = {}
    e = os.environ
    cfg.setdefault("LLM_BACKEND", LLM_BACKEND)
    cfg.setdefault("GENERATION_MODEL", GENERATION_MODEL)
    cfg.setdefault("EVALUATION_MODEL", EVALUATION_MODEL)
    cfg.setdefault("LLM_TEMPERATURE", LLM_TEMPERATURE)
    cfg.setdefault("EVALUATION_TEMPERATURE", EVALUATION_TEMPERATURE)
    cfg.setdefault("LLM_TIMEOUT", LLM_TIMEOUT)
    if e.get("LLM_BACKEND"): cfg["LLM_BACKEND"] = e["LLM_BACKEND"].strip().lower()
    if e.get("GENERATION_MODEL"): cfg["GENERATION_MODEL"] = e["GENERATION_MODEL"]
    if e.get("EVALUATION_MODEL"): cfg["EVALUATION_MODEL"] = e["EVALUATION_MODEL"]
    for k in ("OPENAI_API_KEY", "OPENAI_BASE_URL"):
        if e.get(k): cfg[k] = e.get(k)
    return cfg


def get_backend(cfg: dict) -> str | None:
    b = (cfg.get("LLM_BACKEND") or "").lower().strip()
    return b if b in ("openai", "azure") else None
