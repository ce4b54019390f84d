"""
Configuration and environment loading for the LLM chess arena.

- Loads .env (python-dotenv), then settings.yml (YAML) from the repo root if present.
- YAML values take precedence over environment variables, which take precedence over defaults.
- Exposes SETTINGS with the gateway credentials and the match/tournament tuning knobs.
"""
from dataclasses import dataclass
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()


def _repo_root() -> str:
    # this file: src/llmchess_arena/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.environ.get("LLMCHESS_SETTINGS") or os.path.join(_repo_root(), "settings.yml"))


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None:
        return cast(env) if cast else env
    return default


def _first(*names: str, default: str = "") -> str:
    for name in names:
        val = _get(name, None)
        if val:
            return str(val)
    return default


@dataclass(frozen=True)
class Settings:
    # Auth / endpoint (OpenAI-compatible gateway)
    llm_api_key: str
    api_base: str

    # Model call knobs
    move_timeout_ms: int
    move_attempts: int
    temperature: float
    max_output_tokens: int

    # Match / tournament knobs
    max_ply: int
    tournament_max_ply: int
    default_clock_minutes: float
    max_concurrency: int


SETTINGS = Settings(
    llm_api_key=_first("LLMCHESS_LLM_API_KEY", "AI_GATEWAY_API_KEY", "AI_GATEWAY_TOKEN", "OPENAI_API_KEY"),
    api_base=_first("LLMCHESS_LLM_BASE_URL", "AI_GATEWAY_BASE_URL", default="https://ai-gateway.vercel.sh/v1"),
    move_timeout_ms=int(_get("MOVE_TIMEOUT_MS", 12000, cast=int)),
    move_attempts=int(_get("LLMCHESS_MOVE_ATTEMPTS", 3, cast=int)),
    temperature=float(_get("LLMCHESS_TEMPERATURE", 0.35, cast=float)),
    max_output_tokens=int(_get("LLMCHESS_MAX_OUTPUT_TOKENS", 8, cast=int)),
    max_ply=int(_get("LLMCHESS_MAX_PLY", 400, cast=int)),
    tournament_max_ply=int(_get("LLMCHESS_TOURNAMENT_MAX_PLY", 300, cast=int)),
    default_clock_minutes=float(_get("LLMCHESS_CLOCK_MINUTES", 3, cast=float)),
    max_concurrency=int(_get("LLMCHESS_MAX_CONCURRENCY", 4, cast=int)),
)
