"""
Prompt builder for LLM move requests.

build_move_prompt() is a pure function of the game state: the same inputs always
produce the same instruction string. The header is a template with placeholders
substituted per turn; optional lines (illegal-move correction, clock) are only
included when they apply. The last line always asks for a single short token.
"""
from __future__ import annotations

from typing import Dict, Sequence

from .events import Color, IllegalMoveSummary

HISTORY_CAP = 24  # keep prompts small

DEFAULT_TEMPLATE = """You are playing {COLOR} in a chess game.
Board (FEN): {FEN}
Previous moves ({HISTORY_LABEL}): {HISTORY}"""

STRICT_LINE = "Strict: only legal chess moves; 3 strikes forfeits."
CHAOS_LINE = "Chaos: illegal moves still execute, but they still count as strikes."
UCI_LINE = "Respond with exactly one move in long algebraic UCI (e.g., e2e4, g8f6, a7a8q)."
TIMED_SPEED_LINE = "Act fast: return only the move as a single UCI token (e.g., e2e4). Do not add commentary or code fences."
RESIGN_LINE = "If you want to resign, respond with: resign"
FINAL_INSTRUCTION = (
    "Output exactly one token and nothing else: a 4-5 character UCI move or the word resign. "
    "No commentary, quotes, or code blocks."
)


def render_custom_prompt(template: str, values: Dict[str, str]) -> str:
    """Replace known placeholders in the template. Unknown tokens are left intact."""
    rendered = template or ""
    for key, val in values.items():
        rendered = rendered.replace(f"{{{key}}}", val)
    return rendered


def _clock_line(clock_ms_remaining: int, initial_clock_ms: int | None) -> str:
    minutes = round((initial_clock_ms or 0) / 6000) / 10 or 3
    seconds = max(0, clock_ms_remaining // 1000)
    return (
        f"Timed mode: {minutes:g} minutes per side. Your clock: {seconds} seconds remaining. "
        "Respond immediately or you will lose on time."
    )


def build_move_prompt(
    fen: str,
    history: Sequence[str],
    active_color: Color,
    variant: str,
    clock_ms_remaining: int | None = None,
    initial_clock_ms: int | None = None,
    last_illegal: IllegalMoveSummary | None = None,
) -> str:
    tail = list(history)[-HISTORY_CAP:]
    label = f"last {len(tail)}" + (f" of {len(history)}" if len(history) > len(tail) else "")
    lines = [
        render_custom_prompt(DEFAULT_TEMPLATE, {
            "COLOR": active_color.capitalize(),
            "FEN": fen,
            "HISTORY_LABEL": label,
            "HISTORY": " ".join(tail) if tail else "none",
        })
    ]
    if last_illegal is not None:
        lines.append(
            f'Your previous move "{last_illegal.move or "unknown"}" was ILLEGAL: '
            f"{last_illegal.reason or 'violated chess rules'}. Do not repeat it; choose a legal move now."
        )
    timed = variant == "timed"
    if timed and clock_ms_remaining is not None:
        lines.append(_clock_line(clock_ms_remaining, initial_clock_ms))
    lines.append(CHAOS_LINE if variant == "chaos" else STRICT_LINE)
    lines.append(TIMED_SPEED_LINE if timed else UCI_LINE)
    lines.append(RESIGN_LINE)
    lines.append(FINAL_INSTRUCTION)
    return "\n".join(lines)
