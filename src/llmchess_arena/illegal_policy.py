"""Strike bookkeeping and human-readable rejection reasons for illegal moves."""
from __future__ import annotations

from .events import COLORS, Color
from .move_parser import ParsedMove
from .referee import Referee

STRIKE_LIMIT = 3

UNPARSEABLE = "Could not parse move text"
RULES_VIOLATION = "Move violates chess rules (blocked/check/etc.)"
GENERIC_ILLEGAL = "Illegal move in current position"
EMPTY_MOVE = "Model returned an empty move"


def enforces_strike_limit(variant: str) -> bool:
    # chaos tracks strikes for display only
    return variant in ("strict", "timed")


class StrikeTracker:
    """Consecutive illegal attempts per color; a legal move resets that color to zero."""

    def __init__(self):
        self._counts: dict[str, int] = {c: 0 for c in COLORS}

    def record(self, color: Color) -> int:
        self._counts[color] += 1
        return self._counts[color]

    def reset(self, color: Color) -> None:
        self._counts[color] = 0

    def count(self, color: Color) -> int:
        return self._counts[color]

    def reached(self, color: Color, limit: int = STRIKE_LIMIT) -> bool:
        return self._counts[color] >= limit

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)


def describe_rejection(referee: Referee, parsed: ParsedMove | None, color: Color) -> str:
    """Explain why the rules library refused a move, for the status event and the next prompt."""
    if parsed is None:
        return UNPARSEABLE
    piece = referee.piece_at(parsed.from_square)
    if piece is None:
        return f"No piece on {parsed.from_square}"
    piece_color = "white" if piece.color else "black"
    if piece_color != color:
        return f"Piece on {parsed.from_square} is not {color}"
    if not referee.has_legal_move(parsed):
        return RULES_VIOLATION
    return GENERIC_ILLEGAL
