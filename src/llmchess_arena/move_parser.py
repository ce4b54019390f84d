"""
Move parsing for free-form LLM replies.

Models are asked for a single long-algebraic token (e2e4, e7e8q) but often add
punctuation, quotes or a "Move:" label. parse_uci_move() strips that noise and
returns the square pair, or None when the text does not resolve to one.

Promotion is lenient: a fifth character that is not one of q/r/b/n is dropped
instead of rejecting the move. Tightening this changes strike statistics, so
keep it.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

RESIGN_TOKEN = "resign"
PROMOTION_PIECES = "qrbn"

SQUARE_RE = re.compile(r"^[a-h][1-8]$")
_NOISE_RE = re.compile(r"[^a-z0-9]")
_LABEL_RE = re.compile(r"^move")


@dataclass(frozen=True)
class ParsedMove:
    from_square: str
    to_square: str
    promotion: str | None = None

    @property
    def uci(self) -> str:
        return f"{self.from_square}{self.to_square}{self.promotion or ''}"


def is_square(value: str) -> bool:
    return bool(SQUARE_RE.match(value))


def clean_move_text(raw: str) -> str:
    cleaned = _NOISE_RE.sub("", (raw or "").strip().lower())
    return _LABEL_RE.sub("", cleaned)


def is_resignation(raw: str) -> bool:
    return (raw or "").strip().lower() == RESIGN_TOKEN


def parse_uci_move(raw: str) -> ParsedMove | None:
    """Parse raw model text into a ParsedMove, or None if it is not a square pair."""
    cleaned = clean_move_text(raw)
    if not cleaned or cleaned == RESIGN_TOKEN:
        return None
    if len(cleaned) < 4 or len(cleaned) > 5:
        return None

    from_sq, to_sq = cleaned[:2], cleaned[2:4]
    if not is_square(from_sq) or not is_square(to_sq):
        return None

    promotion = cleaned[4] if len(cleaned) == 5 else None
    if promotion and promotion not in PROMOTION_PIECES:
        promotion = None
    return ParsedMove(from_sq, to_sq, promotion)


__all__ = [
    "ParsedMove",
    "RESIGN_TOKEN",
    "clean_move_text",
    "is_resignation",
    "is_square",
    "parse_uci_move",
]
