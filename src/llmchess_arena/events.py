"""
Stream events and the terminal match result.

The match engine yields StatusEvent / MoveEvent / EndEvent in ply order; the
EndEvent is always last and appears exactly once per finished match. All
events are frozen so they can be handed to any consumer (console, HTTP stream,
tournament scheduler) without copying.

event_to_dict() renders the camelCase wire shape used by the NDJSON transport.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import ClassVar, Literal, Union

Color = Literal["white", "black"]
Winner = Literal["white", "black", "draw"]
Variant = Literal["strict", "chaos", "timed"]
Reason = Literal[
    "checkmate",
    "resignation",
    "illegal",
    "timeout",
    "stalemate",
    "fifty-move",
    "insufficient",
    "threefold",
    "max-move",
]

COLORS: tuple[Color, Color] = ("white", "black")
VARIANTS: tuple[str, ...] = ("strict", "chaos", "timed")
REASONS: tuple[str, ...] = (
    "checkmate",
    "resignation",
    "illegal",
    "timeout",
    "stalemate",
    "fifty-move",
    "insufficient",
    "threefold",
    "max-move",
)


def opponent_of(color: Color) -> Color:
    return "black" if color == "white" else "white"


@dataclass(frozen=True)
class Clocks:
    white_ms: int
    black_ms: int


@dataclass(frozen=True)
class IllegalMoveSummary:
    """The latest rejected attempt by one color, echoed back in the next prompt."""

    by: Color
    move: str
    reason: str
    strikes: int
    ply: int


@dataclass(frozen=True)
class MatchResult:
    winner: Winner
    reason: Reason
    moves: tuple[str, ...]
    pgn: str
    illegal_counts: dict[str, int]
    final_fen: str
    clocks: Clocks | None = None
    last_illegal_moves: dict[str, IllegalMoveSummary] = field(default_factory=dict)

    def __post_init__(self):
        if self.reason not in REASONS:
            raise ValueError(f"Unknown termination reason {self.reason!r}")
        if self.winner not in ("white", "black", "draw"):
            raise ValueError(f"Unknown winner {self.winner!r}")


@dataclass(frozen=True)
class StatusEvent:
    type: ClassVar[str] = "status"

    message: str
    illegal_counts: dict[str, int] | None = None
    clocks: Clocks | None = None
    illegal_move: IllegalMoveSummary | None = None


@dataclass(frozen=True)
class MoveEvent:
    type: ClassVar[str] = "move"

    move: str
    fen: str
    ply: int
    active_color: Color
    illegal_counts: dict[str, int]
    san: str | None = None
    display_move_number: int | None = None
    clocks: Clocks | None = None
    note: str | None = None
    elapsed_ms: int | None = None
    chaos: bool = False


@dataclass(frozen=True)
class EndEvent:
    type: ClassVar[str] = "end"

    result: MatchResult


StreamEvent = Union[StatusEvent, MoveEvent, EndEvent]


# ---------------- Wire format -----------------
def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _plain(value):
    if isinstance(value, Clocks):
        return {"whiteMs": value.white_ms, "blackMs": value.black_ms}
    if hasattr(value, "__dataclass_fields__"):
        return _record(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _record(obj) -> dict:
    out = {}
    for f in fields(obj):
        val = getattr(obj, f.name)
        if val is None:
            continue
        out[_camel(f.name)] = _plain(val)
    return out


def result_to_dict(result: MatchResult) -> dict:
    return _record(result)


def event_to_dict(event: StreamEvent) -> dict:
    """Render an event as a JSON-ready dict tagged with its `type`."""
    if isinstance(event, (StatusEvent, MoveEvent, EndEvent)):
        return {"type": event.type, **_record(event)}
    raise TypeError(f"Unknown stream event: {type(event).__name__}")
