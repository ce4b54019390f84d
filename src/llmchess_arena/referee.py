"""
Referee: the rules-library collaborator for one match.

- Owns a python-chess Board and applies moves leniently (UCI square pair first, SAN second).
- Answers the questions the engine asks about a position: side to move, square occupant,
  legal moves, and which terminal condition (if any) the last move produced.
- Manages PGN headers, the result override and the termination comment for the game record.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

import chess
import chess.pgn

from .events import Color, Reason, Winner
from .move_parser import ParsedMove, parse_uci_move

RESULT_TOKENS = {"white": "1-0", "black": "0-1", "draw": "1/2-1/2"}


@dataclass(frozen=True)
class AppliedMove:
    uci: str
    san: str


class Referee:
    """Chess referee around a python-chess Board and PGN export."""

    def __init__(self, starting_fen: str | None = None):
        # Raises ValueError for a position string python-chess cannot parse.
        self.board = chess.Board(fen=starting_fen) if starting_fen else chess.Board()
        self._headers: dict[str, str] = {}
        self._result_override: Optional[str] = None
        self._termination_comment: Optional[str] = None

    # ---------------- Header / Result Management -----------------
    def set_headers(self, event: str = "LLM Chess Arena", site: str = "?", date: Optional[str] = None,
                    round_: str = "?", white: str = "?", black: str = "?") -> None:
        date = date or datetime.date.today().strftime("%Y.%m.%d")
        self._headers.update({
            "Event": event,
            "Site": site,
            "Date": date,
            "Round": round_,
            "White": white,
            "Black": black,
        })

    def set_result(self, winner: Winner, termination_reason: Optional[str] = None) -> None:
        self._result_override = RESULT_TOKENS[winner]
        if termination_reason:
            self._termination_comment = f"Termination: {termination_reason}"

    # ---------------- Position queries -----------------
    def fen(self) -> str:
        return self.board.fen()

    def side_to_move(self) -> Color:
        return "white" if self.board.turn == chess.WHITE else "black"

    @property
    def fullmove_number(self) -> int:
        return self.board.fullmove_number

    def piece_at(self, square: str) -> chess.Piece | None:
        return self.board.piece_at(chess.parse_square(square))

    def has_legal_move(self, parsed: ParsedMove) -> bool:
        """True if some legal move matches the square pair (and the promotion, when given)."""
        from_sq = chess.parse_square(parsed.from_square)
        to_sq = chess.parse_square(parsed.to_square)
        promo = chess.PIECE_SYMBOLS.index(parsed.promotion) if parsed.promotion else None
        for mv in self.board.legal_moves:
            if mv.from_square != from_sq or mv.to_square != to_sq:
                continue
            if promo is None or mv.promotion == promo:
                return True
        return False

    # ---------------- Move Application -----------------
    def apply_text(self, text: str) -> AppliedMove | None:
        """Apply free-form move text if it is legal here; None otherwise. Never applies a null move."""
        move = None
        parsed = parse_uci_move(text)
        if parsed:
            try:
                move = self.board.parse_uci(parsed.uci)
            except ValueError:
                move = None
        if move is None and text and text.strip():
            try:
                move = self.board.parse_san(text.strip())
            except ValueError:
                move = None
        if not move:
            return None
        san = self.board.san(move)
        self.board.push(move)
        return AppliedMove(uci=move.uci(), san=san)

    def outcome(self, mover: Color) -> tuple[Winner, Reason] | None:
        """Terminal condition after `mover` moved, in fixed priority order."""
        b = self.board
        if b.is_checkmate():
            return mover, "checkmate"
        if b.is_stalemate():
            return "draw", "stalemate"
        if b.is_repetition(3):
            return "draw", "threefold"
        if b.is_insufficient_material():
            return "draw", "insufficient"
        if b.is_fifty_moves():
            return "draw", "fifty-move"
        return None

    # ---------------- PGN / Status -----------------
    def status(self) -> str:
        if self._result_override:
            return self._result_override
        if self.board.is_game_over():
            return self.board.result()
        return "*"

    def pgn(self) -> str:
        game = chess.pgn.Game.from_board(self.board)
        for k, v in self._headers.items():
            game.headers[k] = v
        game.headers["Result"] = self.status()
        if self._termination_comment:
            game.comment = self._termination_comment
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=bool(self._termination_comment))
        return game.accept(exporter)
