"""
Chaos variant: execute a rejected move literally.

The board is copied out of python-chess into a plain 8x8 grid of piece symbols,
mutated there, and serialized back into a position string. Nothing here touches
a live Board, so the rules library's own invariants are never bypassed in place.

The literal move ignores every rule: the source occupant (or a synthesized pawn
of the mover's color when the source is empty) lands on the destination,
overwriting whatever stands there, kings included. Castling and en-passant
rights are cleared and the halfmove clock restarts.
"""
from __future__ import annotations

from dataclasses import dataclass

import chess

from .events import Color
from .move_parser import ParsedMove

FILES = "abcdefgh"

Grid = list[list[str | None]]


@dataclass(frozen=True)
class ChaosMove:
    fen: str
    token: str


def square_to_index(square: str) -> tuple[int, int]:
    """(row, col) in the grid; row 0 is rank 8."""
    return 8 - int(square[1]), FILES.index(square[0])


def grid_from_fen(fen: str) -> Grid:
    board = chess.Board(fen)
    grid: Grid = []
    for rank in range(7, -1, -1):
        row = []
        for file in range(8):
            piece = board.piece_at(chess.square(file, rank))
            row.append(piece.symbol() if piece else None)
        grid.append(row)
    return grid


def grid_to_placement(grid: Grid) -> str:
    rows = []
    for row in grid:
        out = ""
        empty = 0
        for symbol in row:
            if symbol is None:
                empty += 1
                continue
            if empty:
                out += str(empty)
                empty = 0
            out += symbol
        if empty:
            out += str(empty)
        rows.append(out)
    return "/".join(rows)


def _colored(piece_type: str, color: Color) -> str:
    return piece_type.upper() if color == "white" else piece_type.lower()


def apply_chaos_move(fen: str, move: ParsedMove, color: Color, fullmove_number: int) -> ChaosMove:
    grid = grid_from_fen(fen)
    from_row, from_col = square_to_index(move.from_square)
    to_row, to_col = square_to_index(move.to_square)

    symbol = grid[from_row][from_col] or _colored("p", color)
    grid[from_row][from_col] = None
    if move.promotion:
        symbol = _colored(move.promotion, color)
    grid[to_row][to_col] = symbol

    next_turn = "b" if color == "white" else "w"
    next_fullmove = fullmove_number + 1 if color == "black" else fullmove_number
    next_fen = f"{grid_to_placement(grid)} {next_turn} - - 0 {next_fullmove}"
    return ChaosMove(fen=next_fen, token=move.uci)
