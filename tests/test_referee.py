import unittest

import chess

from llmchess_arena.illegal_policy import (
    GENERIC_ILLEGAL,
    RULES_VIOLATION,
    UNPARSEABLE,
    StrikeTracker,
    describe_rejection,
    enforces_strike_limit,
)
from llmchess_arena.move_parser import parse_uci_move
from llmchess_arena.referee import Referee


class RefereeTests(unittest.TestCase):
    def test_apply_text_accepts_uci_with_noise_and_san(self):
        ref = Referee()
        applied = ref.apply_text("Move: e2-e4")
        self.assertEqual((applied.uci, applied.san), ("e2e4", "e4"))
        applied = ref.apply_text("Nf6")
        self.assertEqual((applied.uci, applied.san), ("g8f6", "Nf6"))
        self.assertEqual(ref.side_to_move(), "white")

    def test_apply_text_rejects_illegal_and_null(self):
        ref = Referee()
        for text in ["e2e5", "zzzz", "0000", "", "Ke2"]:
            with self.subTest(text=text):
                self.assertIsNone(ref.apply_text(text))
        self.assertEqual(ref.fen(), chess.STARTING_FEN)

    def test_outcome_checkmate(self):
        ref = Referee()
        for mv in ["f2f3", "e7e5", "g2g4", "d8h4"]:
            self.assertIsNotNone(ref.apply_text(mv))
        self.assertEqual(ref.outcome("black"), ("black", "checkmate"))

    def test_outcome_stalemate_and_insufficient(self):
        stalemate = Referee("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
        self.assertEqual(stalemate.outcome("white"), ("draw", "stalemate"))
        bare = Referee("8/8/8/4k3/8/8/8/4K3 w - - 0 1")
        self.assertEqual(bare.outcome("black"), ("draw", "insufficient"))

    def test_outcome_threefold(self):
        ref = Referee()
        for mv in ["g1f3", "g8f6", "f3g1", "f6g8", "g1f3", "g8f6", "f3g1", "f6g8"]:
            ref.apply_text(mv)
        self.assertEqual(ref.outcome("black"), ("draw", "threefold"))

    def test_outcome_fifty_move(self):
        ref = Referee("4k3/8/8/8/8/8/8/R3K3 w - - 100 80")
        self.assertEqual(ref.outcome("black"), ("draw", "fifty-move"))

    def test_pgn_has_headers_result_and_termination(self):
        ref = Referee()
        ref.set_headers(white="model-a", black="model-b")
        ref.apply_text("e2e4")
        ref.set_result("white", "resignation")
        pgn = ref.pgn()
        self.assertIn('[White "model-a"]', pgn)
        self.assertIn('[Result "1-0"]', pgn)
        self.assertIn("Termination: resignation", pgn)
        self.assertIn("1. e4", pgn)

    def test_pgn_from_custom_position_records_fen(self):
        fen = "rnbqkbnr/pppppppp/8/4P3/8/8/PPPP1PPP/RNBQKBNR b - - 0 1"
        ref = Referee(fen)
        ref.apply_text("d7d5")
        self.assertIn(f'[FEN "{fen}"]', ref.pgn())

    def test_invalid_fen_raises_value_error(self):
        with self.assertRaises(ValueError):
            Referee("not a fen")


class RejectionReasonTests(unittest.TestCase):
    def setUp(self):
        self.ref = Referee()

    def reason(self, text, color="white"):
        return describe_rejection(self.ref, parse_uci_move(text), color)

    def test_unparseable(self):
        self.assertEqual(self.reason("zzzz"), UNPARSEABLE)

    def test_empty_source_square(self):
        self.assertEqual(self.reason("e3e4"), "No piece on e3")

    def test_wrong_color(self):
        self.assertEqual(self.reason("e7e5"), "Piece on e7 is not white")

    def test_rules_violation(self):
        self.assertEqual(self.reason("e2e5"), RULES_VIOLATION)
        self.assertEqual(self.reason("f1c4"), RULES_VIOLATION)

    def test_missing_promotion_is_generic(self):
        self.ref = Referee("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
        self.assertIsNone(self.ref.apply_text("a7a8"))
        self.assertEqual(self.reason("a7a8"), GENERIC_ILLEGAL)
        self.assertEqual(self.reason("e1e3"), RULES_VIOLATION)


class StrikeTrackerTests(unittest.TestCase):
    def test_record_reset_and_limit(self):
        strikes = StrikeTracker()
        self.assertEqual(strikes.record("white"), 1)
        self.assertEqual(strikes.record("white"), 2)
        self.assertFalse(strikes.reached("white"))
        self.assertEqual(strikes.record("white"), 3)
        self.assertTrue(strikes.reached("white"))
        self.assertEqual(strikes.snapshot(), {"white": 3, "black": 0})
        strikes.reset("white")
        self.assertEqual(strikes.count("white"), 0)

    def test_snapshot_is_a_copy(self):
        strikes = StrikeTracker()
        snap = strikes.snapshot()
        strikes.record("black")
        self.assertEqual(snap["black"], 0)

    def test_only_strict_and_timed_forfeit(self):
        self.assertTrue(enforces_strike_limit("strict"))
        self.assertTrue(enforces_strike_limit("timed"))
        self.assertFalse(enforces_strike_limit("chaos"))


if __name__ == "__main__":
    unittest.main()
