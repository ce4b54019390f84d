import json
import unittest

from llmchess_arena.events import (
    Clocks,
    EndEvent,
    IllegalMoveSummary,
    MatchResult,
    MoveEvent,
    StatusEvent,
    event_to_dict,
    opponent_of,
    result_to_dict,
)


class WireFormatTests(unittest.TestCase):
    def test_status_event_skips_missing_fields(self):
        self.assertEqual(event_to_dict(StatusEvent("Match starting")), {"type": "status", "message": "Match starting"})

    def test_status_event_with_illegal_move(self):
        summary = IllegalMoveSummary(by="white", move="e2e5", reason="bad", strikes=2, ply=4)
        data = event_to_dict(StatusEvent("x", illegal_counts={"white": 2, "black": 0}, illegal_move=summary))
        self.assertEqual(data["illegalCounts"], {"white": 2, "black": 0})
        self.assertEqual(data["illegalMove"], {"by": "white", "move": "e2e5", "reason": "bad", "strikes": 2, "ply": 4})

    def test_move_event_keys_are_camel_case(self):
        event = MoveEvent(
            move="e2e4",
            fen="fen",
            ply=0,
            active_color="white",
            illegal_counts={"white": 0, "black": 0},
            san="e4",
            display_move_number=1,
            clocks=Clocks(white_ms=179_000, black_ms=180_000),
            elapsed_ms=1000,
        )
        data = event_to_dict(event)
        self.assertEqual(data["type"], "move")
        self.assertEqual(data["activeColor"], "white")
        self.assertEqual(data["displayMoveNumber"], 1)
        self.assertEqual(data["elapsedMs"], 1000)
        self.assertEqual(data["clocks"], {"whiteMs": 179_000, "blackMs": 180_000})
        self.assertIs(data["chaos"], False)
        self.assertNotIn("note", data)

    def test_end_event_nests_result(self):
        result = MatchResult(
            winner="draw",
            reason="max-move",
            moves=("e2e4", "e7e5"),
            pgn="1. e4 e5",
            illegal_counts={"white": 0, "black": 1},
            final_fen="fen",
        )
        data = event_to_dict(EndEvent(result))
        self.assertEqual(data["type"], "end")
        self.assertEqual(data["result"]["moves"], ["e2e4", "e7e5"])
        self.assertEqual(data["result"]["finalFen"], "fen")
        self.assertEqual(data["result"]["lastIllegalMoves"], {})
        self.assertNotIn("clocks", data["result"])
        json.dumps(data)
        self.assertEqual(result_to_dict(result), data["result"])

    def test_result_rejects_unknown_reason_and_winner(self):
        for winner, reason in (("white", "flag-fall"), ("nobody", "checkmate")):
            with self.subTest(winner=winner, reason=reason):
                with self.assertRaises(ValueError):
                    MatchResult(winner=winner, reason=reason, moves=(), pgn="", illegal_counts={}, final_fen="")

    def test_unknown_event_rejected(self):
        with self.assertRaises(TypeError):
            event_to_dict({"type": "move"})

    def test_opponent(self):
        self.assertEqual(opponent_of("white"), "black")
        self.assertEqual(opponent_of("black"), "white")


if __name__ == "__main__":
    unittest.main()
