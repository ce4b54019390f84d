import unittest

import chess

from llmchess_arena.events import MatchResult
from llmchess_arena.tournament import (
    BASE_RATING,
    TournamentMatch,
    build_standings,
    expected_score,
    round_robin_pairings,
    run_tournament,
    update_ratings,
    validate_models,
)


def make_result(winner, reason="checkmate"):
    return MatchResult(winner=winner, reason=reason, moves=(), pgn="", illegal_counts={"white": 0, "black": 0}, final_fen="")


class PersonaClient:
    """strong plays the first legal move, weak resigns, mid babbles."""

    def __init__(self):
        self.calls = []

    async def complete(self, model, prompt):
        self.calls.append(model)
        if model == "weak":
            return "resign"
        if model == "mid":
            return "zzzz"
        fen = next(line for line in prompt.splitlines() if line.startswith("Board (FEN): "))
        board = chess.Board(fen[len("Board (FEN): "):])
        return sorted(m.uci() for m in board.legal_moves)[0]


class RatingTests(unittest.TestCase):
    def test_expected_score(self):
        self.assertAlmostEqual(expected_score(1000, 1000), 0.5)
        self.assertAlmostEqual(expected_score(1400, 1000), 1 / 1.1, places=6)

    def test_win_and_draw_updates(self):
        ratings = {"a": BASE_RATING, "b": BASE_RATING}
        update_ratings(ratings, "a", "b", make_result("white"))
        self.assertEqual(ratings, {"a": 1012.0, "b": 988.0})
        ratings = {"a": BASE_RATING, "b": BASE_RATING}
        update_ratings(ratings, "a", "b", make_result("draw", "stalemate"))
        self.assertEqual(ratings, {"a": 1000.0, "b": 1000.0})

    def test_zero_sum(self):
        ratings = {"a": 1100.0, "b": 950.0}
        update_ratings(ratings, "a", "b", make_result("black"))
        self.assertAlmostEqual(sum(ratings.values()), 2050.0)


class PairingTests(unittest.TestCase):
    def test_every_pair_once(self):
        models = ["a", "b", "c", "d"]
        pairs = round_robin_pairings(models)
        self.assertEqual(len(pairs), 6)
        self.assertEqual({frozenset(p) for p in pairs}, {frozenset((x, y)) for i, x in enumerate(models) for y in models[i + 1:]})

    def test_colors_alternate(self):
        self.assertEqual(round_robin_pairings(["a", "b", "c"]), [("b", "a"), ("a", "c"), ("c", "b")])

    def test_validate_models(self):
        self.assertEqual(validate_models([" a ", "b"]), ["a", "b"])
        for bad in (["a"], [f"m{i}" for i in range(9)], ["a", " "], ["a", "a"], "ab"):
            with self.subTest(models=bad):
                with self.assertRaises(ValueError):
                    validate_models(bad)


class StandingsTests(unittest.TestCase):
    def test_counts_and_order(self):
        matches = [
            TournamentMatch("a", "b", make_result("white", "checkmate")),
            TournamentMatch("b", "c", make_result("draw", "max-move")),
            TournamentMatch("c", "a", make_result("black", "timeout")),
        ]
        ratings = {"a": 1020.0, "b": 995.0, "c": 985.0}
        table = build_standings(["a", "b", "c"], matches, ratings)
        self.assertEqual([s.model for s in table], ["a", "b", "c"])
        a, b, c = table
        self.assertEqual((a.wins, a.points, a.checkmates), (2, 2, 1))
        self.assertEqual((b.losses, b.draws, b.points), (1, 1, 0.5))
        self.assertEqual((c.timeouts, c.games), (1, 2))


class RunTournamentTests(unittest.IsolatedAsyncioTestCase):
    async def test_three_model_round_robin(self):
        client = PersonaClient()
        result = await run_tournament(["strong", "weak", "mid"], "strict", client, max_ply=40)
        self.assertEqual(len(result.matches), 3)
        reasons = [(m.white, m.black, m.result.winner, m.result.reason) for m in result.matches]
        self.assertEqual(reasons, [
            ("weak", "strong", "black", "resignation"),
            ("strong", "mid", "white", "illegal"),
            ("mid", "weak", "black", "illegal"),
        ])
        self.assertEqual([s.model for s in result.standings], ["strong", "weak", "mid"])
        strong = result.standings[0]
        self.assertEqual((strong.wins, strong.points), (2, 2))
        self.assertEqual(result.standings[2].illegal_forfeits, 2)

        data = result.to_dict()
        self.assertEqual(data["mode"], "strict")
        self.assertEqual(data["standings"][0]["model"], "strong")
        self.assertIn("illegalForfeits", data["standings"][0])
        self.assertEqual(data["matches"][0]["result"]["reason"], "resignation")

    async def test_rejects_bad_model_list(self):
        with self.assertRaises(ValueError):
            await run_tournament(["solo"], "strict", PersonaClient())


if __name__ == "__main__":
    unittest.main()
