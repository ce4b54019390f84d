"""
Round-robin tournament over the match engine.

- Every unordered pair of models plays once; colors alternate by pairing index.
- Matches are independent engine instances run concurrently, gated by a semaphore
  on how many may have model calls in flight.
- Elo ratings (base 1000, K=24) are updated in pairing order once all matches finish,
  then folded into a standings table.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .config import SETTINGS
from .events import MatchResult, Variant, result_to_dict
from .match_engine import MatchConfig, MatchEngine
from .model_client import MoveClient

log = logging.getLogger("tournament")

BASE_RATING = 1000.0
K_FACTOR = 24
MIN_MODELS = 2
MAX_MODELS = 8


@dataclass
class TournamentStanding:
    model: str
    rating: float = BASE_RATING
    games: int = 0
    points: float = 0.0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    checkmates: int = 0
    illegal_forfeits: int = 0
    timeouts: int = 0
    resignations: int = 0


@dataclass(frozen=True)
class TournamentMatch:
    white: str
    black: str
    result: MatchResult


@dataclass(frozen=True)
class TournamentResult:
    variant: Variant
    matches: list[TournamentMatch]
    standings: list[TournamentStanding]

    def to_dict(self) -> dict:
        return {
            "mode": self.variant,
            "matches": [
                {"white": m.white, "black": m.black, "result": result_to_dict(m.result)}
                for m in self.matches
            ],
            "standings": [
                {
                    "model": s.model,
                    "rating": round(s.rating, 1),
                    "games": s.games,
                    "points": s.points,
                    "wins": s.wins,
                    "draws": s.draws,
                    "losses": s.losses,
                    "checkmates": s.checkmates,
                    "illegalForfeits": s.illegal_forfeits,
                    "timeouts": s.timeouts,
                    "resignations": s.resignations,
                }
                for s in self.standings
            ],
        }


def validate_models(models) -> list[str]:
    if not isinstance(models, (list, tuple)) or len(models) < MIN_MODELS:
        raise ValueError("Provide at least two models")
    if len(models) > MAX_MODELS:
        raise ValueError(f"Maximum of {MAX_MODELS} models allowed")
    cleaned = [str(m).strip() for m in models]
    if any(not m for m in cleaned):
        raise ValueError("Model identifiers must be non-empty")
    if len(set(cleaned)) != len(cleaned):
        raise ValueError("Model identifiers must be unique")
    return cleaned


def round_robin_pairings(models: list[str]) -> list[tuple[str, str]]:
    """(white, black) for each unordered pair."""
    pairs = []
    for i in range(len(models)):
        for j in range(i + 1, len(models)):
            white = models[i] if (i + j) % 2 == 0 else models[j]
            black = models[j] if white == models[i] else models[i]
            pairs.append((white, black))
    return pairs


def expected_score(rating: float, opponent_rating: float) -> float:
    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def update_ratings(ratings: dict[str, float], white: str, black: str, result: MatchResult, k: float = K_FACTOR) -> None:
    ra = ratings.get(white, BASE_RATING)
    rb = ratings.get(black, BASE_RATING)
    score_white = {"white": 1.0, "black": 0.0}.get(result.winner, 0.5)
    ratings[white] = ra + k * (score_white - expected_score(ra, rb))
    ratings[black] = rb + k * ((1 - score_white) - expected_score(rb, ra))


def build_standings(models: list[str], matches: list[TournamentMatch], ratings: dict[str, float]) -> list[TournamentStanding]:
    table = {m: TournamentStanding(model=m, rating=ratings.get(m, BASE_RATING)) for m in models}
    for match in matches:
        white, black = table[match.white], table[match.black]
        result = match.result
        white.games += 1
        black.games += 1
        if result.winner == "draw":
            white.draws += 1
            black.draws += 1
            white.points += 0.5
            black.points += 0.5
            continue
        winner, loser = (white, black) if result.winner == "white" else (black, white)
        winner.wins += 1
        winner.points += 1
        loser.losses += 1
        if result.reason == "checkmate":
            winner.checkmates += 1
        elif result.reason == "illegal":
            loser.illegal_forfeits += 1
        elif result.reason == "timeout":
            loser.timeouts += 1
        elif result.reason == "resignation":
            loser.resignations += 1
    return sorted(table.values(), key=lambda s: (-s.rating, -s.points, -s.wins, s.model))


async def run_tournament(
    models: list[str],
    variant: str,
    client: MoveClient,
    clock_ms: Optional[int] = None,
    max_ply: int = SETTINGS.tournament_max_ply,
    max_concurrency: int = SETTINGS.max_concurrency,
    engine_factory: Callable[..., MatchEngine] = MatchEngine,
) -> TournamentResult:
    models = validate_models(models)
    pairings = round_robin_pairings(models)
    configs = [
        MatchConfig(white_model=w, black_model=b, variant=variant, clock_ms=clock_ms, max_ply=max_ply)
        for w, b in pairings
    ]
    gate = asyncio.Semaphore(max(1, max_concurrency))

    async def _play(cfg: MatchConfig) -> MatchResult:
        async with gate:
            log.info("Starting match %s (white) vs %s (black)", cfg.white_model, cfg.black_model)
            result = await engine_factory(cfg, client).play()
            log.info("Finished %s vs %s: winner=%s reason=%s", cfg.white_model, cfg.black_model, result.winner, result.reason)
            return result

    results = await asyncio.gather(*(_play(cfg) for cfg in configs))

    ratings = {m: BASE_RATING for m in models}
    matches = []
    for (white, black), result in zip(pairings, results):
        matches.append(TournamentMatch(white=white, black=black, result=result))
        update_ratings(ratings, white, black, result)
    standings = build_standings(models, matches, ratings)
    return TournamentResult(variant=configs[0].variant, matches=matches, standings=standings)
