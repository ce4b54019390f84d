"""
RUN_TOURNAMENT.py: round-robin runner
- Plays every pair of the given models once (colors alternate by pairing).
- Prints the standings table; optionally writes the full tournament JSON.
Usage: python -u scripts/run_tournament.py --models "openai/gpt-4o-mini,anthropic/claude-3-haiku" --variant strict
Env knobs: AI_GATEWAY_API_KEY, MOVE_TIMEOUT_MS, LLMCHESS_MAX_CONCURRENCY, etc.
"""
import argparse
import asyncio
import json
import logging

from llmchess_arena.clock import clock_ms_from_minutes
from llmchess_arena.config import SETTINGS
from llmchess_arena.model_client import GatewayMoveClient
from llmchess_arena.tournament import TournamentResult, run_tournament


def _parse_log_level(name: str | None) -> int:
    name = (name or "INFO").upper()
    return getattr(logging, name, logging.INFO)


async def _run(models, variant, clock_ms, max_ply, concurrency) -> TournamentResult:
    client = GatewayMoveClient()
    try:
        return await run_tournament(models, variant, client, clock_ms=clock_ms, max_ply=max_ply, max_concurrency=concurrency)
    finally:
        await client.aclose()


def print_standings(result: TournamentResult) -> None:
    print(f"\n=== Standings ({result.variant}) ===")
    print(f"{'model':40s} {'elo':>7s} {'pts':>5s} {'W':>3s} {'D':>3s} {'L':>3s} {'mate':>5s} {'ill':>4s} {'time':>5s}")
    for s in result.standings:
        print(f"{s.model:40s} {s.rating:7.1f} {s.points:5.1f} {s.wins:3d} {s.draws:3d} {s.losses:3d} "
              f"{s.checkmates:5d} {s.illegal_forfeits:4d} {s.timeouts:5d}")


def main():
    ap = argparse.ArgumentParser(description="Round-robin LLM chess tournament")
    ap.add_argument("--models", required=True, help="Comma-separated model ids (2-8)")
    ap.add_argument("--variant", choices=["strict", "chaos", "timed", "bullet"], default="strict")
    ap.add_argument("--clock-minutes", type=float, default=None)
    ap.add_argument("--max-ply", type=int, default=SETTINGS.tournament_max_ply)
    ap.add_argument("--concurrency", type=int, default=SETTINGS.max_concurrency)
    ap.add_argument("--out", default=None, help="Optional path for the tournament JSON")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args()

    logging.basicConfig(level=_parse_log_level(args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    models = [m.strip() for m in args.models.split(",") if m.strip()]
    clock_ms = clock_ms_from_minutes(args.clock_minutes) if args.variant in ("timed", "bullet") else None

    result = asyncio.run(_run(models, args.variant, clock_ms, args.max_ply, args.concurrency))
    print_standings(result)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)
        print(f"Wrote {args.out}")


if __name__ == "__main__":
    main()
