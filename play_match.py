import argparse
import asyncio
import json
import logging

from llmchess_arena.clock import clock_ms_from_minutes
from llmchess_arena.events import EndEvent, MoveEvent, StatusEvent, result_to_dict
from llmchess_arena.match_engine import MatchConfig, MatchEngine
from llmchess_arena.model_client import GatewayMoveClient


def load_json_config(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logging.getLogger("play_match").error("Failed to read config %s: %s", path, e)
        return {}


def print_event(event) -> None:
    if isinstance(event, StatusEvent):
        print(f"[status] {event.message}")
    elif isinstance(event, MoveEvent):
        clocks = f" clocks={event.clocks.white_ms}/{event.clocks.black_ms}ms" if event.clocks else ""
        note = f" ({event.note})" if event.note else ""
        print(f"[ply {event.ply + 1}] {event.active_color}: {event.san or event.move}{note}{clocks}")
    elif isinstance(event, EndEvent):
        r = event.result
        print(f"[end] winner={r.winner} reason={r.reason} moves={len(r.moves)} strikes={r.illegal_counts}")
    else:
        raise TypeError(f"Unknown stream event: {type(event).__name__}")


async def play(cfg: MatchConfig, api_key: str | None):
    client = GatewayMoveClient(api_key=api_key)
    result = None
    try:
        async for event in MatchEngine(cfg, client).stream():
            print_event(event)
            if isinstance(event, EndEvent):
                result = event.result
    finally:
        await client.aclose()
    return result


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default=None, help="Optional JSON config file to load defaults from.")
    ap.add_argument("--white", default=None, help="Model id playing White")
    ap.add_argument("--black", default=None, help="Model id playing Black")
    ap.add_argument("--variant", choices=["strict", "chaos", "timed", "bullet"], default=None)
    ap.add_argument("--clock-minutes", type=float, default=None, help="Per-side clock for the timed variant (1-3)")
    ap.add_argument("--max-ply", type=int, default=None)
    ap.add_argument("--api-key", default=None, help="Gateway key (defaults to settings/env)")
    ap.add_argument("--pgn-out", default=None, help="Optional path to write PGN at end")
    ap.add_argument("--json-out", default=None, help="Optional path to write the match result JSON")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args()

    cfg_dict = load_json_config(args.config) if args.config else {}

    # Resolve values with precedence: CLI arg if provided -> config -> default
    def pick(*keys, default=None):
        for k in keys:
            v = getattr(args, k, None)
            if v is not None:
                return v
            if k in cfg_dict and cfg_dict[k] is not None:
                return cfg_dict[k]
        return default

    log_level = str(pick("log_level", default="WARNING")).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.WARNING), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    variant = pick("variant", default="strict")
    overrides = {}
    max_ply = pick("max_ply")
    if max_ply is not None:
        overrides["max_ply"] = int(max_ply)
    match_cfg = MatchConfig(
        white_model=pick("white", default=""),
        black_model=pick("black", default=""),
        variant=variant,
        clock_ms=clock_ms_from_minutes(pick("clock_minutes")) if variant in ("timed", "bullet") else None,
        **overrides,
    )

    result = asyncio.run(play(match_cfg, pick("api_key")))
    if result and args.pgn_out:
        with open(args.pgn_out, "w", encoding="utf-8") as f:
            f.write(result.pgn + "\n")
    if result and args.json_out:
        with open(args.json_out, "w", encoding="utf-8") as f:
            json.dump(result_to_dict(result), f, ensure_ascii=False, indent=2)
