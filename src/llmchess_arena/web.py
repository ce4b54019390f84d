"""
Minimal Flask API that exposes the match engine over HTTP.

Endpoints:
- POST /api/match       -> stream one match as NDJSON (one event per line, `end` last)
- POST /api/tournament  -> run a round robin and return matches + standings as JSON
- GET  /api/test        -> gateway smoke test (asks a small model to say e2e4)

Each request gets its own model client and its own event loop; nothing is shared
between matches.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncIterator, Iterator, Optional

from flask import Flask, Response, jsonify, request

from .events import event_to_dict
from .match_engine import MatchConfig, MatchEngine
from .model_client import GatewayMoveClient, MissingApiKeyError
from .tournament import run_tournament, validate_models

log = logging.getLogger("web")

app = Flask(__name__)

# Swapped out in tests; must return an object with async complete() (and optionally aclose()).
CLIENT_FACTORY = GatewayMoveClient
SMOKE_TEST_MODEL = "openai/gpt-4o-mini"
SMOKE_TEST_PROMPT = "Say only the word 'e2e4' and nothing else."


def _make_client(api_key: Optional[str] = None):
    return CLIENT_FACTORY(api_key=api_key) if api_key else CLIENT_FACTORY()


async def _close_client(client) -> None:
    closer = getattr(client, "aclose", None)
    if closer is not None:
        await closer()


def _drain(events: AsyncIterator, client, cancel: Optional[asyncio.Event] = None) -> Iterator[str]:
    """Run an async event stream on a private loop and yield NDJSON lines.

    Closing the generator early (client disconnect) sets `cancel` so a pending
    model request is abandoned instead of running to its timeout.
    """
    loop = asyncio.new_event_loop()
    try:
        while True:
            try:
                event = loop.run_until_complete(events.__anext__())
            except StopAsyncIteration:
                break
            yield json.dumps(event_to_dict(event)) + "\n"
    finally:
        if cancel is not None:
            cancel.set()
        loop.run_until_complete(events.aclose())
        loop.run_until_complete(_close_client(client))
        loop.close()


def _json_body() -> Optional[dict]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else None


@app.route("/api/match", methods=["POST"])
def match():
    body = _json_body()
    if body is None:
        return jsonify({"error": "Invalid JSON"}), 400
    try:
        cfg = MatchConfig.from_request(body)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        client = _make_client((body.get("apiKey") or "").strip() or None)
    except MissingApiKeyError as e:
        return jsonify({"error": str(e)}), 401
    log.info("Streaming match %s vs %s (%s)", cfg.white_model, cfg.black_model, cfg.variant)
    cancel = asyncio.Event()
    engine = MatchEngine(cfg, client, cancel_event=cancel)
    return Response(
        _drain(engine.stream(), client, cancel),
        mimetype="application/x-ndjson",
        headers={"Cache-Control": "no-cache, no-transform"},
    )


@app.route("/api/tournament", methods=["POST"])
def tournament():
    body = _json_body()
    if body is None:
        return jsonify({"error": "Invalid JSON"}), 400
    try:
        models = validate_models(body.get("models"))
        cfg = MatchConfig.from_request({
            "whiteModel": models[0],
            "blackModel": models[1],
            "mode": body.get("mode"),
            "clockMinutes": body.get("clockMinutes"),
        })
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        client = _make_client()
    except MissingApiKeyError as e:
        return jsonify({"error": str(e)}), 401

    async def _run():
        try:
            return await run_tournament(models, cfg.variant, client, clock_ms=cfg.clock_ms)
        finally:
            await _close_client(client)

    try:
        result = asyncio.run(_run())
    except Exception as e:
        log.exception("Tournament failed")
        return jsonify({"error": str(e)}), 500
    return jsonify(result.to_dict())


@app.route("/api/test", methods=["GET"])
def smoke_test():
    try:
        client = _make_client()
    except MissingApiKeyError as e:
        return jsonify({"error": str(e), "keyPresent": False}), 500

    async def _ask():
        try:
            return await client.complete(SMOKE_TEST_MODEL, SMOKE_TEST_PROMPT)
        finally:
            await _close_client(client)

    try:
        response = asyncio.run(_ask())
    except Exception as e:
        log.exception("Gateway smoke test failed")
        return jsonify({"success": False, "model": SMOKE_TEST_MODEL, "error": str(e), "keyPresent": True}), 500
    return jsonify({
        "success": True,
        "model": SMOKE_TEST_MODEL,
        "prompt": SMOKE_TEST_PROMPT,
        "response": (response or "").strip(),
        "keyPresent": True,
    })
