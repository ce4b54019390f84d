"""
Run the arena HTTP API (see llmchess_arena.web for the endpoints).

Usage: python server.py [--host 127.0.0.1] [--port 5000]
"""
import argparse
import logging

from llmchess_arena.web import app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=5000)
    args = ap.parse_args()
    app.run(host=args.host, port=args.port, threaded=True)
