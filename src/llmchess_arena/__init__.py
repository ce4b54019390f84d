"""
LLM Chess Arena package.

Components:
- match_engine: single-match configuration and the ply loop that streams events
- events: stream event types, match result and wire serialization
- move_parser/referee: free-form move parsing and the python-chess rules wrapper
- illegal_policy/chaos/clock: strikes, literal chaos moves and per-side clocks
- prompting: move prompt builder
- model_client: OpenAI-compatible gateway transport with the retry policy
- tournament/web: round-robin scheduler and the Flask transport
"""
# Package exports are intentionally minimal; import modules directly as needed.
