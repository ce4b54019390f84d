"""Scripted MoveClient: replays a fixed list of replies per model."""
import asyncio
import itertools

from llmchess_arena.model_client import RetryPolicy, linear_backoff

NO_BACKOFF = RetryPolicy(max_attempts=3, overload_backoff=linear_backoff(0, 0), empty_backoff=linear_backoff(0, 0))


class ScriptedClient:
    """Each model gets its own reply script; a reply may be a string, an exception, or a callable.

    cycle=True repeats the script forever; otherwise running out raises RuntimeError.
    """

    def __init__(self, scripts: dict, cycle: bool = False):
        self._iters = {
            model: (itertools.cycle(replies) if cycle else iter(replies))
            for model, replies in scripts.items()
        }
        self.calls: list[tuple[str, str]] = []

    async def complete(self, model: str, prompt: str) -> str:
        self.calls.append((model, prompt))
        try:
            reply = next(self._iters[model])
        except StopIteration:
            raise RuntimeError(f"script for {model} exhausted")
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply()
            if asyncio.iscoroutine(reply):
                reply = await reply
        return reply

    def prompts_for(self, model: str) -> list[str]:
        return [p for m, p in self.calls if m == model]
