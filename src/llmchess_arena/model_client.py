from __future__ import annotations
"""
Model-call collaborator: ask a model for a move over an OpenAI-compatible gateway.

The engine only sees the MoveClient protocol (`complete(model, prompt) -> str`).
fetch_move() wraps any client in the retry sub-policy: overload-class failures
and empty replies are retried a bounded number of times with linear backoff;
every other error propagates immediately.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Protocol

import openai
from openai import AsyncOpenAI

from .config import SETTINGS

log = logging.getLogger("model_client")

SYSTEM = "You are a chess player. When asked for a move, reply with only the move."
OVERLOAD_MARKERS = ("overloaded", "exhausted")

Sleep = Callable[[float], Awaitable[None]]


class EmptyMoveError(RuntimeError):
    """The model kept answering with no text."""


class MissingApiKeyError(RuntimeError):
    pass


class MoveClient(Protocol):
    async def complete(self, model: str, prompt: str) -> str:
        ...


# ------------------------- Retry policy -------------------------
def linear_backoff(step_ms: float, base_ms: float) -> Callable[[int], float]:
    """Backoff in ms for a 1-based attempt number: step_ms * attempt + base_ms."""
    def backoff(attempt: int) -> float:
        return step_ms * attempt + base_ms
    return backoff


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = SETTINGS.move_attempts
    overload_backoff: Callable[[int], float] = field(default=linear_backoff(1000, 500))
    empty_backoff: Callable[[int], float] = field(default=linear_backoff(800, 400))


def is_overload_error(exc: BaseException) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    msg = str(exc).lower()
    return any(marker in msg for marker in OVERLOAD_MARKERS)


async def fetch_move(
    client: MoveClient,
    model: str,
    prompt: str,
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
) -> str:
    """Return the model's trimmed reply, retrying overloads and empty replies per policy."""
    policy = policy or RetryPolicy()
    for attempt in range(1, policy.max_attempts + 1):
        log.info("model=%s attempt=%d", model, attempt)
        log.debug("prompt (full):\n%s", prompt)
        try:
            text = await client.complete(model, prompt)
        except Exception as exc:
            if is_overload_error(exc) and attempt < policy.max_attempts:
                delay = policy.overload_backoff(attempt)
                log.warning("Overload detected for model=%s, retrying in %dms (attempt %d)", model, delay, attempt + 1)
                await sleep(delay / 1000)
                continue
            raise
        trimmed = (text or "").strip()
        if trimmed:
            log.info("model=%s response=%r", model, trimmed)
            return trimmed
        log.warning("Empty response from model=%s attempt=%d", model, attempt)
        if attempt < policy.max_attempts:
            delay = policy.empty_backoff(attempt)
            await sleep(delay / 1000)
    raise EmptyMoveError(f"Model {model} returned an empty move")


# ------------------------- Gateway transport -------------------------
class GatewayMoveClient:
    """MoveClient over the gateway's chat completions endpoint."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 temperature: float = SETTINGS.temperature, max_output_tokens: int = SETTINGS.max_output_tokens):
        key = (api_key or "").strip() or SETTINGS.llm_api_key
        if not key:
            raise MissingApiKeyError(
                "Missing AI key. Provide apiKey or set AI_GATEWAY_API_KEY (preferred) / AI_GATEWAY_TOKEN / OPENAI_API_KEY."
            )
        # Retries are owned by fetch_move(); the SDK must not add its own.
        self._client = AsyncOpenAI(api_key=key, base_url=base_url or SETTINGS.api_base or None, max_retries=0)
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    async def complete(self, model: str, prompt: str) -> str:
        rsp = await self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_output_tokens,
            # stop early if the model starts adding commentary
            stop=[" ", "\n"],
        )
        return _extract_text(rsp)

    async def aclose(self) -> None:
        await self._client.close()


def _extract_text(rsp) -> str:
    if not getattr(rsp, "choices", None):
        return ""
    msg = rsp.choices[0].message
    content = getattr(msg, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for c in content:
            if isinstance(c, dict):
                if c.get("type") == "text" and isinstance(c.get("text"), str):
                    parts.append(c["text"])
                continue
            t = getattr(c, "text", None)
            if isinstance(t, str):
                parts.append(t)
        return "\n".join(parts)
    return ""
