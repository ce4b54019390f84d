"""
Single-match engine and its configuration.

- MatchConfig: the two agents (opaque model ids), rule variant, clock allotment and ply ceiling.
- MatchEngine: the ply loop. Each iteration builds a prompt, asks the acting model for a move
  (bounded by a timeout and the side's clock), applies it through the Referee or the illegal-move
  policy, and yields StatusEvent / MoveEvent. Every path ends in exactly one EndEvent, except
  cancellation, which stops the stream without a result.

Plies are strictly sequential: the prompt for ply N+1 depends on the outcome of ply N.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable

from .chaos import apply_chaos_move
from .clock import ClockManager, clock_ms_from_minutes
from .config import SETTINGS
from .events import (
    VARIANTS,
    Color,
    EndEvent,
    IllegalMoveSummary,
    MatchResult,
    MoveEvent,
    Reason,
    StatusEvent,
    StreamEvent,
    Winner,
    opponent_of,
)
from .illegal_policy import (
    EMPTY_MOVE,
    STRIKE_LIMIT,
    StrikeTracker,
    describe_rejection,
    enforces_strike_limit,
)
from .model_client import EmptyMoveError, MoveClient, RetryPolicy, Sleep, fetch_move
from .move_parser import RESIGN_TOKEN, is_resignation, parse_uci_move
from .prompting import build_move_prompt
from .referee import Referee

VARIANT_ALIASES = {"bullet": "timed"}
CHAOS_NOTE = "Chaos move executed despite illegality"


@dataclass(frozen=True)
class MatchConfig:
    white_model: str
    black_model: str
    variant: str = "strict"
    clock_ms: int | None = None  # timed variant only
    max_ply: int = SETTINGS.max_ply
    move_timeout_ms: int = SETTINGS.move_timeout_ms
    strike_limit: int = STRIKE_LIMIT

    def __post_init__(self):
        if not (self.white_model or "").strip() or not (self.black_model or "").strip():
            raise ValueError("white_model and black_model are required")
        variant = VARIANT_ALIASES.get(str(self.variant).lower(), str(self.variant).lower())
        if variant not in VARIANTS:
            raise ValueError(f"Unknown variant {self.variant!r}; expected one of {', '.join(VARIANTS)}")
        object.__setattr__(self, "variant", variant)
        if variant == "timed":
            clock_ms = self.clock_ms if self.clock_ms is not None else clock_ms_from_minutes(SETTINGS.default_clock_minutes)
            if clock_ms <= 0:
                raise ValueError("clock_ms must be positive for the timed variant")
            object.__setattr__(self, "clock_ms", int(clock_ms))
        else:
            object.__setattr__(self, "clock_ms", None)
        if self.max_ply <= 0:
            raise ValueError("max_ply must be positive")
        if self.move_timeout_ms <= 0:
            raise ValueError("move_timeout_ms must be positive")

    @classmethod
    def from_request(cls, payload: dict, **overrides) -> "MatchConfig":
        """Build from a transport payload: whiteModel, blackModel, mode, clockMinutes."""
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")
        variant = payload.get("mode") or "strict"
        clock_ms = None
        if VARIANT_ALIASES.get(str(variant).lower(), str(variant).lower()) == "timed":
            clock_ms = clock_ms_from_minutes(payload.get("clockMinutes"), default=SETTINGS.default_clock_minutes)
        return cls(
            white_model=str(payload.get("whiteModel") or ""),
            black_model=str(payload.get("blackModel") or ""),
            variant=variant,
            clock_ms=clock_ms,
            **overrides,
        )

    @property
    def timed(self) -> bool:
        return self.variant == "timed"

    @property
    def chaos(self) -> bool:
        return self.variant == "chaos"

    def model_for(self, color: Color) -> str:
        return self.white_model if color == "white" else self.black_model


class MatchCancelled(Exception):
    """Raised internally when the cancel event fires during a model call."""


@dataclass
class _MatchState:
    referee: Referee
    clock: ClockManager
    moves: list[str] = field(default_factory=list)
    strikes: StrikeTracker = field(default_factory=StrikeTracker)
    last_illegal: dict[str, IllegalMoveSummary] = field(default_factory=dict)
    last_illegal_moves: dict[str, IllegalMoveSummary] = field(default_factory=dict)


class MatchEngine:
    def __init__(
        self,
        config: MatchConfig,
        client: MoveClient,
        *,
        prompt_builder: Callable[..., str] = build_move_prompt,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
        cancel_event: asyncio.Event | None = None,
    ):
        self.log = logging.getLogger("MatchEngine")
        self.config = config
        self.client = client
        self.prompt_builder = prompt_builder
        self.retry_policy = retry_policy or RetryPolicy()
        self.sleep = sleep
        self.monotonic = monotonic
        self.cancel_event = cancel_event
        self._started = False
        self._state: _MatchState | None = None

    def _cancelled(self) -> bool:
        return bool(self.cancel_event and self.cancel_event.is_set())

    def _new_referee(self, fen: str | None = None) -> Referee:
        ref = Referee(fen)
        ref.set_headers(white=self.config.white_model, black=self.config.black_model)
        return ref

    # ---------------- Result building -----------------
    def _result(self, winner: Winner, reason: Reason) -> MatchResult:
        st = self._state
        st.referee.set_result(winner, reason)
        if st.referee.board.move_stack:
            pgn = st.referee.pgn()
        else:
            # no rules-library history (game start, or just after a chaos rebuild)
            pgn = " ".join(st.moves)
        return MatchResult(
            winner=winner,
            reason=reason,
            moves=tuple(st.moves),
            pgn=pgn,
            illegal_counts=st.strikes.snapshot(),
            final_fen=st.referee.fen(),
            clocks=st.clock.snapshot(),
            last_illegal_moves=dict(st.last_illegal_moves),
        )

    def _end(self, winner: Winner, reason: Reason, ply: int) -> EndEvent:
        self.log.info("Match finished winner=%s reason=%s plies=%d moves=%d", winner, reason, ply, len(self._state.moves))
        return EndEvent(result=self._result(winner, reason))

    def _status(self, message: str, illegal_move: IllegalMoveSummary | None = None) -> StatusEvent:
        st = self._state
        return StatusEvent(
            message=message,
            illegal_counts=st.strikes.snapshot(),
            clocks=st.clock.snapshot(),
            illegal_move=illegal_move,
        )

    # ---------------- Model call -----------------
    async def _request_move(self, model: str, prompt: str, timeout_ms: int) -> str:
        call = asyncio.ensure_future(asyncio.wait_for(
            fetch_move(self.client, model, prompt, self.retry_policy, self.sleep),
            timeout_ms / 1000,
        ))
        if self.cancel_event is None:
            return await call
        watcher = asyncio.ensure_future(self.cancel_event.wait())
        try:
            await asyncio.wait({call, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            call.cancel()
            raise
        finally:
            watcher.cancel()
        # a reply that lands together with the cancel is discarded
        if self.cancel_event.is_set():
            call.cancel()
            await asyncio.gather(call, return_exceptions=True)
            raise MatchCancelled()
        return call.result()

    def _strike(self, color: Color, text: str, reason: str, ply: int) -> IllegalMoveSummary:
        st = self._state
        strikes = st.strikes.record(color)
        summary = IllegalMoveSummary(by=color, move=text, reason=reason, strikes=strikes, ply=ply)
        st.last_illegal[color] = summary
        st.last_illegal_moves[color] = summary
        return summary

    def _forfeits_on_strikes(self, color: Color) -> bool:
        return enforces_strike_limit(self.config.variant) and self._state.strikes.reached(color, self.config.strike_limit)

    # ---------------- Ply loop -----------------
    async def stream(self) -> AsyncIterator[StreamEvent]:
        if self._started:
            raise RuntimeError("MatchEngine instances are single-use")
        self._started = True
        cfg = self.config
        self._state = st = _MatchState(referee=self._new_referee(), clock=ClockManager(cfg.clock_ms))
        self.log.info("Match starting white=%s black=%s variant=%s", cfg.white_model, cfg.black_model, cfg.variant)
        yield self._status("Match starting")

        for ply in range(cfg.max_ply):
            if self._cancelled():
                self.log.info("Match cancelled before ply %d", ply)
                return
            color = st.referee.side_to_move()
            opponent = opponent_of(color)
            model = cfg.model_for(color)
            prompt = self.prompt_builder(
                fen=st.referee.fen(),
                history=list(st.moves),
                active_color=color,
                variant=cfg.variant,
                clock_ms_remaining=st.clock.remaining(color) if cfg.timed else None,
                initial_clock_ms=cfg.clock_ms,
                last_illegal=st.last_illegal.get(color),
            )

            timeout_ms = st.clock.request_timeout_ms(color, cfg.move_timeout_ms)
            clock_bound = cfg.timed and timeout_ms >= st.clock.remaining(color)
            raw = ""
            failure: Exception | None = None
            started = self.monotonic()
            try:
                raw = await self._request_move(model, prompt, timeout_ms)
            except MatchCancelled:
                self.log.info("Match cancelled during ply %d", ply)
                return
            except Exception as exc:
                failure = exc
            elapsed_ms = int((self.monotonic() - started) * 1000)
            if isinstance(failure, asyncio.TimeoutError) and clock_bound:
                # cut off by the clock itself: the whole allotment is gone
                elapsed_ms = max(elapsed_ms, timeout_ms)

            if cfg.timed:
                st.clock.charge(color, elapsed_ms)
                if st.clock.is_flagged(color):
                    self.log.warning("ply=%d color=%s flagged on time (%dms used)", ply, color, elapsed_ms)
                    yield self._status(f"{color} flagged on time ({elapsed_ms}ms used)")
                    yield self._end(opponent, "timeout", ply)
                    return

            if isinstance(failure, EmptyMoveError):
                summary = self._strike(color, "(empty)", EMPTY_MOVE, ply)
                self.log.warning("ply=%d color=%s empty move strikes=%d", ply, color, summary.strikes)
                yield self._status(f"{color} produced an empty move ({summary.strikes} strikes)", summary)
                if self._forfeits_on_strikes(color):
                    yield self._end(opponent, "illegal", ply)
                    return
                continue

            if failure is not None:
                message = str(failure) or "Model call failed or timed out"
                self.log.error("ply=%d color=%s model call failed: %r", ply, color, failure)
                yield self._status(f"{color} error: {message}")
                yield self._end(opponent, "timeout", ply)
                return

            text = raw.strip()
            if is_resignation(text):
                self.log.info("ply=%d color=%s resigned", ply, color)
                yield MoveEvent(
                    move=RESIGN_TOKEN,
                    fen=st.referee.fen(),
                    ply=ply,
                    active_color=color,
                    illegal_counts=st.strikes.snapshot(),
                    clocks=st.clock.snapshot(),
                    elapsed_ms=elapsed_ms,
                )
                yield self._end(opponent, "resignation", ply)
                return

            display_move_number = len(st.moves) // 2 + 1
            applied = st.referee.apply_text(text)
            if applied is None:
                parsed = parse_uci_move(text)
                reason = describe_rejection(st.referee, parsed, color)
                summary = self._strike(color, text, reason, ply)
                self.log.warning("ply=%d color=%s illegal raw=%r reason=%r strikes=%d", ply, color, text, reason, summary.strikes)
                yield self._status(
                    f"{color} played illegal move {text.lower() or 'empty'}: {reason} ({summary.strikes} strikes)",
                    summary,
                )

                if cfg.chaos and parsed is not None:
                    chaos = apply_chaos_move(st.referee.fen(), parsed, color, st.referee.fullmove_number)
                    try:
                        referee = self._new_referee(chaos.fen)
                    except ValueError as exc:
                        self.log.error("ply=%d color=%s chaos move produced invalid fen=%r: %s", ply, color, chaos.fen, exc)
                        yield self._status(f"Chaos move produced invalid board: {exc}")
                        yield self._end(opponent, "illegal", ply)
                        return
                    st.referee = referee
                    st.moves.append(chaos.token)
                    yield MoveEvent(
                        move=chaos.token,
                        fen=chaos.fen,
                        ply=ply,
                        active_color=color,
                        illegal_counts=st.strikes.snapshot(),
                        san=chaos.token,
                        display_move_number=display_move_number,
                        clocks=st.clock.snapshot(),
                        note=CHAOS_NOTE,
                        elapsed_ms=elapsed_ms,
                        chaos=True,
                    )

                if self._forfeits_on_strikes(color):
                    yield self._end(opponent, "illegal", ply)
                    return
                continue

            st.moves.append(applied.uci)
            st.strikes.reset(color)
            st.last_illegal.pop(color, None)
            self.log.info("ply=%d color=%s move=%s san=%s ms=%d", ply, color, applied.uci, applied.san, elapsed_ms)
            yield MoveEvent(
                move=applied.uci,
                fen=st.referee.fen(),
                ply=ply,
                active_color=color,
                illegal_counts=st.strikes.snapshot(),
                san=applied.san,
                display_move_number=display_move_number,
                clocks=st.clock.snapshot(),
                elapsed_ms=elapsed_ms,
            )

            outcome = st.referee.outcome(color)
            if outcome:
                winner, reason = outcome
                yield self._end(winner, reason, ply)
                return

        yield self._end("draw", "max-move", cfg.max_ply)

    async def play(self) -> MatchResult | None:
        """Drain the stream; return the result, or None if the match was cancelled."""
        result = None
        async for event in self.stream():
            if isinstance(event, EndEvent):
                result = event.result
        return result


async def run_match(config: MatchConfig, client: MoveClient, **kwargs) -> MatchResult | None:
    return await MatchEngine(config, client, **kwargs).play()
