# src/dontdrop/gameplay/anticheat.py

"""
Per-session filter that decides whether a collision may earn points.

Two kinds of degenerate play are withheld from scoring:

- a motionless paddle that lets the ball keep bouncing on its own
- a strict A-B-A-B ping-pong between the paddle and one other surface

Long runs of hits on the same surface are rejected as well. The filter
only affects scoring; it never changes how the ball moves.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

# Length of the rolling hit history.
HISTORY_LENGTH = 4

# Consecutive hits on one surface that are still allowed.
MAX_SAME_LOCATION_HITS = 2

# Frames of a motionless paddle before hits stop scoring (2s at 60Hz).
IDLE_FRAME_THRESHOLD = 120

# Paddle displacement per frame below which it counts as motionless.
STILLNESS_TOLERANCE_PX = 2.0


class HitLocation(str, Enum):
    PADDLE = "paddle"
    LEFT_WALL = "left-wall"
    RIGHT_WALL = "right-wall"
    TOP_WALL = "top-wall"
    TOP_LEFT_CORNER = "top-left-corner"
    TOP_RIGHT_CORNER = "top-right-corner"


class RejectReason(str, Enum):
    IDLE = "idle"
    PATTERN = "pattern"
    REPETITION = "repetition"


@dataclass(frozen=True)
class HitDecision:
    """Outcome of ``evaluate_hit``.

    Attributes:
        admitted: Whether the hit may award points
        reason: Why it was rejected, None when admitted
        count: Consecutive hits on the same location, including this one
    """

    admitted: bool
    reason: RejectReason | None = None
    count: int = 1

    @classmethod
    def admit(cls, count: int) -> "HitDecision":
        return cls(admitted=True, count=count)

    @classmethod
    def reject(cls, reason: RejectReason, count: int) -> "HitDecision":
        return cls(admitted=False, reason=reason, count=count)


@dataclass
class ValidatorState:
    """Rolling counters for one play session. Never shared between sessions."""

    last_location: HitLocation | None = None
    consecutive_hits: int = 0
    history: deque = field(default_factory=lambda: deque(maxlen=HISTORY_LENGTH))
    still_frames: int = 0
    paddle_ref: tuple[float, float] | None = None
    last_hit_ms: float | None = None

    @property
    def is_idle(self) -> bool:
        return self.still_frames >= IDLE_FRAME_THRESHOLD


def reset(state: ValidatorState) -> None:
    """Back to the initial state; used at session start and on every ball reset."""
    state.last_location = None
    state.consecutive_hits = 0
    state.history.clear()
    state.still_frames = 0
    state.paddle_ref = None
    state.last_hit_ms = None


def observe_paddle(state: ValidatorState, x: float, y: float) -> None:
    """Record the paddle position for one simulation frame.

    The first frame after a reset counts as still: the paddle has not moved
    since it was placed.
    """
    if state.paddle_ref is not None:
        dx = x - state.paddle_ref[0]
        dy = y - state.paddle_ref[1]
        if math.hypot(dx, dy) >= STILLNESS_TOLERANCE_PX:
            state.still_frames = 0
            state.paddle_ref = (x, y)
            return
    else:
        state.paddle_ref = (x, y)
    state.still_frames += 1


def _is_paddle_alternation(history: deque) -> bool:
    if len(history) < HISTORY_LENGTH:
        return False
    h0, h1, h2, h3 = history
    if h0 is None or h1 is None or h0 == h1:
        return False
    if h0 != h2 or h1 != h3:
        return False
    return HitLocation.PADDLE in (h0, h1)


def evaluate_hit(
    state: ValidatorState, location: HitLocation, now_ms: float
) -> HitDecision:
    """Update the session counters with a collision and decide whether it scores.

    Rules are checked in order: idle paddle, paddle alternation, then
    repetition. Counters are updated for rejected hits too.
    """
    if location == state.last_location:
        state.consecutive_hits += 1
    else:
        state.consecutive_hits = 1
        state.last_location = location
    state.history.append(location)
    state.last_hit_ms = now_ms

    count = state.consecutive_hits
    if state.is_idle:
        return HitDecision.reject(RejectReason.IDLE, count)
    if _is_paddle_alternation(state.history):
        return HitDecision.reject(RejectReason.PATTERN, count)
    if count > MAX_SAME_LOCATION_HITS:
        return HitDecision.reject(RejectReason.REPETITION, count)
    return HitDecision.admit(count)
