# src/dontdrop/gameplay/scoring.py

"""Point accounting for a single play session.

Every collision goes through the anti-cheat filter first. Rejected hits
award nothing but still advance the combo, so the game feels the same
whether or not points are withheld.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from . import anticheat
from .anticheat import HitDecision, HitLocation, ValidatorState

logger = logging.getLogger(__name__)

# Paddle hit values
EDGE_HIT_POINTS = 5
CENTER_HIT_POINTS = 2
EDGE_ZONE = 0.4  # distance from paddle centre, as a fraction of its width
SKILL_SHOT_SPEED = 5.0  # px/frame of vertical paddle movement
SKILL_SHOT_BONUS = 1

# Combo
COMBO_WINDOW_MS = 1500
COMBO_STEPS = {5: 2, 10: 3, 15: 4}
MAX_COMBO_BONUS = 5

# Surface bonuses while a combo multiplier is active
SIDE_WALL_BONUS = 2
CEILING_BONUS = 3

SIDE_WALLS = {HitLocation.LEFT_WALL, HitLocation.RIGHT_WALL}
CORNERS = {HitLocation.TOP_LEFT_CORNER, HitLocation.TOP_RIGHT_CORNER}


@dataclass(frozen=True)
class HitResult:
    decision: HitDecision
    points: float = 0.0


@dataclass
class PowerEffect:
    """A temporary score multiplier from a special power."""

    multiplier: float
    expires_ms: float

    def active(self, now_ms: float) -> bool:
        return now_ms < self.expires_ms


# ===============================================
# Recorded session events (for replay)
# ===============================================


@dataclass(frozen=True)
class PaddleFrame:
    x: float
    y: float
    ball_height_pct: float = 0.0
    ball_rising: bool = False


@dataclass(frozen=True)
class Collision:
    location: HitLocation
    timestamp_ms: float
    hit_offset: float = 0.5  # 0..1 across the paddle; ignored for walls
    paddle_velocity_y: float = 0.0


@dataclass(frozen=True)
class BallLost:
    timestamp_ms: float = 0.0


@dataclass(frozen=True)
class PowerActivated:
    multiplier: float
    duration_ms: float
    timestamp_ms: float


SessionEvent = PaddleFrame | Collision | BallLost | PowerActivated


@dataclass
class ScoreSession:
    validator: ValidatorState = field(default_factory=ValidatorState)
    total: float = 0.0
    multiplier: int = 1
    combo_hits: int = 0
    last_paddle_hit_ms: float | None = None
    power: PowerEffect | None = None
    rejected_hits: int = 0

    def start(self) -> None:
        """Begin a fresh session."""
        anticheat.reset(self.validator)
        self.total = 0.0
        self.rejected_hits = 0
        self.power = None
        self._reset_combo()

    def _reset_combo(self) -> None:
        self.multiplier = 1
        self.combo_hits = 0
        self.last_paddle_hit_ms = None

    # ----- per-frame -----

    def frame(
        self,
        paddle_x: float,
        paddle_y: float,
        ball_height_pct: float = 0.0,
        ball_rising: bool = False,
    ) -> float:
        """Advance one simulation frame; returns the height bonus awarded."""
        anticheat.observe_paddle(self.validator, paddle_x, paddle_y)

        if not ball_rising or self.validator.is_idle:
            return 0.0
        if ball_height_pct >= 90:
            bonus = 2
        elif ball_height_pct >= 75:
            bonus = 1
        else:
            return 0.0
        self.total += bonus
        return float(bonus)

    # ----- collisions -----

    def paddle_hit(
        self, now_ms: float, hit_offset: float = 0.5, paddle_velocity_y: float = 0.0
    ) -> HitResult:
        decision = anticheat.evaluate_hit(self.validator, HitLocation.PADDLE, now_ms)

        points = 0.0
        if decision.admitted:
            centre_distance = abs(0.5 - hit_offset)
            base = EDGE_HIT_POINTS if centre_distance > EDGE_ZONE else CENTER_HIT_POINTS
            if abs(paddle_velocity_y) > SKILL_SHOT_SPEED:
                base += SKILL_SHOT_BONUS
            points = base * self.multiplier * self._power_factor(now_ms)
        else:
            self._note_rejection(decision)

        points += self._advance_combo(now_ms, decision.admitted)
        self.total += points
        return HitResult(decision=decision, points=points)

    def wall_hit(self, location: HitLocation, now_ms: float) -> HitResult:
        if location == HitLocation.PADDLE:
            raise ValueError("use paddle_hit for paddle collisions")

        decision = anticheat.evaluate_hit(self.validator, location, now_ms)
        if not decision.admitted:
            self._note_rejection(decision)
            return HitResult(decision=decision)
        if self.multiplier <= 1:
            return HitResult(decision=decision)

        if location in SIDE_WALLS:
            bonus = SIDE_WALL_BONUS
        elif location in CORNERS:
            # A corner counts as both a side wall and the ceiling.
            bonus = SIDE_WALL_BONUS + CEILING_BONUS
        else:
            bonus = CEILING_BONUS
        points = float(bonus * self.multiplier)
        self.total += points
        return HitResult(decision=decision, points=points)

    def ball_lost(self) -> None:
        """The ball hit the floor: combo and anti-cheat counters start over."""
        self._reset_combo()
        anticheat.reset(self.validator)

    def activate_power(
        self, multiplier: float, duration_ms: float, now_ms: float
    ) -> None:
        self.power = PowerEffect(multiplier=multiplier, expires_ms=now_ms + duration_ms)

    def final_score(self) -> int:
        return int(math.floor(self.total))

    # ----- helpers -----

    def _power_factor(self, now_ms: float) -> float:
        if self.power is None:
            return 1.0
        if not self.power.active(now_ms):
            self.power = None
            return 1.0
        return self.power.multiplier

    def _advance_combo(self, now_ms: float, admitted: bool) -> float:
        """Count a paddle hit towards the combo; returns any milestone bonus."""
        last = self.last_paddle_hit_ms
        self.last_paddle_hit_ms = now_ms
        if last is not None and now_ms - last > COMBO_WINDOW_MS and self.combo_hits > 0:
            self.multiplier = 1
            self.combo_hits = 0
            return 0.0

        self.combo_hits += 1
        if self.combo_hits in COMBO_STEPS:
            self.multiplier = COMBO_STEPS[self.combo_hits]
            return 0.0
        if self.combo_hits % 5 == 0 and admitted:
            return float(min(MAX_COMBO_BONUS, self.combo_hits // 5) * self.multiplier)
        return 0.0

    def _note_rejection(self, decision: HitDecision) -> None:
        self.rejected_hits += 1
        reason = decision.reason.value if decision.reason else None
        logger.debug(
            "Hit withheld from scoring",
            extra={"reason": reason, "count": decision.count},
        )


def replay(events: Iterable[SessionEvent]) -> ScoreSession:
    """Re-score a recorded session from scratch.

    Each replay owns its own state, so any number can run side by side.
    """
    session = ScoreSession()
    session.start()
    for event in events:
        if isinstance(event, PaddleFrame):
            session.frame(event.x, event.y, event.ball_height_pct, event.ball_rising)
        elif isinstance(event, Collision):
            if event.location == HitLocation.PADDLE:
                session.paddle_hit(
                    event.timestamp_ms, event.hit_offset, event.paddle_velocity_y
                )
            else:
                session.wall_hit(event.location, event.timestamp_ms)
        elif isinstance(event, BallLost):
            session.ball_lost()
        elif isinstance(event, PowerActivated):
            session.activate_power(
                event.multiplier, event.duration_ms, event.timestamp_ms
            )
        else:
            raise TypeError(f"Unknown session event: {event!r}")
    return session
