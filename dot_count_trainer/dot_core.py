from __future__ import annotations

import random
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TypeVar

T = TypeVar("T")

# Viewport bounds in percent of the play area.
SPAWN_MAX_PCT = 90.0
TOP_BOUND_PCT = 90.0
LEFT_BOUND_PCT = 94.0

MIN_LEVEL = 1
MIN_TIME_LIMIT_S = 1
MAX_DRIFT_SPEED = 4.0
MIN_DRIFT_SPEED = 0.0
DRIFT_STEP = 0.5


class Shape(StrEnum):
    CIRCLE = "circle"
    SQUARE = "square"


class ShapeMode(StrEnum):
    CIRCLES = "dots"
    SQUARES = "squares"
    MIXED = "both"


class ColorMode(StrEnum):
    RED = "red"
    BLUE = "blue"
    BLACK = "black"
    MANY = "many"


class DifficultyState(StrEnum):
    ACTIVE = "active"
    AWAITING_PROMOTION_CHOICE = "awaiting_promotion_choice"
    AWAITING_DEMOTION_CHOICE = "awaiting_demotion_choice"


class PromotionChoice(StrEnum):
    MORE_DOTS = "more_dots"
    LESS_TIME = "less_time"
    FASTER_DRIFT = "faster_drift"


class DemotionChoice(StrEnum):
    DOWN_A_LEVEL = "down_a_level"
    MORE_TIME = "more_time"
    SLOWER_DRIFT = "slower_drift"


class DemotionPolicy(StrEnum):
    CHOICE = "choice"  # blocking dialog, level drops only if picked
    IMMEDIATE = "immediate"  # level drops on the 5th decision, notice only


class Outcome(StrEnum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    NO_ANSWER = "no_answer"


@dataclass(slots=True)
class Drift:
    sign_x: int
    sign_y: int
    r: float


@dataclass(slots=True)
class Entity:
    top: float
    left: float
    shape: Shape
    color: str
    drift: Drift | None = None


@dataclass(slots=True)
class Round:
    index: int
    entities: list[Entity]
    true_count: int
    candidates: tuple[int, ...]
    presented_at_s: float
    chosen: int | None = None


@dataclass(frozen=True, slots=True)
class PlayerProgress:
    level: int
    time_limit_s: int
    drift_speed: float
    min_dots: int
    max_dots: int
    streak_correct: int = 0
    streak_incorrect: int = 0
    session_score: int = 0
    session_total: int = 0

    @property
    def decisions_in_window(self) -> int:
        return self.streak_correct + self.streak_incorrect


def dot_range_for_level(level: int) -> tuple[int, int]:
    """Count range for a level; widens gradually until it spans 8 choices."""

    lo = int(level)
    hi = 2 * lo if lo > 3 else lo + 4
    return lo, hi


def with_level(progress: PlayerProgress, level: int) -> PlayerProgress:
    lvl = max(MIN_LEVEL, int(level))
    lo, hi = dot_range_for_level(lvl)
    return replace(progress, level=lvl, min_dots=lo, max_dots=hi)


def initial_progress(*, level: int, time_limit_s: int, drift_speed: float) -> PlayerProgress:
    lo, hi = dot_range_for_level(max(MIN_LEVEL, int(level)))
    return PlayerProgress(
        level=max(MIN_LEVEL, int(level)),
        time_limit_s=max(MIN_TIME_LIMIT_S, int(time_limit_s)),
        drift_speed=clamp_drift(drift_speed),
        min_dots=lo,
        max_dots=hi,
    )


def clamp_drift(speed: float) -> float:
    return max(MIN_DRIFT_SPEED, min(MAX_DRIFT_SPEED, float(speed)))


@dataclass(frozen=True, slots=True)
class DecisionEvent:
    round_index: int
    true_count: int
    guess: int | None
    outcome: Outcome
    counted: bool  # whether it entered the streak window
    presented_at_s: float
    answered_at_s: float
    response_time_s: float
    level: int
    time_limit_s: int
    drift_speed: float


@dataclass(frozen=True, slots=True)
class SessionSummary:
    attempted: int
    correct: int
    accuracy: float
    timeouts: int
    mean_response_time_s: float | None
    level: int
    time_limit_s: int
    drift_speed: float


@dataclass(frozen=True, slots=True)
class EntityView:
    top: float
    left: float
    shape: Shape
    color: str


@dataclass(frozen=True, slots=True)
class ChoiceOption:
    choice: str
    label: str
    enabled: bool


@dataclass(frozen=True, slots=True)
class DotCountSnapshot:
    """View model for the UI (pure data)."""

    title: str
    running: bool
    paused: bool
    difficulty_state: DifficultyState
    entities: tuple[EntityView, ...]
    time_remaining_s: int
    message: str
    session_score: int
    session_total: int
    streak_correct: int
    streak_incorrect: int
    level: int
    min_dots: int
    max_dots: int
    time_limit_s: int
    drift_speed: float
    dot_size_px: int
    shape_mode: ShapeMode
    color_mode: ColorMode
    candidates: tuple[int, ...]
    chosen: int | None
    guesses_enabled: bool
    choice_options: tuple[ChoiceOption, ...] = ()


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(None if seed is None else int(seed))

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: tuple[T, ...] | list[T]) -> T:
        return self._rng.choice(seq)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)

    def getrandbits(self, k: int) -> int:
        return self._rng.getrandbits(k)
