from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace

from .dot_core import ColorMode, DemotionPolicy, ShapeMode

logger = logging.getLogger(__name__)

ENV_PREFIX = "DOT_COUNT_"
LOG_LEVEL_ENV = "DOT_COUNT_LOG_LEVEL"

DOT_SIZE_MIN_PX = 10
DOT_SIZE_MAX_PX = 150
DOT_SIZE_STEP_PX = 5
TIME_LIMIT_SLIDER_MAX_S = 15


@dataclass(frozen=True, slots=True)
class DotCountConfig:
    initial_level: int = 3
    time_limit_s: int = 7
    drift_speed: float = 0.0
    shape_mode: ShapeMode = ShapeMode.CIRCLES
    color_mode: ColorMode = ColorMode.BLUE
    dot_size_px: int = 75

    next_round_delay_s: float = 0.25
    timeout_grace_s: float = 0.25
    no_answer_delay_s: float = 0.0
    countdown_step_s: float = 1.0
    drift_tick_hz: float = 20.0

    max_candidates: int = 8
    streak_window: int = 5
    demotion_policy: DemotionPolicy = DemotionPolicy.CHOICE
    timeout_counts_as_decision: bool = True

    def __post_init__(self) -> None:
        if self.initial_level < 1:
            raise ValueError("initial_level must be >= 1")
        if self.time_limit_s < 1:
            raise ValueError("time_limit_s must be >= 1")
        if not (0.0 <= self.drift_speed <= 4.0):
            raise ValueError("drift_speed must be in [0.0, 4.0]")
        if not (DOT_SIZE_MIN_PX <= self.dot_size_px <= DOT_SIZE_MAX_PX):
            raise ValueError(f"dot_size_px must be in [{DOT_SIZE_MIN_PX}, {DOT_SIZE_MAX_PX}]")
        if self.next_round_delay_s < 0.0:
            raise ValueError("next_round_delay_s must be >= 0")
        if self.timeout_grace_s < 0.0:
            raise ValueError("timeout_grace_s must be >= 0")
        if self.no_answer_delay_s < 0.0:
            raise ValueError("no_answer_delay_s must be >= 0")
        if self.countdown_step_s <= 0.0:
            raise ValueError("countdown_step_s must be > 0")
        if self.drift_tick_hz <= 0.0:
            raise ValueError("drift_tick_hz must be > 0")
        if self.max_candidates < 1:
            raise ValueError("max_candidates must be >= 1")
        if self.streak_window < 1:
            raise ValueError("streak_window must be >= 1")

    @property
    def drift_tick_s(self) -> float:
        return 1.0 / float(self.drift_tick_hz)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, base: DotCountConfig | None = None) -> DotCountConfig:
        """Apply ``DOT_COUNT_<FIELD>`` overrides on top of ``base`` (or the defaults).

        Unparseable values are skipped with a warning; range checks still raise.
        """

        env = os.environ if environ is None else environ
        cfg = base or cls()
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            current = getattr(cfg, f.name)
            try:
                overrides[f.name] = _coerce(raw.strip(), current)
            except ValueError:
                logger.warning("Ignoring %s%s=%r: not a valid value", ENV_PREFIX, f.name.upper(), raw)
        if not overrides:
            return cfg
        return replace(cfg, **overrides)


def _coerce(raw: str, current: object) -> object:
    if isinstance(current, bool):
        token = raw.lower()
        if token in ("1", "true", "yes", "on"):
            return True
        if token in ("0", "false", "no", "off"):
            return False
        raise ValueError(raw)
    if isinstance(current, ShapeMode):
        return ShapeMode(raw.lower())
    if isinstance(current, ColorMode):
        return ColorMode(raw.lower())
    if isinstance(current, DemotionPolicy):
        return DemotionPolicy(raw.lower())
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def log_level_from_env(environ: Mapping[str, str] | None = None) -> int:
    env = os.environ if environ is None else environ
    name = env.get(LOG_LEVEL_ENV, "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING
