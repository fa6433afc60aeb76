from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum

from .dot_core import (
    DRIFT_STEP,
    MAX_DRIFT_SPEED,
    MIN_DRIFT_SPEED,
    MIN_LEVEL,
    MIN_TIME_LIMIT_S,
    ChoiceOption,
    DemotionChoice,
    DemotionPolicy,
    DifficultyState,
    Outcome,
    PlayerProgress,
    PromotionChoice,
    clamp_drift,
    with_level,
)

logger = logging.getLogger(__name__)


class DifficultyEvent(StrEnum):
    PROMOTION = "promotion"
    DEMOTION = "demotion"


@dataclass(frozen=True, slots=True)
class Transition:
    progress: PlayerProgress
    state: DifficultyState
    event: DifficultyEvent | None = None
    accepted: bool = True
    notice: str = ""


_PROMOTION_LABELS: dict[PromotionChoice, str] = {
    PromotionChoice.MORE_DOTS: "MORE DOTS",
    PromotionChoice.LESS_TIME: "LESS TIME",
    PromotionChoice.FASTER_DRIFT: "FASTER DRIFTING",
}

_DEMOTION_LABELS: dict[DemotionChoice, str] = {
    DemotionChoice.DOWN_A_LEVEL: "DOWN A LEVEL",
    DemotionChoice.MORE_TIME: "MORE TIME",
    DemotionChoice.SLOWER_DRIFT: "SLOWER DRIFTING",
}


class DifficultyStateMachine:
    """Pure transitions over PlayerProgress: ``(progress, state, input) -> Transition``.

    Every ``streak_window``-th counted decision is evaluated:
    - no incorrect decisions: promotion, the player picks more dots, less
      time or faster drift;
    - fewer than 2 correct above level 1: demotion, either a dialog offering
      down a level, more time or slower drift, or an immediate level drop,
      depending on ``demotion_policy``;
    - anything else keeps the current settings.
    The streak counters restart at zero after every evaluation.
    """

    def __init__(
        self,
        *,
        streak_window: int = 5,
        demotion_policy: DemotionPolicy = DemotionPolicy.CHOICE,
        timeout_counts_as_decision: bool = True,
    ) -> None:
        if streak_window < 1:
            raise ValueError("streak_window must be >= 1")
        self._window = int(streak_window)
        self._demotion_policy = demotion_policy
        self._timeout_counts = bool(timeout_counts_as_decision)

    @property
    def streak_window(self) -> int:
        return self._window

    @property
    def demotion_policy(self) -> DemotionPolicy:
        return self._demotion_policy

    def record_decision(self, progress: PlayerProgress, outcome: Outcome) -> Transition:
        p = progress
        if outcome is Outcome.CORRECT:
            p = replace(
                p,
                streak_correct=p.streak_correct + 1,
                session_score=p.session_score + 1,
                session_total=p.session_total + 1,
            )
        elif outcome is Outcome.INCORRECT:
            p = replace(
                p,
                streak_incorrect=p.streak_incorrect + 1,
                session_total=p.session_total + 1,
            )
        elif self._timeout_counts:
            p = replace(p, streak_incorrect=p.streak_incorrect + 1)
        else:
            return Transition(progress=p, state=DifficultyState.ACTIVE)

        if p.decisions_in_window % self._window != 0:
            return Transition(progress=p, state=DifficultyState.ACTIVE)
        return self._evaluate_window(p)

    def _evaluate_window(self, p: PlayerProgress) -> Transition:
        correct, incorrect = p.streak_correct, p.streak_incorrect
        p = replace(p, streak_correct=0, streak_incorrect=0)

        if incorrect == 0:
            logger.info("Promotion after %d correct at level %d", correct, p.level)
            return Transition(
                progress=p,
                state=DifficultyState.AWAITING_PROMOTION_CHOICE,
                event=DifficultyEvent.PROMOTION,
            )

        if correct < 2 and p.level > MIN_LEVEL:
            logger.info("Demotion after %d/%d correct at level %d", correct, correct + incorrect, p.level)
            if self._demotion_policy is DemotionPolicy.IMMEDIATE:
                p = with_level(p, p.level - 1)
                return Transition(
                    progress=p,
                    state=DifficultyState.ACTIVE,
                    event=DifficultyEvent.DEMOTION,
                    notice=f"Level down - {p.level}",
                )
            return Transition(
                progress=p,
                state=DifficultyState.AWAITING_DEMOTION_CHOICE,
                event=DifficultyEvent.DEMOTION,
            )

        return Transition(progress=p, state=DifficultyState.ACTIVE)

    def options(self, progress: PlayerProgress, state: DifficultyState) -> tuple[ChoiceOption, ...]:
        if state is DifficultyState.AWAITING_PROMOTION_CHOICE:
            return tuple(
                ChoiceOption(choice=c.value, label=_PROMOTION_LABELS[c], enabled=self.can_choose(progress, c))
                for c in PromotionChoice
            )
        if state is DifficultyState.AWAITING_DEMOTION_CHOICE:
            return tuple(
                ChoiceOption(choice=c.value, label=_DEMOTION_LABELS[c], enabled=self.can_choose(progress, c))
                for c in DemotionChoice
            )
        return ()

    @staticmethod
    def can_choose(progress: PlayerProgress, choice: PromotionChoice | DemotionChoice) -> bool:
        if choice is PromotionChoice.FASTER_DRIFT:
            return progress.drift_speed < MAX_DRIFT_SPEED
        if choice is DemotionChoice.DOWN_A_LEVEL:
            return progress.level > MIN_LEVEL
        if choice is DemotionChoice.SLOWER_DRIFT:
            return progress.drift_speed > MIN_DRIFT_SPEED
        return True

    def apply_choice(
        self,
        progress: PlayerProgress,
        state: DifficultyState,
        choice: PromotionChoice | DemotionChoice,
    ) -> Transition:
        if state is DifficultyState.AWAITING_PROMOTION_CHOICE:
            matches = isinstance(choice, PromotionChoice)
        elif state is DifficultyState.AWAITING_DEMOTION_CHOICE:
            matches = isinstance(choice, DemotionChoice)
        else:
            matches = False
        if not matches or not self.can_choose(progress, choice):
            return Transition(progress=progress, state=state, accepted=False)

        p = progress
        notice = ""
        if choice is PromotionChoice.MORE_DOTS:
            p = with_level(p, p.level + 1)
        elif choice is PromotionChoice.LESS_TIME:
            if p.time_limit_s <= MIN_TIME_LIMIT_S:
                notice = f"Time limit already at {MIN_TIME_LIMIT_S}s"
                logger.info("Less time requested at the %ds floor; unchanged", MIN_TIME_LIMIT_S)
            else:
                p = replace(p, time_limit_s=p.time_limit_s - 1)
        elif choice is PromotionChoice.FASTER_DRIFT:
            p = replace(p, drift_speed=clamp_drift(p.drift_speed + DRIFT_STEP))
        elif choice is DemotionChoice.DOWN_A_LEVEL:
            p = with_level(p, p.level - 1)
        elif choice is DemotionChoice.MORE_TIME:
            p = replace(p, time_limit_s=p.time_limit_s + 1)
        elif choice is DemotionChoice.SLOWER_DRIFT:
            p = replace(p, drift_speed=clamp_drift(p.drift_speed - DRIFT_STEP))

        logger.info(
            "Applied %s: level=%d time=%ds drift=%.1f",
            choice.value,
            p.level,
            p.time_limit_s,
            p.drift_speed,
        )
        return Transition(progress=p, state=DifficultyState.ACTIVE, notice=notice)

    @staticmethod
    def dismiss(progress: PlayerProgress, state: DifficultyState) -> Transition:
        if state is DifficultyState.ACTIVE:
            return Transition(progress=progress, state=state, accepted=False)
        return Transition(progress=progress, state=DifficultyState.ACTIVE)
