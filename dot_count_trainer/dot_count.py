from __future__ import annotations

import logging
from dataclasses import replace

from .clock import Clock, ScheduledCall, Scheduler
from .config import DOT_SIZE_MAX_PX, DOT_SIZE_MIN_PX, DOT_SIZE_STEP_PX, TIME_LIMIT_SLIDER_MAX_S, DotCountConfig
from .difficulty import DifficultyStateMachine, Transition
from .dot_core import (
    MIN_LEVEL,
    MIN_TIME_LIMIT_S,
    ColorMode,
    DecisionEvent,
    DemotionChoice,
    DifficultyState,
    DotCountSnapshot,
    EntityView,
    Outcome,
    PlayerProgress,
    PromotionChoice,
    Round,
    SeededRng,
    SessionSummary,
    ShapeMode,
    clamp_drift,
    initial_progress,
    with_level,
)
from .dot_generator import RandomDotGenerator
from .drift import DriftSimulator
from .guess_range import GuessRangeSelector
from .round_timer import RoundTimer

logger = logging.getLogger(__name__)

TITLE = "Dot Count"


class DotCountGame:
    """Round lifecycle for the dot counting trainer.

    Input handlers (guesses, pause, choices, settings) mutate state
    synchronously. Everything time based (countdown, drift, the delay before
    the next round) is a callback queued on the Scheduler and runs from
    update(), so a guess always freezes the countdown before any queued tick
    can see it.
    """

    def __init__(self, *, clock: Clock, seed: int | None = None, config: DotCountConfig | None = None) -> None:
        cfg = config or DotCountConfig()
        self._cfg = cfg
        self._clock = clock
        self._seed = seed

        rng = SeededRng(seed)
        self._scheduler = Scheduler(clock)
        self._generator = RandomDotGenerator(rng=rng)
        self._selector = GuessRangeSelector(rng=rng, max_candidates=cfg.max_candidates)
        self._drift = DriftSimulator(scheduler=self._scheduler, tick_s=cfg.drift_tick_s)
        self._timer = RoundTimer(
            scheduler=self._scheduler,
            on_timeout=self.timeout,
            step_s=cfg.countdown_step_s,
        )
        self._machine = DifficultyStateMachine(
            streak_window=cfg.streak_window,
            demotion_policy=cfg.demotion_policy,
            timeout_counts_as_decision=cfg.timeout_counts_as_decision,
        )

        self._progress = initial_progress(
            level=cfg.initial_level,
            time_limit_s=cfg.time_limit_s,
            drift_speed=cfg.drift_speed,
        )
        self._state = DifficultyState.ACTIVE

        self._shape_mode = cfg.shape_mode
        self._color_mode = cfg.color_mode
        self._dot_size_px = cfg.dot_size_px

        self._round: Round | None = None
        self._round_index = 0
        self._guesses_enabled = False
        self._running = False
        self._paused = False
        self._message = ""
        self._next_round: ScheduledCall | None = None
        self._events: list[DecisionEvent] = []

    @property
    def seed(self) -> int | None:
        return self._seed

    @property
    def config(self) -> DotCountConfig:
        return self._cfg

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def progress(self) -> PlayerProgress:
        return self._progress

    @property
    def difficulty_state(self) -> DifficultyState:
        return self._state

    @property
    def current_round(self) -> Round | None:
        return self._round

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def message(self) -> str:
        return self._message

    @property
    def time_remaining_s(self) -> int:
        return self._timer.remaining_s

    @property
    def timer(self) -> RoundTimer:
        return self._timer

    @property
    def drift(self) -> DriftSimulator:
        return self._drift

    def instructions(self) -> list[str]:
        return [
            TITLE,
            "",
            "Dots or squares flash up in the box.",
            "Pick how many there are before the clock runs out.",
            "Five perfect answers in a row let you choose a harder setting:",
            "more dots, less time or faster drifting.",
            "A poor run of five offers an easier one.",
        ]

    # Session / round lifecycle -------------------------------------------------

    def start_session(self) -> None:
        self._cancel_next_round()
        self._progress = with_level(
            replace(
                self._progress,
                streak_correct=0,
                streak_incorrect=0,
                session_score=0,
                session_total=0,
            ),
            self._progress.level,
        )
        self._state = DifficultyState.ACTIVE
        self._paused = False
        self._timer.resume()
        self._events.clear()
        self._running = True
        logger.info(
            "Session started: level=%d range=%d-%d time=%ds drift=%.1f",
            self._progress.level,
            self._progress.min_dots,
            self._progress.max_dots,
            self._progress.time_limit_s,
            self._progress.drift_speed,
        )
        self.start_round()

    def restart(self) -> None:
        self.start_session()

    def start_round(self) -> bool:
        if self._state is not DifficultyState.ACTIVE:
            return False
        self._cancel_next_round()

        p = self._progress
        entities = self._generator.next_entities(
            min_dots=p.min_dots,
            max_dots=p.max_dots,
            shape_mode=self._shape_mode,
            color_mode=self._color_mode,
        )
        true_count = len(entities)
        candidates = self._selector.candidates(true_count=true_count, min_dots=p.min_dots, max_dots=p.max_dots)

        self._round_index += 1
        self._round = Round(
            index=self._round_index,
            entities=entities,
            true_count=true_count,
            candidates=candidates,
            presented_at_s=self._clock.now(),
        )
        self._message = ""
        self._guesses_enabled = True
        self._running = True

        self._timer.reset(p.time_limit_s)
        self._timer.start()
        if self._paused:
            self._drift.stop()
        else:
            self._drift.start(entities, speed=p.drift_speed)

        logger.debug("Round %d: %d entities, candidates=%s", self._round_index, true_count, candidates)
        return True

    def stop(self) -> None:
        """Tear down every pending callback; the session can be started again."""

        self._cancel_next_round()
        self._timer.stop()
        self._drift.stop()
        self._guesses_enabled = False
        self._running = False

    def update(self) -> None:
        self._scheduler.run_due()

    # Answers --------------------------------------------------------------------

    def can_guess(self) -> bool:
        return self._round is not None and self._guesses_enabled and self._state is DifficultyState.ACTIVE

    def submit_guess(self, candidate: int) -> bool:
        if not self.can_guess():
            return False
        assert self._round is not None

        # Lock the round before anything else so a queued tick cannot time it out.
        self._guesses_enabled = False
        self._timer.freeze()
        self._drift.stop()

        guess = int(candidate)
        self._round.chosen = guess
        true_count = self._round.true_count
        if guess == true_count:
            outcome = Outcome.CORRECT
            self._message = "Correct!"
        else:
            outcome = Outcome.INCORRECT
            self._message = f"Incorrect - {true_count}!"

        self._decide(outcome, guess=guess, delay_s=self._cfg.next_round_delay_s)
        return True

    def submit_answer(self, raw: str) -> bool:
        """Typed entry. Blank or non-numeric text skips to the next round.

        A skipped round is logged but never enters the streak window.
        """

        text = str(raw).strip()
        try:
            value = int(text)
        except ValueError:
            return self._no_answer(delay_s=self._cfg.no_answer_delay_s, counted=False)
        return self.submit_guess(value)

    def timeout(self) -> None:
        if self._no_answer(delay_s=self._cfg.timeout_grace_s, counted=self._cfg.timeout_counts_as_decision):
            logger.debug("Round %d timed out", self._round_index)

    def _no_answer(self, *, delay_s: float, counted: bool) -> bool:
        if not self.can_guess():
            return False
        self._guesses_enabled = False
        self._timer.freeze()
        self._drift.stop()
        self._message = ""
        self._decide(Outcome.NO_ANSWER, guess=None, delay_s=delay_s, counted=counted)
        return True

    def _decide(self, outcome: Outcome, *, guess: int | None, delay_s: float, counted: bool = True) -> None:
        assert self._round is not None
        before = self._progress
        now = self._clock.now()
        self._events.append(
            DecisionEvent(
                round_index=self._round.index,
                true_count=self._round.true_count,
                guess=guess,
                outcome=outcome,
                counted=counted,
                presented_at_s=self._round.presented_at_s,
                answered_at_s=now,
                response_time_s=max(0.0, now - self._round.presented_at_s),
                level=before.level,
                time_limit_s=before.time_limit_s,
                drift_speed=before.drift_speed,
            )
        )

        if counted:
            self._apply(self._machine.record_decision(before, outcome))

        if self._state is DifficultyState.ACTIVE:
            self._schedule_next_round(delay_s)
            return

        # Awaiting a choice: hold everything until the player answers the dialog.
        self._paused = True
        self._timer.pause()
        self._drift.stop()

    # Difficulty choices --------------------------------------------------------

    def choose(self, choice: str | PromotionChoice | DemotionChoice) -> bool:
        parsed = self._parse_choice(choice)
        if parsed is None:
            return False
        t = self._machine.apply_choice(self._progress, self._state, parsed)
        if not t.accepted:
            return False
        self._apply(t)
        self._leave_choice()
        return True

    def dismiss_choice(self) -> bool:
        t = self._machine.dismiss(self._progress, self._state)
        if not t.accepted:
            return False
        self._apply(t)
        self._leave_choice()
        return True

    def _parse_choice(self, choice: str | PromotionChoice | DemotionChoice) -> PromotionChoice | DemotionChoice | None:
        if isinstance(choice, (PromotionChoice, DemotionChoice)):
            return choice
        token = str(choice).strip().lower()
        try:
            if self._state is DifficultyState.AWAITING_PROMOTION_CHOICE:
                return PromotionChoice(token)
            if self._state is DifficultyState.AWAITING_DEMOTION_CHOICE:
                return DemotionChoice(token)
        except ValueError:
            return None
        return None

    def _leave_choice(self) -> None:
        self._paused = False
        self._timer.resume()
        self.start_round()

    def _apply(self, t: Transition) -> None:
        self._progress = t.progress
        self._state = t.state
        if t.notice:
            self._message = f"{self._message} {t.notice}".strip()

    # Pause / resume ------------------------------------------------------------

    def pause(self) -> bool:
        if not self._running or self._paused:
            return False
        self._paused = True
        self._timer.pause()
        self._drift.stop()
        return True

    def resume(self) -> bool:
        if not self._paused or self._state is not DifficultyState.ACTIVE:
            return False
        self._paused = False
        self._timer.resume()
        if self._round is not None and self._guesses_enabled:
            self._drift.start(self._round.entities, speed=self._progress.drift_speed)
        return True

    def toggle_pause(self) -> None:
        """START / PAUSE / RESUME button."""

        if not self._running:
            self.start_session()
        elif self._paused:
            self.resume()
        else:
            self.pause()

    # Settings ------------------------------------------------------------------

    def set_shape_mode(self, mode: ShapeMode | str) -> None:
        self._shape_mode = ShapeMode(mode)
        if self._round is not None:
            self._generator.restyle(self._round.entities, shape_mode=self._shape_mode)

    def set_color_mode(self, mode: ColorMode | str) -> None:
        self._color_mode = ColorMode(mode)
        if self._round is not None:
            self._generator.restyle(self._round.entities, color_mode=self._color_mode)

    def set_dot_size(self, px: int) -> int:
        size = max(DOT_SIZE_MIN_PX, min(DOT_SIZE_MAX_PX, int(px)))
        size = DOT_SIZE_MIN_PX + ((size - DOT_SIZE_MIN_PX) // DOT_SIZE_STEP_PX) * DOT_SIZE_STEP_PX
        self._dot_size_px = size
        return size

    def set_time_limit(self, seconds: int) -> int:
        """Applies from the next round; the live countdown is left alone."""

        # MORE TIME may already have raised the limit past the slider range.
        ceiling = max(TIME_LIMIT_SLIDER_MAX_S, self._progress.time_limit_s)
        value = max(MIN_TIME_LIMIT_S, min(ceiling, int(seconds)))
        self._progress = replace(self._progress, time_limit_s=value)
        return value

    def set_drift_speed(self, speed: float) -> float:
        value = clamp_drift(speed)
        self._progress = replace(self._progress, drift_speed=value)
        if self._round is not None and self._guesses_enabled and not self._paused:
            self._drift.start(self._round.entities, speed=value)
        return value

    def step_level(self, delta: int) -> int:
        self._progress = with_level(self._progress, max(MIN_LEVEL, self._progress.level + int(delta)))
        return self._progress.level

    def set_dot_range(self, min_dots: int, max_dots: int) -> None:
        lo, hi = int(min_dots), int(max_dots)
        if lo < 1:
            raise ValueError("min_dots must be >= 1")
        if lo > hi:
            raise ValueError("min_dots must be <= max_dots")
        self._progress = replace(self._progress, min_dots=lo, max_dots=hi)

    # Results -------------------------------------------------------------------

    def events(self) -> list[DecisionEvent]:
        return list(self._events)

    def session_summary(self) -> SessionSummary:
        answered = [e for e in self._events if e.guess is not None]
        correct = sum(1 for e in answered if e.outcome is Outcome.CORRECT)
        timeouts = sum(1 for e in self._events if e.outcome is Outcome.NO_ANSWER)
        rts = [e.response_time_s for e in answered]
        return SessionSummary(
            attempted=len(answered),
            correct=correct,
            accuracy=0.0 if not answered else correct / len(answered),
            timeouts=timeouts,
            mean_response_time_s=None if not rts else sum(rts) / len(rts),
            level=self._progress.level,
            time_limit_s=self._progress.time_limit_s,
            drift_speed=self._progress.drift_speed,
        )

    def snapshot(self) -> DotCountSnapshot:
        r = self._round
        p = self._progress
        entities = () if r is None else tuple(
            EntityView(top=e.top, left=e.left, shape=e.shape, color=e.color) for e in r.entities
        )
        return DotCountSnapshot(
            title=TITLE,
            running=self._running,
            paused=self._paused,
            difficulty_state=self._state,
            entities=entities,
            time_remaining_s=self._timer.remaining_s,
            message=self._message,
            session_score=p.session_score,
            session_total=p.session_total,
            streak_correct=p.streak_correct,
            streak_incorrect=p.streak_incorrect,
            level=p.level,
            min_dots=p.min_dots,
            max_dots=p.max_dots,
            time_limit_s=p.time_limit_s,
            drift_speed=p.drift_speed,
            dot_size_px=self._dot_size_px,
            shape_mode=self._shape_mode,
            color_mode=self._color_mode,
            candidates=() if r is None else r.candidates,
            chosen=None if r is None else r.chosen,
            guesses_enabled=self.can_guess(),
            choice_options=self._machine.options(p, self._state),
        )

    def _schedule_next_round(self, delay_s: float) -> None:
        self._cancel_next_round()
        self._next_round = self._scheduler.call_later(delay_s, self._fire_next_round)

    def _fire_next_round(self) -> None:
        self._next_round = None
        if self._running:
            self.start_round()

    def _cancel_next_round(self) -> None:
        if self._next_round is not None:
            self._next_round.cancel()
            self._next_round = None


def build_dot_count_game(
    *,
    clock: Clock,
    seed: int | None = None,
    config: DotCountConfig | None = None,
) -> DotCountGame:
    return DotCountGame(clock=clock, seed=seed, config=config)
