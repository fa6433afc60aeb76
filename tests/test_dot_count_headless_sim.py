from __future__ import annotations

from dataclasses import dataclass

import pytest

from dot_count_trainer.config import DotCountConfig
from dot_count_trainer.dot_core import DifficultyState, Outcome
from dot_count_trainer.dot_count import build_dot_count_game


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _run_for(clock: FakeClock, engine, seconds: float, step: float = 0.25) -> None:
    for _ in range(int(round(seconds / step))):
        clock.advance(step)
        engine.update()


def test_headless_scripted_run_climbs_through_each_promotion_choice() -> None:
    clock = FakeClock()
    engine = build_dot_count_game(clock=clock, seed=2024, config=DotCountConfig(drift_speed=1.0))
    choices = iter(["more_dots", "less_time", "faster_drift"])

    engine.start_session()
    for _ in range(15):
        r = engine.current_round
        assert r is not None
        assert r.true_count in r.candidates
        assert engine.progress.min_dots <= r.true_count <= engine.progress.max_dots

        _run_for(clock, engine, 0.5)
        for e in engine.snapshot().entities:
            assert 0.0 <= e.top <= 90.0
            assert 0.0 <= e.left <= 94.0

        assert engine.submit_guess(r.true_count) is True
        if engine.difficulty_state is DifficultyState.AWAITING_PROMOTION_CHOICE:
            assert engine.choose(next(choices)) is True
        else:
            _run_for(clock, engine, 0.25)

    p = engine.progress
    assert (p.level, p.min_dots, p.max_dots) == (4, 4, 8)
    assert p.time_limit_s == 6
    assert p.drift_speed == pytest.approx(1.5)
    assert (p.session_score, p.session_total) == (15, 15)

    summary = engine.session_summary()
    assert summary.attempted == 15
    assert summary.correct == 15
    assert summary.accuracy == pytest.approx(1.0)
    assert summary.timeouts == 0
    assert summary.mean_response_time_s == pytest.approx(0.5)
    assert summary.level == 4

    levels = [e.level for e in engine.events()]
    assert levels[:5] == [3] * 5
    assert levels[5:] == [4] * 10


def test_headless_scripted_run_steps_down_to_the_floor() -> None:
    clock = FakeClock()
    engine = build_dot_count_game(clock=clock, seed=77, config=DotCountConfig(next_round_delay_s=0.0))

    engine.start_session()
    dialogs = 0
    for _ in range(15):
        r = engine.current_round
        assert r is not None
        wrong = next(c for c in r.candidates if c != r.true_count)
        assert engine.submit_guess(wrong) is True
        if engine.difficulty_state is DifficultyState.AWAITING_DEMOTION_CHOICE:
            dialogs += 1
            assert engine.choose("down_a_level") is True
        else:
            engine.update()

    # Level 1 has nowhere lower to go, so the third poor window changes nothing.
    assert dialogs == 2
    assert engine.difficulty_state is DifficultyState.ACTIVE
    assert (engine.progress.level, engine.progress.min_dots, engine.progress.max_dots) == (1, 1, 5)
    assert all(e.outcome is Outcome.INCORRECT for e in engine.events())
    assert engine.session_summary().correct == 0


def test_headless_idle_session_times_out_round_after_round() -> None:
    clock = FakeClock()
    engine = build_dot_count_game(
        clock=clock,
        seed=9,
        config=DotCountConfig(initial_level=1, time_limit_s=3, timeout_counts_as_decision=False),
    )

    engine.start_session()
    _run_for(clock, engine, 3.25 * 4)

    events = engine.events()
    assert [e.outcome for e in events] == [Outcome.NO_ANSWER] * 4
    assert [e.round_index for e in events] == [1, 2, 3, 4]
    assert all(e.response_time_s == pytest.approx(3.0) for e in events)
    assert engine.current_round is not None and engine.current_round.index == 5
    assert engine.session_summary().attempted == 0
