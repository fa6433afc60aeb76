from __future__ import annotations

import logging

import pytest

from dot_count_trainer.config import DotCountConfig, log_level_from_env
from dot_count_trainer.dot_core import ColorMode, DemotionPolicy, ShapeMode


def test_defaults_match_the_classic_trainer() -> None:
    cfg = DotCountConfig()
    assert cfg.initial_level == 3
    assert cfg.time_limit_s == 7
    assert cfg.drift_speed == 0.0
    assert cfg.shape_mode is ShapeMode.CIRCLES
    assert cfg.color_mode is ColorMode.BLUE
    assert cfg.dot_size_px == 75
    assert cfg.streak_window == 5
    assert cfg.demotion_policy is DemotionPolicy.CHOICE
    assert cfg.drift_tick_s == pytest.approx(0.05)


def test_environment_overrides_are_coerced() -> None:
    env = {
        "DOT_COUNT_INITIAL_LEVEL": "5",
        "DOT_COUNT_DRIFT_SPEED": "1.5",
        "DOT_COUNT_SHAPE_MODE": "both",
        "DOT_COUNT_COLOR_MODE": "many",
        "DOT_COUNT_DEMOTION_POLICY": "immediate",
        "DOT_COUNT_TIMEOUT_COUNTS_AS_DECISION": "no",
        "UNRELATED": "1",
    }
    cfg = DotCountConfig.from_env(env)
    assert cfg.initial_level == 5
    assert cfg.drift_speed == pytest.approx(1.5)
    assert cfg.shape_mode is ShapeMode.MIXED
    assert cfg.color_mode is ColorMode.MANY
    assert cfg.demotion_policy is DemotionPolicy.IMMEDIATE
    assert cfg.timeout_counts_as_decision is False
    assert cfg.time_limit_s == 7


def test_unparseable_override_is_skipped_with_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="dot_count_trainer.config"):
        cfg = DotCountConfig.from_env({"DOT_COUNT_TIME_LIMIT_S": "soon", "DOT_COUNT_DOT_SIZE_PX": "40"})

    assert cfg.time_limit_s == 7
    assert cfg.dot_size_px == 40
    assert "DOT_COUNT_TIME_LIMIT_S" in caplog.text


def test_overrides_layer_on_a_base_config() -> None:
    base = DotCountConfig(time_limit_s=4)
    cfg = DotCountConfig.from_env({"DOT_COUNT_INITIAL_LEVEL": "2"}, base=base)
    assert (cfg.initial_level, cfg.time_limit_s) == (2, 4)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"initial_level": 0},
        {"time_limit_s": 0},
        {"drift_speed": 4.5},
        {"drift_speed": -0.1},
        {"dot_size_px": 5},
        {"next_round_delay_s": -1.0},
        {"streak_window": 0},
        {"max_candidates": 0},
        {"drift_tick_hz": 0.0},
    ],
)
def test_invalid_values_are_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        DotCountConfig(**kwargs)


def test_log_level_from_env() -> None:
    assert log_level_from_env({}) == logging.WARNING
    assert log_level_from_env({"DOT_COUNT_LOG_LEVEL": "debug"}) == logging.DEBUG
    assert log_level_from_env({"DOT_COUNT_LOG_LEVEL": "chatty"}) == logging.WARNING
