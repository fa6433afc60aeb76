from __future__ import annotations

from .clock import ScheduledCall, Scheduler
from .dot_core import LEFT_BOUND_PCT, TOP_BOUND_PCT, Entity, clamp_drift


def step_entity(entity: Entity, speed: float) -> None:
    """Advance one entity by one tick, reflecting off the viewport bounds.

    Each axis reflects on its own: a corner hit inverts both signs in the
    same tick.
    """

    d = entity.drift
    if d is None:
        return

    new_top = entity.top + d.sign_y * speed * d.r
    new_left = entity.left + d.sign_x * speed * d.r

    if new_top <= 0.0 or new_top >= TOP_BOUND_PCT:
        d.sign_y = -d.sign_y
        new_top = max(0.0, min(TOP_BOUND_PCT, new_top))
    if new_left <= 0.0 or new_left >= LEFT_BOUND_PCT:
        d.sign_x = -d.sign_x
        new_left = max(0.0, min(LEFT_BOUND_PCT, new_left))

    entity.top = new_top
    entity.left = new_left


class DriftSimulator:
    """Moves the current round's entities on a fixed tick while enabled."""

    def __init__(self, *, scheduler: Scheduler, tick_s: float = 0.05) -> None:
        if tick_s <= 0.0:
            raise ValueError("tick_s must be > 0")
        self._scheduler = scheduler
        self._tick_s = float(tick_s)
        self._entities: list[Entity] = []
        self._speed = 0.0
        self._handle: ScheduledCall | None = None
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def ticks(self) -> int:
        return self._ticks

    def start(self, entities: list[Entity], *, speed: float) -> None:
        """(Re)start ticking over ``entities``. Any earlier loop is cancelled first."""

        self.stop()
        self._entities = entities
        self._speed = clamp_drift(speed)
        if self._speed <= 0.0:
            return
        if not any(e.drift is not None for e in entities):
            return
        self._handle = self._scheduler.call_every(self._tick_s, self._tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def step(self) -> None:
        for entity in self._entities:
            step_entity(entity, self._speed)

    def _tick(self) -> None:
        self._ticks += 1
        self.step()
