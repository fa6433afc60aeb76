from __future__ import annotations

from collections.abc import Callable

from .clock import ScheduledCall, Scheduler


class RoundTimer:
    """Whole-second countdown for the live round.

    - One pending tick at most; every reschedule cancels the previous handle.
    - freeze() is final for the round: a tick that was already queued is
      cancelled, so an answer accepted near the boundary never loses a second.
    - pause() keeps remaining_s; resume() waits a fresh full step.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        on_timeout: Callable[[], None],
        step_s: float = 1.0,
    ) -> None:
        if step_s <= 0.0:
            raise ValueError("step_s must be > 0")
        self._scheduler = scheduler
        self._on_timeout = on_timeout
        self._step_s = float(step_s)

        self._remaining_s = 0
        self._running = False
        self._paused = False
        self._frozen = False
        self._handle: ScheduledCall | None = None

    @property
    def remaining_s(self) -> int:
        return self._remaining_s

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def ticking(self) -> bool:
        return self._handle is not None

    def reset(self, limit_s: int) -> None:
        self._cancel()
        self._remaining_s = max(0, int(limit_s))
        self._frozen = False

    def start(self) -> None:
        self._running = True
        self._schedule()

    def stop(self) -> None:
        self._cancel()
        self._running = False

    def freeze(self) -> None:
        self._frozen = True
        self._cancel()

    def pause(self) -> None:
        self._paused = True
        self._cancel()

    def resume(self) -> None:
        if not self._paused:
            return
        self._paused = False
        self._schedule()

    def _schedule(self) -> None:
        self._cancel()
        if not self._running or self._paused or self._frozen or self._remaining_s <= 0:
            return
        self._handle = self._scheduler.call_later(self._step_s, self._tick)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        self._handle = None
        if not self._running or self._paused or self._frozen:
            return
        self._remaining_s = max(0, self._remaining_s - 1)
        if self._remaining_s > 0:
            self._schedule()
            return
        self._running = False
        self._on_timeout()
