from __future__ import annotations

import heapq
import itertools
import time
from collections.abc import Callable
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class ScheduledCall:
    """Handle for one pending callback owned by a single component.

    Owners keep exactly one handle and cancel it before scheduling the next.
    """

    __slots__ = ("callback", "due_s", "interval_s", "_cancelled")

    def __init__(self, *, callback: Callable[[], None], due_s: float, interval_s: float | None) -> None:
        self.callback = callback
        self.due_s = float(due_s)
        self.interval_s = interval_s
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def repeating(self) -> bool:
        return self.interval_s is not None

    def cancel(self) -> None:
        self._cancelled = True


class Scheduler:
    """Cooperative timer queue driven by an injected Clock.

    Nothing runs on its own: the owner calls run_due() (once per frame in the
    UI loop, or after advancing a fake clock in tests) and every callback whose
    due time has passed runs synchronously, in due order.
    """

    # Upper bound on catch-up runs of one repeating call per run_due().
    _MAX_CATCH_UP = 10

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._seq = itertools.count()

    @property
    def clock(self) -> Clock:
        return self._clock

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ScheduledCall:
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        call = ScheduledCall(callback=callback, due_s=self._clock.now() + float(delay_s), interval_s=None)
        self._push(call)
        return call

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> ScheduledCall:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        interval = float(interval_s)
        call = ScheduledCall(callback=callback, due_s=self._clock.now() + interval, interval_s=interval)
        self._push(call)
        return call

    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def run_due(self) -> int:
        """Run every callback due at the current clock time. Returns the number run."""

        now = self._clock.now()
        ran = 0
        catch_up: dict[int, int] = {}
        while self._queue and self._queue[0][0] <= now:
            _, _, call = heapq.heappop(self._queue)
            if call.cancelled:
                continue

            if call.interval_s is not None:
                runs = catch_up.get(id(call), 0) + 1
                catch_up[id(call)] = runs
                call.due_s += call.interval_s
                if runs >= self._MAX_CATCH_UP and call.due_s <= now:
                    # Drop the backlog after a long stall instead of spinning.
                    call.due_s = now + call.interval_s
                self._push(call)
            else:
                call.cancel()

            call.callback()
            ran += 1
        return ran

    def clear(self) -> None:
        for _, _, call in self._queue:
            call.cancel()
        self._queue.clear()

    def _push(self, call: ScheduledCall) -> None:
        heapq.heappush(self._queue, (call.due_s, next(self._seq), call))
