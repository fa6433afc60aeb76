from __future__ import annotations

from .dot_core import SeededRng


def window_size(min_dots: int, max_dots: int, *, max_candidates: int = 8) -> int:
    return min(max_dots - min_dots + 1, max_candidates)


def valid_window_starts(
    true_count: int,
    min_dots: int,
    max_dots: int,
    *,
    max_candidates: int = 8,
) -> list[int]:
    """Every start s such that [s, s + size - 1] holds true_count and stays in range."""

    size = window_size(min_dots, max_dots, max_candidates=max_candidates)
    lo = max(min_dots, true_count - size + 1)
    hi = min(true_count, max_dots - size + 1)
    return list(range(lo, hi + 1))


class GuessRangeSelector:
    """Picks the contiguous block of candidate answers offered for a round."""

    def __init__(self, *, rng: SeededRng, max_candidates: int = 8) -> None:
        if max_candidates < 1:
            raise ValueError("max_candidates must be >= 1")
        self._rng = rng
        self._max_candidates = int(max_candidates)

    def candidates(self, *, true_count: int, min_dots: int, max_dots: int) -> tuple[int, ...]:
        if min_dots > max_dots:
            raise ValueError("min_dots must be <= max_dots")
        starts = valid_window_starts(
            true_count,
            min_dots,
            max_dots,
            max_candidates=self._max_candidates,
        )
        if not starts:
            raise ValueError(f"true_count {true_count} outside [{min_dots}, {max_dots}]")

        size = window_size(min_dots, max_dots, max_candidates=self._max_candidates)
        start = starts[int(self._rng.random() * len(starts))]
        return tuple(range(start, start + size))
