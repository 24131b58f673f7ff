"""Step-indexed hyperparameter schedules.

A ``Schedule`` is a piecewise function from a training step to a value,
built from ``ScheduleSegment``s that interpolate between two values with an
annealing function.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

AnnealFn = Callable[[float, float, float], float]


def anneal_cos(start: float, end: float, pct: float) -> float:
    """Cosine interpolation from ``start`` (pct=0) to ``end`` (pct=1)."""
    return end + (start - end) / 2.0 * (math.cos(math.pi * pct) + 1.0)


def anneal_linear(start: float, end: float, pct: float) -> float:
    """Linear interpolation from ``start`` (pct=0) to ``end`` (pct=1)."""
    return start + pct * (end - start)


@dataclass(frozen=True)
class ScheduleSegment:
    """Interpolate ``start_value -> end_value`` over steps ``start_step..end_step``.

    Both ends are inclusive and hit their values exactly.
    """

    start_step: int
    end_step: int
    start_value: float
    end_value: float
    anneal: AnnealFn = anneal_cos

    def __post_init__(self) -> None:
        if not 0 <= self.start_step <= self.end_step:
            raise ValueError(
                f"Segment steps must satisfy 0 <= start_step <= end_step, "
                f"got {self.start_step}..{self.end_step}"
            )

    def __call__(self, step: int) -> float:
        if step <= self.start_step:
            return self.start_value
        if step >= self.end_step:
            return self.end_value
        pct = (step - self.start_step) / (self.end_step - self.start_step)
        return self.anneal(self.start_value, self.end_value, pct)


class Schedule:
    """Piecewise schedule over consecutive segments.

    Steps past the last segment hold its final value.
    """

    def __init__(self, segments: Sequence[ScheduleSegment]) -> None:
        if not segments:
            raise ValueError("Schedule needs at least one segment")
        for prev, seg in zip(segments, segments[1:]):
            if seg.start_step != prev.end_step:
                raise ValueError(
                    f"Segments must be contiguous: {prev.end_step} != {seg.start_step}"
                )
        if segments[0].start_step != 0:
            raise ValueError("The first segment must start at step 0")
        self.segments = tuple(segments)

    @property
    def n_steps(self) -> int:
        return self.segments[-1].end_step + 1

    def __call__(self, step: int) -> float:
        if step < 0:
            raise ValueError(f"step must be >= 0, got {step}")
        for seg in self.segments:
            if step <= seg.end_step:
                return seg(step)
        return self.segments[-1].end_value

    def values(self) -> list[float]:
        """Values at every step ``0..n_steps - 1``."""
        return [self(step) for step in range(self.n_steps)]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n_steps={self.n_steps}, segments={len(self.segments)})"


def one_cycle(
    n_steps: int,
    lr_max: float,
    div: float = 25.0,
    div_final: float = 1e5,
    pct_start: float = 0.25,
    anneal: AnnealFn = anneal_cos,
) -> Schedule:
    """Warmup-then-anneal schedule over ``n_steps`` steps.

    Rises from ``lr_max / div`` at step 0 to ``lr_max`` at step
    ``round(pct_start * n_steps)``, then falls to ``lr_max / div_final`` at
    step ``n_steps - 1``.

    Args:
        n_steps: Total number of steps, ``n_epochs * steps_per_epoch``.
        lr_max: Peak value.
        div: Divisor of ``lr_max`` giving the starting value.
        div_final: Divisor of ``lr_max`` giving the final value.
        pct_start: Fraction of steps spent rising.
        anneal: Interpolation used within both phases.
    """
    if n_steps < 1:
        raise ValueError(f"n_steps must be >= 1, got {n_steps}")
    if not 0.0 <= pct_start <= 1.0:
        raise ValueError(f"pct_start must be in [0, 1], got {pct_start}")

    last = n_steps - 1
    peak = min(round(pct_start * n_steps), last)
    segments: list[ScheduleSegment] = []
    if peak > 0:
        segments.append(ScheduleSegment(0, peak, lr_max / div, lr_max, anneal))
    if last > peak:
        segments.append(ScheduleSegment(peak, last, lr_max, lr_max / div_final, anneal))
    if not segments:
        segments.append(ScheduleSegment(0, 0, lr_max, lr_max, anneal))
    return Schedule(segments)
