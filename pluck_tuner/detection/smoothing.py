"""Temporal smoothing of per-frame pitch estimates."""

from __future__ import annotations

from collections import deque
from typing import Deque, Optional


class MedianFilter:
    """Rolling median over the last ``capacity`` values."""

    def __init__(self, capacity: int = 5) -> None:
        if capacity < 1:
            raise ValueError(f"Median capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._values: Deque[float] = deque(maxlen=capacity)

    def push(self, value: float) -> float:
        """Add a value, evicting the oldest when full, and return the median.

        For an even count this is the upper of the two middle values.
        """
        self._values.append(value)
        ordered = sorted(self._values)
        return ordered[len(ordered) // 2]

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


class CentsStickiness:
    """Deadband around 0 cents.

    Unstuck, ``|c| < in_cents`` snaps to 0 and sticks. Stuck, everything
    reads 0 until ``|c| > out_cents`` releases it.
    """

    def __init__(self, in_cents: float = 3.0, out_cents: float = 5.0) -> None:
        if in_cents > out_cents:
            raise ValueError(
                f"Stick-in threshold {in_cents} exceeds release threshold {out_cents}"
            )
        self.in_cents = in_cents
        self.out_cents = out_cents
        self.stuck = False

    def apply(self, cents: float) -> float:
        if self.stuck:
            if abs(cents) > self.out_cents:
                self.stuck = False
                return cents
            return 0.0
        if abs(cents) < self.in_cents:
            self.stuck = True
            return 0.0
        return cents

    def reset(self) -> None:
        self.stuck = False


def adaptive_alpha(prev_cents: Optional[float], cents: float) -> float:
    """EMA factor: faster for large jumps, slower for small drift."""
    if prev_cents is None:
        return 0.22
    delta = abs(cents - prev_cents)
    if delta > 20.0:
        return 0.28
    if delta > 10.0:
        return 0.22
    if delta > 5.0:
        return 0.20
    return 0.16


class StableFrequencyMemory:
    """Last stable pitch, slow to accept sudden collapses on treble notes.

    A new value below ``previous / collapse_ratio`` while the previous value
    is at least ``collapse_min_hz`` is a likely octave collapse and is only
    accepted after ``confirm_frames`` consecutive such frames.
    """

    def __init__(
        self,
        collapse_min_hz: float = 250.0,
        collapse_ratio: float = 1.8,
        confirm_frames: int = 3,
    ) -> None:
        self.collapse_min_hz = collapse_min_hz
        self.collapse_ratio = collapse_ratio
        self.confirm_frames = confirm_frames
        self.value: Optional[float] = None
        self.suspect_frames = 0

    def update(self, hz: float) -> Optional[float]:
        """Offer a new smoothed pitch; returns the stable value afterwards."""
        prev = self.value
        if prev is not None and prev >= self.collapse_min_hz and hz < prev / self.collapse_ratio:
            self.suspect_frames += 1
            if self.suspect_frames >= self.confirm_frames:
                self.value = hz
                self.suspect_frames = 0
        else:
            self.value = hz
            self.suspect_frames = 0
        return self.value

    def reset(self) -> None:
        self.value = None
        self.suspect_frames = 0
