"""Type definitions for the pluck-tuner project."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

STRING_COUNT = 6


@dataclass(frozen=True)
class TargetNote:
    """A named note with its reference frequency."""

    name: str  # Note name (e.g., 'E2', 'C#4')
    frequency: float  # Reference frequency in Hz

    def __post_init__(self):
        if not self.frequency > 0:
            raise ValueError(
                f"Note {self.name!r} needs a positive frequency, got {self.frequency}"
            )

    def __str__(self):
        return f"{self.name} ({self.frequency:.2f} Hz)"


class Tuning:
    """The six target notes of the instrument, lowest string first.

    Strings are only ever changed through :meth:`reassign`; the engine reads
    the tuning once per frame and never writes to it.
    """

    def __init__(self, notes: Sequence[TargetNote]):
        notes = list(notes)
        if len(notes) != STRING_COUNT:
            raise ValueError(
                f"A tuning needs exactly {STRING_COUNT} notes, got {len(notes)}"
            )
        self._notes: List[TargetNote] = notes

    @classmethod
    def standard(cls) -> "Tuning":
        """Standard guitar tuning E2 A2 D3 G3 B3 E4."""
        from .note_utils import STANDARD_TUNING

        return cls(STANDARD_TUNING)

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "Tuning":
        """Build a tuning from Note Table names (e.g., ``["D2", "A2", ...]``).

        Raises:
            ValueError: If a name is not in the Note Table or the count is wrong
        """
        from .note_utils import find_note

        return cls([find_note(name) for name in names])

    def reassign(self, string_index: int, note: TargetNote) -> None:
        """Replace the note of one string (0 is the lowest string)."""
        if not 0 <= string_index < STRING_COUNT:
            raise ValueError(f"String index out of range: {string_index}")
        self._notes[string_index] = note

    @property
    def notes(self) -> Tuple[TargetNote, ...]:
        return tuple(self._notes)

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[TargetNote]:
        return iter(tuple(self._notes))

    def __getitem__(self, index: int) -> TargetNote:
        return self._notes[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Tuning):
            return NotImplemented
        return self._notes == other._notes

    def __repr__(self):
        return f"Tuning({' '.join(n.name for n in self._notes)})"


@dataclass(frozen=True)
class F0Estimate:
    """A fundamental-frequency estimate for one frame.

    ``frequency <= 0`` means "no estimate".
    """

    frequency: float  # Estimated fundamental in Hz
    score: float  # Raw score of the winning hypothesis
    confidence: float  # Margin vs runner-up (0-1)
    from_peak_hz: float = 0.0  # Spectral peak that produced the hypothesis
    divisor: int = 1  # from_peak_hz / divisor == frequency
    peaks: Tuple[Tuple[float, float], ...] = ()  # (freq, power) peaks considered

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must lie in [0, 1], got {self.confidence}")

    @classmethod
    def none(cls, peaks: Tuple[Tuple[float, float], ...] = ()) -> "F0Estimate":
        """The "no estimate" value."""
        return cls(frequency=0.0, score=0.0, confidence=0.0, peaks=peaks)

    @property
    def is_valid(self) -> bool:
        return self.frequency > 0 and math.isfinite(self.frequency)


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of scoring every target note against a frame."""

    note: TargetNote
    confidence: float  # Margin vs runner-up note (0-1)
    variant_hz: float  # Winning octave variant (f, 2f or f/2)
    scores: Dict[str, float] = field(default_factory=dict)  # note name -> score


@dataclass(frozen=True)
class RenderingState:
    """What the display needs for one frame."""

    note_name: str
    note_frequency: float
    detected_frequency: float

    @property
    def cents(self) -> float:
        """Offset of the detected pitch from the note, in cents."""
        from .note_utils import hz_to_cents_safe

        return hz_to_cents_safe(self.detected_frequency, self.note_frequency)


@dataclass(frozen=True)
class FrameResult:
    """Engine output for one frame.

    ``state`` set: render it. ``should_hide``: hide the display.
    Neither: leave the display as it is.
    """

    state: Optional[RenderingState]
    should_hide: bool

    @property
    def is_no_change(self) -> bool:
        return self.state is None and not self.should_hide


class FrameOutcome(Enum):
    """How the engine disposed of a frame."""

    SILENT = auto()
    INVALID = auto()
    HIDDEN = auto()
    VALID = auto()


@dataclass(frozen=True)
class FrameDiagnostics:
    """Structured per-frame record handed to observers."""

    frame_index: int
    rms: float
    outcome: FrameOutcome
    peak_estimate: Optional[F0Estimate] = None
    used_peaks: bool = False
    chosen_hz: Optional[float] = None
    median_hz: Optional[float] = None
    raw_cents: Optional[float] = None
    sticky_cents: Optional[float] = None
    ema_cents: Optional[float] = None
    smoothed_hz: Optional[float] = None
    invalid_streak: int = 0
