"""Pitch tracking for tuning plucked strings."""

from .note_types import F0Estimate, FrameResult, RenderingState, TargetNote, Tuning
from .tuner_engine import PitchState, TunerEngine

__version__ = "0.1.0"

__all__ = [
    "F0Estimate",
    "FrameResult",
    "PitchState",
    "RenderingState",
    "TargetNote",
    "TunerEngine",
    "Tuning",
]
