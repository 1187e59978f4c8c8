"""Pitch estimators and temporal smoothing."""

from .autocorrelation import AutocorrelationEstimator
from .harmonic_peaks import HarmonicPeakEstimator
from .note_classifier import NoteClassifier

__all__ = ["AutocorrelationEstimator", "HarmonicPeakEstimator", "NoteClassifier"]
