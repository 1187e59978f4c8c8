"""Score the notes of a tuning directly against a frame."""

from __future__ import annotations

from typing import ClassVar, Dict, Optional, Sequence, Tuple

from ..core.interfaces import IFrequencyEstimator
from ..dsp.goertzel import comb_scores
from ..logging_config import get_logger
from ..note_types import ClassificationResult, F0Estimate, TargetNote
from .harmonic_peaks import margin_confidence

logger = get_logger(__name__)


class NoteClassifier(IFrequencyEstimator):
    """Pick the tuning note whose harmonic series best explains a frame.

    Each note is scored at its reference frequency, its double and its half,
    with biases of 1.00, 0.95 and 0.90 so that the nominal octave is slightly
    preferred and neighbouring strings do not attract each other.
    """

    HARMONICS: ClassVar[int] = 6
    OCTAVE_VARIANTS: ClassVar[Tuple[Tuple[float, float], ...]] = (
        (1.0, 1.00),
        (2.0, 0.95),
        (0.5, 0.90),
    )

    def __init__(self, tuning: Optional[Sequence[TargetNote]] = None) -> None:
        self.tuning = tuning

    def score_note(self, frame, sample_rate: int, base_hz: float) -> Tuple[float, float]:
        """Best biased comb score over the octave variants of ``base_hz``.

        Returns:
            (score, variant_hz); ties keep the earlier variant
        """
        variants = [base_hz * factor for factor, _ in self.OCTAVE_VARIANTS]
        raw = comb_scores(frame, sample_rate, variants, self.HARMONICS)
        best_score = float("-inf")
        best_hz = base_hz
        for (_, bias), variant_hz, score in zip(self.OCTAVE_VARIANTS, variants, raw):
            biased = score * bias
            if biased > best_score:
                best_score = biased
                best_hz = variant_hz
        return best_score, best_hz

    def classify(
        self, frame, sample_rate: int, tuning: Sequence[TargetNote]
    ) -> ClassificationResult:
        """Classify ``frame`` against the notes of ``tuning``.

        Raises:
            ValueError: If ``tuning`` is empty
        """
        notes = list(tuning)
        if not notes:
            raise ValueError("Cannot classify against an empty tuning")

        scores: Dict[str, float] = {}
        best = notes[0]
        best_score = float("-inf")
        best_variant = best.frequency
        for note in notes:
            score, variant_hz = self.score_note(frame, sample_rate, note.frequency)
            scores[note.name] = score
            if score > best_score:
                best, best_score, best_variant = note, score, variant_hz

        ranked = sorted(scores.values(), reverse=True)
        top = ranked[0]
        second = ranked[1] if len(ranked) > 1 else 0.0
        confidence = margin_confidence(top, second)
        logger.debug(f"Classified {best.name} via {best_variant:.1f} Hz conf={confidence:.2f}")
        return ClassificationResult(
            note=best, confidence=confidence, variant_hz=best_variant, scores=scores
        )

    def estimate(
        self, frame, sample_rate: int, hint: Optional[float] = None
    ) -> F0Estimate:
        """Winning variant of the configured tuning as an :class:`F0Estimate`."""
        if self.tuning is None:
            raise ValueError("NoteClassifier.estimate needs a tuning at construction")
        result = self.classify(frame, sample_rate, self.tuning)
        return F0Estimate(
            frequency=result.variant_hz,
            score=result.scores[result.note.name],
            confidence=result.confidence,
            from_peak_hz=result.note.frequency,
        )
