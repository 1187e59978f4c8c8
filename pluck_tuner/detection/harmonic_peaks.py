"""Peaks-first fundamental estimation.

1. Sweep Goertzel power over ``[f_min, f_max]`` and keep the top peaks.
2. Each peak ``fp`` proposes ``f0 = fp / k`` for ``k = 1..5``.
3. Hypotheses are scored with a ``1/h`` weighted harmonic comb of local power.
4. The best hypothesis wins; confidence is its margin over the strongest
   rival pitch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, List, Optional, Sequence

from ..core.interfaces import IFrequencyEstimator
from ..dsp.goertzel import Peak, comb_scores, goertzel_grid, top_peaks
from ..logging_config import get_logger
from ..note_types import F0Estimate

logger = get_logger(__name__)

MIN_FRAME_LENGTH = 256
MAX_DIVISOR = 5


@dataclass(frozen=True)
class Hypothesis:
    f0: float
    from_peak_hz: float
    divisor: int


def refine_peaks(grid: Sequence[Peak], peaks: Sequence[Peak]) -> List[Peak]:
    """Move each peak to the vertex of a parabola through its grid neighbours.

    Only peaks that are strict interior maxima of the sweep are moved.
    """
    if len(grid) < 3:
        return list(peaks)
    index = {freq: i for i, (freq, _) in enumerate(grid)}
    step = grid[1][0] - grid[0][0]

    refined = []
    for freq, power in peaks:
        i = index.get(freq)
        if i is None or i == 0 or i == len(grid) - 1:
            refined.append((freq, power))
            continue
        p0, p1, p2 = grid[i - 1][1], grid[i][1], grid[i + 1][1]
        denom = p0 - 2.0 * p1 + p2
        if p1 < p0 or p1 < p2 or denom >= 0:
            refined.append((freq, power))
            continue
        delta = 0.5 * (p0 - p2) / denom
        refined.append((freq + delta * step, p1 - 0.25 * (p0 - p2) * delta))
    return refined


def margin_confidence(best: float, runner_up: float) -> float:
    """``(best - runner_up) / best`` clamped to ``[0, 1]``."""
    if best <= 0.0:
        return 0.0
    return min(max((best - runner_up) / (best + 1e-9), 0.0), 1.0)


class HarmonicPeakEstimator(IFrequencyEstimator):
    """Goertzel sweep, peak hypotheses and harmonic comb scoring."""

    DEFAULT_F_MIN: ClassVar[float] = 60.0
    DEFAULT_F_MAX: ClassVar[float] = 1200.0
    DEFAULT_BINS: ClassVar[int] = 640
    DEFAULT_TOP_N: ClassVar[int] = 5
    DEFAULT_NMS_HZ: ClassVar[float] = 18.0
    HARMONICS: ClassVar[int] = 6

    def __init__(
        self,
        f_min: float = DEFAULT_F_MIN,
        f_max: float = DEFAULT_F_MAX,
        bins: int = DEFAULT_BINS,
        top_n: int = DEFAULT_TOP_N,
        nms_hz: float = DEFAULT_NMS_HZ,
        rival_bins: float = 3.0,
    ) -> None:
        """Initialize the estimator.

        Args:
            f_min: Lowest fundamental considered, Hz
            f_max: Highest fundamental considered, Hz
            bins: Number of sweep frequencies
            top_n: Peaks kept after non-maximum suppression
            nms_hz: Suppression radius, Hz
            rival_bins: A runner-up must lie further than this many
                resolution bins (``sample_rate / n``) from the winner
        """
        self.f_min = f_min
        self.f_max = f_max
        self.bins = bins
        self.top_n = top_n
        self.nms_hz = nms_hz
        self.rival_bins = rival_bins

    def estimate_f0(
        self,
        frame,
        sample_rate: int,
        f_min: Optional[float] = None,
        f_max: Optional[float] = None,
        bins: Optional[int] = None,
        top_n: Optional[int] = None,
        nms_hz: Optional[float] = None,
    ) -> F0Estimate:
        """Estimate the fundamental of ``frame``.

        Keyword arguments override the instance settings for this call.
        Returns :meth:`F0Estimate.none` for frames shorter than 256 samples
        or when no peak or hypothesis survives.
        """
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        f_min = self.f_min if f_min is None else f_min
        f_max = self.f_max if f_max is None else f_max
        bins = self.bins if bins is None else bins
        top_n = self.top_n if top_n is None else top_n
        nms_hz = self.nms_hz if nms_hz is None else nms_hz

        n = len(frame)
        if n < MIN_FRAME_LENGTH:
            return F0Estimate.none()

        bin_hz = sample_rate / n
        grid = goertzel_grid(frame, sample_rate, f_min, f_max, bins)
        peaks = tuple(refine_peaks(grid, top_peaks(grid, top_n, nms_hz)))
        if not peaks:
            return F0Estimate.none()

        hypotheses = [
            Hypothesis(fp / k, fp, k)
            for fp, _ in peaks
            for k in range(1, MAX_DIVISOR + 1)
            if f_min <= fp / k <= f_max
        ]
        if not hypotheses:
            return F0Estimate.none(peaks)

        scores = comb_scores(
            frame, sample_rate, [h.f0 for h in hypotheses], self.HARMONICS, bin_hz
        )
        ranked = sorted(zip(scores, hypotheses), key=lambda item: item[0], reverse=True)
        best_score, best = ranked[0]

        rival_hz = self.rival_bins * bin_hz
        runner_up = next(
            (score for score, hyp in ranked[1:] if abs(hyp.f0 - best.f0) > rival_hz),
            0.0,
        )
        confidence = margin_confidence(best_score, runner_up)

        logger.debug(
            "peaks=[%s]", ", ".join(f"{f:.1f}:{p:.2e}" for f, p in peaks)
        )
        logger.debug(
            f"best f0={best.f0:.1f} (from {best.from_peak_hz:.1f}/k={best.divisor}) "
            f"score={best_score:.2e} conf={confidence:.2f}"
        )
        return F0Estimate(
            frequency=best.f0,
            score=best_score,
            confidence=confidence,
            from_peak_hz=best.from_peak_hz,
            divisor=best.divisor,
            peaks=peaks,
        )

    def estimate(
        self, frame, sample_rate: int, hint: Optional[float] = None
    ) -> F0Estimate:
        """Frequency-estimator entry point; the hint is not used."""
        return self.estimate_f0(frame, sample_rate)


def estimate_f0(frame, sample_rate: int, **kwargs) -> F0Estimate:
    """Harmonic-peak estimate with default settings."""
    return HarmonicPeakEstimator().estimate_f0(frame, sample_rate, **kwargs)
