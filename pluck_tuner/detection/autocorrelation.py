"""Band-limited autocorrelation pitch detector.

Searches the normalized autocorrelation for the first strong period,
guards it against octave and sub-harmonic locks, refines the lag with
parabolic interpolation and finally checks the result against a Goertzel
harmonic sum at ``f`` and ``2f``.
"""

from __future__ import annotations

import math
from typing import ClassVar, List, Optional, Tuple

import numpy as np

from ..core.interfaces import IFrequencyEstimator
from ..dsp.goertzel import harmonic_score
from ..logging_config import get_logger
from ..note_types import F0Estimate

logger = get_logger(__name__)

MIN_FRAME_LENGTH = 256


def autocorrelation(x: np.ndarray, lag: int) -> float:
    """Unnormalized autocorrelation ``sum(x[i] * x[i + lag])``."""
    if lag >= x.size:
        return 0.0
    return float(np.dot(x[: x.size - lag], x[lag:]))


def lag_window(
    n: int, sample_rate: int, last_stable_hz: Optional[float] = None
) -> Tuple[int, int]:
    """Lag search range ``(min_lag, max_lag)`` for a frame of ``n`` samples.

    The global range covers roughly 60..1000 Hz. A positive hint narrows it
    to -4/+4 semitones around the hint, or -2/+5 semitones for hints at or
    above 250 Hz; the narrowed range is only used if it spans 6 lags or more.
    """
    min_lag = max(2, int(sample_rate / 1000.0))
    max_lag = min(int(sample_rate / 60.0), n // 2 - 2)

    if last_stable_hz is not None and last_stable_hz > 0:
        down, up = (2.0, 5.0) if last_stable_hz >= 250.0 else (4.0, 4.0)
        f_min = max(40.0, last_stable_hz / 2.0 ** (down / 12.0))
        f_max = min(2000.0, last_stable_hz * 2.0 ** (up / 12.0))
        band_min = max(int(sample_rate / f_max), min_lag)
        band_max = min(int(sample_rate / f_min), max_lag)
        if band_max - band_min >= 6:
            min_lag, max_lag = band_min, band_max
    return min_lag, max_lag


def score_lag(rn: np.ndarray, lag: int, min_lag: int, max_lag: int) -> float:
    """Peak value minus harmonic penalties plus a small short-lag bias."""
    h2 = rn[lag * 2] if lag * 2 <= max_lag else 0.0
    h3 = rn[lag * 3] if lag * 3 <= max_lag else 0.0
    h05 = rn[lag // 2] if lag // 2 >= min_lag else 0.0
    penalty = 0.90 * max(h2, h3) + 0.60 * h05
    return float(rn[lag] - penalty + 0.002 * (max_lag - lag))


def _local_maxima(rn: np.ndarray, min_lag: int, max_lag: int) -> List[int]:
    return [
        lag
        for lag in range(min_lag + 1, max_lag)
        if rn[lag] >= rn[lag - 1] and rn[lag] >= rn[lag + 1]
    ]


def pick_lag(
    rn: np.ndarray,
    min_lag: int,
    max_lag: int,
    abs_threshold: float = 0.30,
    rel_threshold: float = 0.60,
    min_score: float = 0.02,
) -> Tuple[int, str]:
    """Choose the candidate period from the normalized autocorrelation.

    Returns:
        ``(lag, rule)``; lag is -1 when nothing can be chosen
    """
    window = rn[min_lag : max_lag + 1]
    max_rn = float(window.max()) if window.size else 0.0
    threshold = max(abs_threshold, rel_threshold * max_rn)

    maxima = _local_maxima(rn, min_lag, max_lag)
    for lag in maxima:
        if rn[lag] >= threshold and score_lag(rn, lag, min_lag, max_lag) >= min_score:
            return lag, "first-strong"

    if maxima:
        best = max(maxima, key=lambda lag: score_lag(rn, lag, min_lag, max_lag))
        return best, "best-score"

    if window.size:
        return min_lag + int(np.argmax(window)), "global-max"
    return -1, "none"


def octave_up_guard(rn: np.ndarray, tau: int, min_lag: int) -> int:
    """Halve the lag when the half-lag value is at least 92% of the current."""
    half = tau // 2
    if half >= min_lag and rn[half] >= rn[tau] * 0.92:
        return half
    return tau


def triple_lag_guard(rn: np.ndarray, tau: int, max_lag: int) -> int:
    """Triple a short lag whose 3x value is within 2% of the current."""
    three = tau * 3
    if three <= max_lag and tau < 140 and rn[three] >= rn[tau] * 0.98:
        return three
    return tau


def treble_collapse_guard(
    rn: np.ndarray,
    tau: int,
    min_lag: int,
    sample_rate: int,
    last_stable_hz: Optional[float],
) -> int:
    """Undo a drop far below a treble hint when the half lag still holds up."""
    if last_stable_hz is None or last_stable_hz < 250.0:
        return tau
    if sample_rate / tau >= last_stable_hz / 1.8:
        return tau
    half = tau // 2
    if half >= min_lag and rn[half] >= rn[tau] * 0.90:
        return half
    return tau


def parabolic_lag(r: np.ndarray, tau: int, min_lag: int, max_lag: int) -> float:
    """Sub-sample peak position from ``r`` at ``tau - 1, tau, tau + 1``."""
    l0 = max(tau - 1, min_lag)
    l2 = min(tau + 1, max_lag)
    c0, c1, c2 = r[l0], r[tau], r[l2]
    denom = c0 - 2.0 * c1 + c2
    delta = 0.0 if abs(denom) < 1e-9 else 0.5 * (c0 - c2) / denom
    return min(max(tau + delta, float(min_lag)), float(max_lag))


class AutocorrelationEstimator(IFrequencyEstimator):
    """Autocorrelation pitch detector with harmonic guards."""

    MIN_VALID_HZ: ClassVar[float] = 20.0
    MAX_VALID_HZ: ClassVar[float] = 1000.0
    DOUBLE_CEILING_HZ: ClassVar[float] = 1200.0
    RESCUE_BELOW_HZ: ClassVar[float] = 220.0

    def __init__(
        self, prefer_double_ratio: float = 1.04, rescue_ratio: float = 1.02
    ) -> None:
        """Initialize the estimator.

        Args:
            prefer_double_ratio: ``2f`` wins when its harmonic sum exceeds the
                fundamental's by this factor
            rescue_ratio: Factor for the extra doubling check on hint-less
                frames below 220 Hz
        """
        self.prefer_double_ratio = prefer_double_ratio
        self.rescue_ratio = rescue_ratio
        self.last_lag: Optional[float] = None
        self.last_rn: float = 0.0

    def detect(
        self, frame, sample_rate: int, last_stable_hz: Optional[float] = None
    ) -> Optional[float]:
        """Estimate the pitch of ``frame`` in Hz.

        Args:
            frame: PCM16 samples, normally preprocessed
            sample_rate: Sample rate in Hz
            last_stable_hz: Previous stable pitch used to narrow the search

        Returns:
            Frequency in ``[20, 1000]`` Hz, or None when there is no estimate
        """
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        self.last_lag = None
        self.last_rn = 0.0

        x = np.asarray(frame, dtype=np.float64)
        n = x.size
        if n < MIN_FRAME_LENGTH:
            return None

        min_lag, max_lag = lag_window(n, sample_rate, last_stable_hz)
        if max_lag - min_lag < 2:
            return None
        logger.debug(
            f"Lag window {min_lag}..{max_lag} hint={last_stable_hz if last_stable_hz else 'none'}"
        )

        r = np.zeros(max_lag + 1)
        for lag in range(min_lag, max_lag + 1):
            r[lag] = autocorrelation(x, lag)
        if r[min_lag:].max() <= 0:
            return None
        r0 = max(autocorrelation(x, 0), 1e-9)
        rn = r / r0

        tau, rule = pick_lag(rn, min_lag, max_lag)
        if tau < 0:
            return None
        logger.debug(f"Candidate lag {tau} ({sample_rate / tau:.1f} Hz) by {rule}")

        tau = octave_up_guard(rn, tau, min_lag)
        tau = triple_lag_guard(rn, tau, max_lag)
        tau = treble_collapse_guard(rn, tau, min_lag, sample_rate, last_stable_hz)

        lag = parabolic_lag(r, tau, min_lag, max_lag)
        freq = sample_rate / lag
        if not (math.isfinite(freq) and self.MIN_VALID_HZ <= freq <= self.MAX_VALID_HZ):
            logger.debug(f"Rejected {freq} Hz")
            return None

        self.last_lag = lag
        self.last_rn = float(rn[tau])
        return self._disambiguate(x, sample_rate, freq, last_stable_hz)

    def _disambiguate(
        self, x: np.ndarray, sample_rate: int, freq: float, last_stable_hz: Optional[float]
    ) -> float:
        s_fund = harmonic_score(x, sample_rate, freq)
        s_double = harmonic_score(x, sample_rate, 2.0 * freq)
        if s_double > s_fund * self.prefer_double_ratio and 2.0 * freq <= self.DOUBLE_CEILING_HZ:
            freq *= 2.0
            logger.debug("Harmonic sum at 2f is stronger, doubling")

        # Bootstrap frames have no hint to keep them from collapsing an octave
        if last_stable_hz is None and freq < self.RESCUE_BELOW_HZ:
            if harmonic_score(x, sample_rate, 2.0 * freq) >= s_fund * self.rescue_ratio:
                freq *= 2.0
                logger.debug("Rescue doubling without hint")

        logger.debug(f"Autocorrelation pitch {freq:.1f} Hz")
        return freq

    def estimate(
        self, frame, sample_rate: int, hint: Optional[float] = None
    ) -> F0Estimate:
        """:meth:`detect` as an :class:`F0Estimate`.

        The score and confidence are the normalized autocorrelation at the
        chosen lag.
        """
        freq = self.detect(frame, sample_rate, hint)
        if freq is None:
            return F0Estimate.none()
        strength = min(max(self.last_rn, 0.0), 1.0)
        return F0Estimate(frequency=freq, score=self.last_rn, confidence=strength)


def detect_pitch(
    frame, sample_rate: int, last_stable_hz: Optional[float] = None
) -> Optional[float]:
    """Autocorrelation pitch with default settings."""
    return AutocorrelationEstimator().detect(frame, sample_rate, last_stable_hz)
