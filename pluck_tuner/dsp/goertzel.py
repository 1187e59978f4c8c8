"""Goertzel spectral probes shared by the estimators.

The Goertzel recursion here is evaluated at the exact requested frequency
rather than at the nearest DFT bin, so two probes a few Hz apart see
different power even when the frame is short.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

Peak = Tuple[float, float]  # (frequency Hz, power)

DEFAULT_HARMONICS = 6


def goertzel_powers(frame, sample_rate: int, freqs) -> np.ndarray:
    """Goertzel magnitude squared at each frequency in ``freqs``.

    Runs the second-order recursion ``s0 = x + 2cos(w) s1 - s2`` once over
    the frame for all target frequencies together. Non-positive
    frequencies and empty frames give 0.
    """
    x = np.asarray(frame, dtype=np.float64)
    freqs = np.atleast_1d(np.asarray(freqs, dtype=np.float64))
    if x.size == 0 or freqs.size == 0:
        return np.zeros(freqs.shape)

    omega = 2.0 * np.pi * freqs / sample_rate
    coeff = 2.0 * np.cos(omega)
    s1 = np.zeros_like(omega)
    s2 = np.zeros_like(omega)
    for sample in x.tolist():
        s0 = sample + coeff * s1 - s2
        s2 = s1
        s1 = s0

    real = s1 - s2 * np.cos(omega)
    imag = s2 * np.sin(omega)
    power = real * real + imag * imag
    power[freqs <= 0] = 0.0
    return power


def goertzel_power(frame, sample_rate: int, freq: float) -> float:
    """Goertzel magnitude squared at one frequency (Hz)."""
    if freq <= 0:
        return 0.0
    return float(goertzel_powers(frame, sample_rate, [freq])[0])


def harmonic_score(frame, sample_rate: int, freq: float, harmonics: int = 4) -> float:
    """Unweighted power sum at ``f, 2f, .. harmonics*f`` below Nyquist."""
    if freq <= 0:
        return 0.0
    nyquist = sample_rate * 0.5
    targets = [freq * h for h in range(1, harmonics + 1) if freq * h < nyquist]
    if not targets:
        return 0.0
    return float(np.sum(goertzel_powers(frame, sample_rate, targets)))


def comb_frequencies(
    f0: float,
    sample_rate: int,
    harmonics: int = DEFAULT_HARMONICS,
    bin_hz: Optional[float] = None,
) -> Tuple[List[float], List[float]]:
    """Probe frequencies and weights for a ``1/h`` harmonic comb at ``f0``.

    With ``bin_hz`` each harmonic is probed at ``fh - bin_hz``, ``fh`` and
    ``fh + bin_hz`` (lower probe floored at 1 Hz, harmonics at or above 1 Hz
    only) so slight detuning still lands in the comb.
    """
    probes: List[float] = []
    weights: List[float] = []
    if f0 <= 0:
        return probes, weights
    nyquist = sample_rate * 0.5
    for h in range(1, harmonics + 1):
        fh = f0 * h
        if fh >= nyquist:
            break
        weight = 1.0 / h
        if bin_hz is None:
            probes.append(fh)
            weights.append(weight)
        elif fh > 1.0:
            for probe in (max(1.0, fh - bin_hz), fh, fh + bin_hz):
                probes.append(probe)
                weights.append(weight)
    return probes, weights


def comb_score(
    frame,
    sample_rate: int,
    f0: float,
    harmonics: int = DEFAULT_HARMONICS,
    bin_hz: Optional[float] = None,
) -> float:
    """Weighted harmonic comb ``sum(P(h*f0) / h)`` for one hypothesis."""
    return comb_scores(frame, sample_rate, [f0], harmonics, bin_hz)[0]


def comb_scores(
    frame,
    sample_rate: int,
    f0s: Sequence[float],
    harmonics: int = DEFAULT_HARMONICS,
    bin_hz: Optional[float] = None,
) -> List[float]:
    """Comb scores for many hypotheses from a single Goertzel pass."""
    combs = [comb_frequencies(f0, sample_rate, harmonics, bin_hz) for f0 in f0s]
    probes = [p for comb_probes, _ in combs for p in comb_probes]
    if not probes:
        return [0.0] * len(combs)
    powers = goertzel_powers(frame, sample_rate, probes)

    scores = []
    offset = 0
    for comb_probes, weights in combs:
        count = len(comb_probes)
        segment = powers[offset : offset + count]
        scores.append(float(np.dot(segment, weights)) if count else 0.0)
        offset += count
    return scores


def goertzel_grid(
    frame, sample_rate: int, f_min: float, f_max: float, bins: int
) -> List[Peak]:
    """Sweep ``bins`` linearly spaced frequencies over ``[f_min, f_max]``.

    The range is clamped to ``[1, nyquist - 1]``; a collapsed range or fewer
    than two bins gives an empty sweep.
    """
    nyquist = sample_rate * 0.5
    lo = max(1.0, f_min)
    hi = min(f_max, nyquist - 1.0)
    if bins < 2 or lo >= hi:
        return []
    freqs = np.linspace(lo, hi, bins)
    powers = goertzel_powers(frame, sample_rate, freqs)
    return list(zip(freqs.tolist(), powers.tolist()))


def top_peaks(grid: Sequence[Peak], top_n: int, nms_hz: float) -> List[Peak]:
    """Greedy non-maximum suppression over a sweep.

    Keep the strongest remaining bin, drop every unkept bin within
    ``nms_hz`` of it, repeat until ``top_n`` are kept. Result is sorted by
    frequency.
    """
    if not grid or top_n <= 0:
        return []
    ranked = sorted(grid, key=lambda item: item[1], reverse=True)
    used = [False] * len(ranked)
    kept: List[Peak] = []
    for i, (fi, pi) in enumerate(ranked):
        if used[i]:
            continue
        kept.append((fi, pi))
        if len(kept) >= top_n:
            break
        for j in range(i + 1, len(ranked)):
            if not used[j] and abs(ranked[j][0] - fi) <= nms_hz:
                used[j] = True
    return sorted(kept, key=lambda item: item[0])
