"""Frame conditioning for 16-bit PCM audio.

Every stage takes a frame of signed 16-bit samples and returns a new
``int16`` array; only :func:`amplify_in_place` writes to its argument.
Float intermediates are rounded to nearest and saturated to the int16
range, never wrapped.
"""

from __future__ import annotations

import math
from typing import ClassVar

import numpy as np


PCM16_MIN: int = -32768
PCM16_MAX: int = 32767


def to_pcm16(values) -> np.ndarray:
    """Round to nearest and saturate float samples into an int16 array."""
    arr = np.rint(np.asarray(values, dtype=np.float64))
    return np.clip(arr, PCM16_MIN, PCM16_MAX).astype(np.int16)


def rms_pcm16(samples) -> float:
    """Root-mean-square level of a PCM16 frame (0.0 for an empty frame)."""
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def band_pass_coefficients(sample_rate: int, low_hz: float, high_hz: float):
    """Second-order Butterworth-style band-pass via the bilinear transform.

    The band edges are pre-warped with ``tan(pi * f / fs)`` so they land
    where requested after the transform.

    Returns:
        ``(b0, b1, b2, a1, a2)`` normalized so that ``a0 == 1``

    Raises:
        ValueError: If the band is not ``0 < low_hz < high_hz < fs / 2``
    """
    if sample_rate <= 0:
        raise ValueError(f"Sample rate must be positive, got {sample_rate}")
    if not 0 < low_hz < high_hz < sample_rate / 2:
        raise ValueError(
            f"Band {low_hz}..{high_hz} Hz is not valid at {sample_rate} Hz"
        )
    tan_low = math.tan(math.pi * low_hz / sample_rate)
    tan_high = math.tan(math.pi * high_hz / sample_rate)

    bw = tan_high - tan_low
    w0_sq = tan_low * tan_high

    norm = 1.0 / (1.0 + bw + w0_sq)
    b0 = bw * norm
    b1 = 0.0
    b2 = -bw * norm
    a1 = 2.0 * (w0_sq - 1.0) * norm
    a2 = (1.0 - bw + w0_sq) * norm
    return b0, b1, b2, a1, a2


def band_pass_filter(
    samples, sample_rate: int, low_hz: float = 60.0, high_hz: float = 1200.0
) -> np.ndarray:
    """Keep roughly ``low_hz..high_hz`` of a PCM16 frame.

    A single biquad run as a direct-form-II-transposed recursion, starting
    from zero state. An empty frame comes back unchanged.
    """
    x = np.asarray(samples)
    if x.size == 0:
        return x
    b0, b1, b2, a1, a2 = band_pass_coefficients(sample_rate, low_hz, high_hz)

    out = np.empty(x.size, dtype=np.float64)
    z1 = 0.0
    z2 = 0.0
    for i, x0 in enumerate(x.astype(np.float64).tolist()):
        y0 = b0 * x0 + z1
        z1 = b1 * x0 - a1 * y0 + z2
        z2 = b2 * x0 - a2 * y0
        out[i] = y0
    return to_pcm16(out)


def normalize_rms(samples, target_rms: float = 1200.0, min_rms: float = 200.0) -> np.ndarray:
    """Scale a frame so its RMS becomes ``target_rms``.

    Frames quieter than ``min_rms`` are returned as an unscaled copy so that
    near-silence is not boosted into noise.
    """
    x = np.asarray(samples)
    rms = rms_pcm16(x)
    if rms < min_rms:
        return x.astype(np.int16, copy=True)
    return to_pcm16(x.astype(np.float64) * (target_rms / rms))


def low_pass_filter(samples, cutoff_hz: float, sample_rate: int) -> np.ndarray:
    """One-pole RC low-pass.

    ``alpha = dt / (rc + dt)`` with ``rc = 1 / (2 pi cutoff)``. A non-positive
    cutoff or sample rate returns an unfiltered copy.
    """
    x = np.asarray(samples)
    if cutoff_hz <= 0 or sample_rate <= 0:
        return x.astype(np.int16, copy=True)

    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    dt = 1.0 / sample_rate
    alpha = dt / (rc + dt)

    out = np.empty(x.size, dtype=np.float64)
    prev = 0.0
    for i, sample in enumerate(x.astype(np.float64).tolist()):
        prev = prev + alpha * (sample - prev)
        out[i] = prev
    return to_pcm16(out)


def amplify(samples, factor: float) -> np.ndarray:
    """Multiply by ``factor`` with clipping, returning a new frame."""
    return to_pcm16(np.asarray(samples, dtype=np.float64) * factor)


def amplify_in_place(samples: np.ndarray, factor: float) -> None:
    """Multiply a caller-owned int16 buffer by ``factor`` with clipping."""
    if samples.dtype != np.int16:
        raise TypeError(f"Expected an int16 buffer, got {samples.dtype}")
    samples[...] = to_pcm16(samples.astype(np.float64) * factor)


def hann_window(samples) -> np.ndarray:
    """Apply ``0.5 * (1 - cos(2 pi i / (N - 1)))`` to every sample.

    Frames shorter than two samples have no defined window and are
    returned as a copy.
    """
    x = np.asarray(samples)
    n = x.size
    if n < 2:
        return x.astype(np.int16, copy=True)
    window = 0.5 * (1.0 - np.cos(2.0 * np.pi * np.arange(n) / (n - 1)))
    return to_pcm16(x.astype(np.float64) * window)


class FramePreprocessor:
    """Band-pass, level and window a raw frame before analysis."""

    DEFAULT_LOW_HZ: ClassVar[float] = 60.0
    DEFAULT_HIGH_HZ: ClassVar[float] = 1200.0
    DEFAULT_TARGET_RMS: ClassVar[float] = 1200.0
    DEFAULT_MIN_RMS: ClassVar[float] = 200.0

    def __init__(
        self,
        low_hz: float = DEFAULT_LOW_HZ,
        high_hz: float = DEFAULT_HIGH_HZ,
        target_rms: float = DEFAULT_TARGET_RMS,
        min_rms: float = DEFAULT_MIN_RMS,
    ) -> None:
        """Initialize the preprocessor.

        Args:
            low_hz: Lower band-pass edge in Hz
            high_hz: Upper band-pass edge in Hz
            target_rms: RMS level frames are normalized to
            min_rms: Frames below this RMS are not boosted
        """
        self.low_hz = low_hz
        self.high_hz = high_hz
        self.target_rms = target_rms
        self.min_rms = min_rms

    def process(self, frame, sample_rate: int) -> np.ndarray:
        """Band-pass, then RMS-normalize, then Hann-window ``frame``."""
        banded = band_pass_filter(frame, sample_rate, self.low_hz, self.high_hz)
        leveled = normalize_rms(banded, self.target_rms, self.min_rms)
        return hann_window(leveled)

    __call__ = process


def preprocess(frame, sample_rate: int) -> np.ndarray:
    """Condition a frame with the default band, level and window."""
    return FramePreprocessor().process(frame, sample_rate)
