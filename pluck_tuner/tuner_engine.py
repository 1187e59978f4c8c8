"""Per-frame tuning state machine.

Each raw frame goes through: silence gate, preprocessing, harmonic-peak
estimate with autocorrelation fallback, invalid-streak gating, median
filter, nearest note, cents stickiness, adaptive EMA and the stable-pitch
memory. The engine owns all memory carried from one frame to the next.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Union

from .core.events import TunerEvents
from .core.interfaces import IFrequencyEstimator
from .detection.autocorrelation import AutocorrelationEstimator
from .detection.harmonic_peaks import HarmonicPeakEstimator
from .detection.smoothing import (
    CentsStickiness,
    MedianFilter,
    StableFrequencyMemory,
    adaptive_alpha,
)
from .dsp.preprocess import FramePreprocessor, rms_pcm16
from .logging_config import get_logger
from .note_types import (
    F0Estimate,
    FrameDiagnostics,
    FrameOutcome,
    FrameResult,
    RenderingState,
    TargetNote,
    Tuning,
)
from .note_utils import cents_to_hz, get_closest_target_note, hz_to_cents_safe

logger = get_logger(__name__)

TuningLike = Union[Tuning, Sequence[TargetNote]]


class PitchState:
    """Cross-frame memory of one tuning session.

    Updated in a fixed order per valid frame: median, nearest note, cents
    smoothing, stable pitch. The smoothed pitch itself is never stored;
    it is always ``cents_to_hz(ema_cents, last_ref_hz)``.
    """

    def __init__(
        self,
        median_capacity: int = 5,
        stick_in_cents: float = 3.0,
        stick_out_cents: float = 5.0,
        collapse_min_hz: float = 250.0,
        collapse_ratio: float = 1.8,
        collapse_confirm_frames: int = 3,
    ) -> None:
        self.median = MedianFilter(median_capacity)
        self.stickiness = CentsStickiness(stick_in_cents, stick_out_cents)
        self.stable = StableFrequencyMemory(
            collapse_min_hz, collapse_ratio, collapse_confirm_frames
        )
        self.ema_cents: Optional[float] = None
        self.last_ref_hz: Optional[float] = None
        self.invalid_streak = 0

    @property
    def last_stable_hz(self) -> Optional[float]:
        return self.stable.value

    @property
    def suspect_frames(self) -> int:
        return self.stable.suspect_frames

    @property
    def smoothed_hz(self) -> Optional[float]:
        if self.ema_cents is None or self.last_ref_hz is None:
            return None
        return cents_to_hz(self.ema_cents, self.last_ref_hz)

    def clear_smoothing(self) -> None:
        """Forget median history, stickiness and EMA, keep the stable pitch."""
        self.ema_cents = None
        self.median.clear()
        self.stickiness.reset()

    def reset(self) -> None:
        self.clear_smoothing()
        self.stable.reset()
        self.last_ref_hz = None
        self.invalid_streak = 0

    def update(self, pitch_hz: float, tuning: Sequence[TargetNote]) -> dict:
        """Run one valid pitch through the smoothing chain.

        Returns:
            The intermediate values, for diagnostics
        """
        self.invalid_streak = 0
        median_hz = self.median.push(pitch_hz)

        note, _ = get_closest_target_note(median_hz, tuning)
        ref = note.frequency

        raw_cents = hz_to_cents_safe(median_hz, ref)
        sticky_cents = self.stickiness.apply(raw_cents)
        alpha = adaptive_alpha(self.ema_cents, sticky_cents)
        if self.ema_cents is None:
            self.ema_cents = sticky_cents
        else:
            self.ema_cents = alpha * sticky_cents + (1.0 - alpha) * self.ema_cents
        self.last_ref_hz = ref

        smoothed = cents_to_hz(self.ema_cents, ref)
        self.stable.update(smoothed)
        return {
            "note": note,
            "median_hz": median_hz,
            "raw_cents": raw_cents,
            "sticky_cents": sticky_cents,
            "ema_cents": self.ema_cents,
            "smoothed_hz": smoothed,
        }


class TunerEngine:
    """Turn raw PCM16 frames into rendering states or hide signals."""

    def __init__(
        self,
        rms_threshold: float = 300.0,
        invalid_hide_frames: int = 2,
        min_peak_confidence: float = 0.10,
        peak_min_hz: float = 60.0,
        peak_max_hz: float = 1000.0,
        valid_min_hz: float = 20.0,
        valid_max_hz: float = 2000.0,
        median_capacity: int = 5,
        stick_in_cents: float = 3.0,
        stick_out_cents: float = 5.0,
        collapse_min_hz: float = 250.0,
        collapse_ratio: float = 1.8,
        collapse_confirm_frames: int = 3,
        fixed_sample_rate: Optional[int] = None,
        preprocessor: Optional[FramePreprocessor] = None,
        peak_estimator: Optional[IFrequencyEstimator] = None,
        fallback_estimator: Optional[IFrequencyEstimator] = None,
        events: Optional[TunerEvents] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            rms_threshold: Frames at or below this raw RMS are silence
            invalid_hide_frames: Consecutive invalid frames before hiding
            min_peak_confidence: Harmonic-peak estimates below this
                confidence fall back to autocorrelation
            peak_min_hz: Lowest harmonic-peak estimate accepted, Hz
            peak_max_hz: Highest harmonic-peak estimate accepted, Hz
            valid_min_hz: Lowest pitch treated as valid, Hz
            valid_max_hz: Highest pitch treated as valid, Hz
            median_capacity: Median filter length
            stick_in_cents: Deadband entry threshold
            stick_out_cents: Deadband release threshold
            collapse_min_hz: Stable pitch above which collapses are suspect
            collapse_ratio: Drop factor that counts as a collapse
            collapse_confirm_frames: Suspect frames needed to accept a collapse
            fixed_sample_rate: Sample rate used when none is passed per frame
            preprocessor: Frame conditioning, default band-pass/RMS/Hann
            peak_estimator: Primary estimator, default harmonic peaks
            fallback_estimator: Hinted fallback, default autocorrelation
            events: Observer hooks for per-frame diagnostics
        """
        self.rms_threshold = rms_threshold
        self.invalid_hide_frames = invalid_hide_frames
        self.min_peak_confidence = min_peak_confidence
        self.peak_min_hz = peak_min_hz
        self.peak_max_hz = peak_max_hz
        self.valid_min_hz = valid_min_hz
        self.valid_max_hz = valid_max_hz
        self.fixed_sample_rate = fixed_sample_rate

        self.preprocessor = preprocessor or FramePreprocessor()
        self.peak_estimator = peak_estimator or HarmonicPeakEstimator()
        self.fallback_estimator = fallback_estimator or AutocorrelationEstimator()
        self.events = events

        self.state = PitchState(
            median_capacity,
            stick_in_cents,
            stick_out_cents,
            collapse_min_hz,
            collapse_ratio,
            collapse_confirm_frames,
        )
        self._frame_index = 0

    @property
    def last_stable_hz(self) -> Optional[float]:
        return self.state.last_stable_hz

    def reset(self) -> None:
        """Drop all tracking memory; safe at any frame boundary."""
        self.state.reset()
        if self.events:
            self.events.emit_reset()

    def process_frame(
        self, frame, tuning: TuningLike, sample_rate: Optional[int] = None
    ) -> FrameResult:
        """Process one raw mono PCM16 frame.

        Args:
            frame: Raw samples, not preprocessed
            tuning: Target notes to snap to
            sample_rate: Sample rate in Hz; defaults to ``fixed_sample_rate``

        Returns:
            A :class:`FrameResult` with a new state, a hide signal, or neither

        Raises:
            ValueError: If no sample rate is known, or the tuning is empty
        """
        sr = sample_rate if sample_rate is not None else self.fixed_sample_rate
        if sr is None:
            raise ValueError(
                "process_frame needs a sample rate or an engine built with fixed_sample_rate"
            )
        self._frame_index += 1

        rms = rms_pcm16(frame)
        if rms <= self.rms_threshold:
            self.reset()
            self._emit(FrameDiagnostics(self._frame_index, rms, FrameOutcome.SILENT))
            return FrameResult(state=None, should_hide=True)

        conditioned = self.preprocessor.process(frame, sr)

        peak = self.peak_estimator.estimate(conditioned, sr)
        use_peaks = (
            self.peak_min_hz <= peak.frequency <= self.peak_max_hz
            and peak.confidence >= self.min_peak_confidence
        )
        if use_peaks:
            pitch = peak.frequency
        else:
            pitch = self.fallback_estimator.estimate(
                conditioned, sr, self.state.last_stable_hz
            ).frequency

        if not (math.isfinite(pitch) and self.valid_min_hz <= pitch <= self.valid_max_hz):
            return self._invalid(rms, peak, pitch)

        values = self.state.update(pitch, tuning)
        note: TargetNote = values["note"]
        result_state = RenderingState(
            note_name=note.name,
            note_frequency=note.frequency,
            detected_frequency=values["smoothed_hz"],
        )
        logger.debug(
            f"frame {self._frame_index}: {pitch:.2f} Hz ({'peaks' if use_peaks else 'acf'}) "
            f"-> {note.name} {values['smoothed_hz']:.2f} Hz"
        )
        self._emit(
            FrameDiagnostics(
                frame_index=self._frame_index,
                rms=rms,
                outcome=FrameOutcome.VALID,
                peak_estimate=peak,
                used_peaks=use_peaks,
                chosen_hz=pitch,
                median_hz=values["median_hz"],
                raw_cents=values["raw_cents"],
                sticky_cents=values["sticky_cents"],
                ema_cents=values["ema_cents"],
                smoothed_hz=values["smoothed_hz"],
            )
        )
        return FrameResult(state=result_state, should_hide=False)

    def _invalid(self, rms: float, peak: F0Estimate, pitch: float) -> FrameResult:
        self.state.invalid_streak += 1
        streak = self.state.invalid_streak
        hide = streak >= self.invalid_hide_frames
        if hide:
            self.state.clear_smoothing()
        self._emit(
            FrameDiagnostics(
                frame_index=self._frame_index,
                rms=rms,
                outcome=FrameOutcome.HIDDEN if hide else FrameOutcome.INVALID,
                peak_estimate=peak,
                chosen_hz=pitch,
                invalid_streak=streak,
            )
        )
        return FrameResult(state=None, should_hide=hide)

    def _emit(self, diagnostics: FrameDiagnostics) -> None:
        if self.events:
            self.events.emit_frame_processed(diagnostics)
