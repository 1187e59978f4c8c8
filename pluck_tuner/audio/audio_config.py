"""Sample-rate probing and frame-length selection for capture devices."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import sounddevice as sd

from ..logging_config import get_logger

logger = get_logger(__name__)

CANDIDATE_RATES = (48000, 44100, 32000, 22050, 16000, 11025, 8000)
FALLBACK_RATE = 44100
DEFAULT_FRAME_SECONDS = 0.046


class AudioDeviceError(RuntimeError):
    """No usable capture configuration could be opened."""


def next_pow2(x: int) -> int:
    """Smallest power of two ``>= x`` (1 for ``x <= 1``)."""
    if x <= 1:
        return 1
    return 1 << (int(x) - 1).bit_length()


def frame_length_for(
    sample_rate: int, min_frames: int = 0, frame_seconds: float = DEFAULT_FRAME_SECONDS
) -> int:
    """Power-of-two frame covering ``frame_seconds``, at least ``min_frames``."""
    return max(next_pow2(int(sample_rate * frame_seconds)), min_frames)


def choose_sample_rate(
    probe: Callable[[int], bool], candidates: Sequence[int] = CANDIDATE_RATES
) -> int:
    """First candidate rate ``probe`` accepts, else 44100."""
    for rate in candidates:
        if probe(rate):
            return rate
    logger.warning(f"No candidate sample rate accepted, falling back to {FALLBACK_RATE} Hz")
    return FALLBACK_RATE


def device_accepts(device_id: Optional[int], rate: int) -> bool:
    """Whether the input device can record mono int16 at ``rate``."""
    try:
        sd.check_input_settings(
            device=device_id, samplerate=rate, channels=1, dtype="int16"
        )
        return True
    except Exception as e:  # PortAudio reports failures with several exception types
        logger.warning(f"Sample rate {rate} Hz not supported: {e}")
        return False


def device_min_frames(device_id: Optional[int], sample_rate: int) -> int:
    """Smallest buffer the device reports as usable, in frames."""
    try:
        info = sd.query_devices(device_id, "input")
    except Exception as e:  # PortAudio reports failures with several exception types
        logger.warning(f"Could not query input device {device_id}: {e}")
        return 0
    latency = float(info.get("default_low_input_latency", 0.0) or 0.0)
    return int(round(latency * sample_rate))


@dataclass(frozen=True)
class AudioConfig:
    """Capture settings chosen once at start-up."""

    sample_rate: int
    frame_length: int
    device_id: Optional[int] = None

    @classmethod
    def default(
        cls,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frame_seconds: float = DEFAULT_FRAME_SECONDS,
    ) -> "AudioConfig":
        """Probe the device for a rate and derive the frame length.

        An explicit ``sample_rate`` skips probing.
        """
        if sample_rate is None:
            sample_rate = choose_sample_rate(lambda rate: device_accepts(device_id, rate))
        min_frames = device_min_frames(device_id, sample_rate)
        frame_length = frame_length_for(sample_rate, min_frames, frame_seconds)
        logger.info(
            f"Audio config: device={device_id} rate={sample_rate} Hz frame={frame_length}"
        )
        return cls(sample_rate=sample_rate, frame_length=frame_length, device_id=device_id)
