import numpy as np
import pytest

from pluck_tuner.core.interfaces import IFrequencyEstimator
from pluck_tuner.note_types import F0Estimate

try:
    import sounddevice  # noqa: F401
except OSError:
    # sounddevice is installed but the PortAudio shared library is not
    collect_ignore = [
        "test_audio_config.py",
        "test_cli.py",
        "test_factory.py",
        "test_frame_sources.py",
    ]


def make_tone(
    freq,
    sample_rate=44100,
    n=2048,
    amplitude=10000.0,
    phase=0.0,
    partials=None,
):
    """Synthetic int16 tone.

    ``partials`` is a list of ``(multiple, relative_amplitude)`` pairs; by
    default a single sine at ``freq``.
    """
    t = np.arange(n) / sample_rate
    partials = partials or [(1, 1.0)]
    x = np.zeros(n)
    for multiple, rel in partials:
        x += rel * np.sin(2.0 * np.pi * freq * multiple * t + phase)
    x *= amplitude
    return np.clip(np.rint(x), -32768, 32767).astype(np.int16)


@pytest.fixture
def tone():
    return make_tone


@pytest.fixture
def silence():
    return np.zeros(2048, dtype=np.int16)


class ScriptedEstimator(IFrequencyEstimator):
    """Returns queued estimates and records the hints it was given."""

    def __init__(self, *estimates):
        self.estimates = list(estimates)
        self.hints = []

    def estimate(self, frame, sample_rate, hint=None):
        self.hints.append(hint)
        if not self.estimates:
            return F0Estimate.none()
        return self.estimates.pop(0)


def peak(freq, confidence=0.9):
    return F0Estimate(frequency=freq, score=1.0, confidence=confidence)
