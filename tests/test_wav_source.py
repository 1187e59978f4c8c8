import numpy as np
import pytest
import soundfile as sf

from pluck_tuner.audio.wav_source import WavFileFrameSource
from tests.conftest import make_tone


@pytest.fixture
def wav_file(tmp_path):
    path = tmp_path / "a2.wav"
    samples = make_tone(110.0, sample_rate=22050, n=22050 // 2)
    sf.write(str(path), samples, 22050, subtype="PCM_16")
    return path, samples


@pytest.fixture
def stereo_file(tmp_path):
    path = tmp_path / "stereo.wav"
    left = make_tone(110.0, sample_rate=8000, n=1000)
    right = np.zeros_like(left)
    sf.write(str(path), np.column_stack([left, right]), 8000, subtype="PCM_16")
    return path, left


def test_reads_file_properties(wav_file):
    path, _ = wav_file
    source = WavFileFrameSource(str(path), 1024)
    assert source.sample_rate == 22050
    assert source.frame_length == 1024
    assert source.channels == 1
    assert not source.is_running()


def test_frames_are_full_and_in_order(wav_file):
    path, samples = wav_file
    frames = list(WavFileFrameSource(str(path), 1024).frames())
    # 11025 samples make 10 full frames; the remainder is dropped
    assert len(frames) == 10
    assert all(f.dtype == np.int16 and f.size == 1024 for f in frames)
    np.testing.assert_array_equal(frames[3], samples[3 * 1024 : 4 * 1024])


def test_first_channel_of_stereo(stereo_file):
    path, left = stereo_file
    source = WavFileFrameSource(str(path), 256)
    assert source.channels == 2
    frames = list(source.frames())
    assert len(frames) == 3
    np.testing.assert_array_equal(frames[0], left[:256])


def test_start_delivers_every_frame(wav_file):
    path, _ = wav_file
    source = WavFileFrameSource(str(path), 1024)
    received = []
    assert source.start(received.append)
    source.wait(timeout=5.0)
    assert len(received) == 10
    assert not source.is_running()


def test_looping_until_stopped(wav_file):
    path, _ = wav_file
    source = WavFileFrameSource(str(path), 1024, loop=True)
    received = []

    def collect(frame):
        received.append(frame)
        if len(received) >= 25:
            source.stop()

    source.start(collect)
    source.wait(timeout=5.0)
    assert len(received) >= 25
    assert not source.is_running()


def test_invalid_frame_length(wav_file):
    path, _ = wav_file
    with pytest.raises(ValueError):
        WavFileFrameSource(str(path), 0)


def test_missing_file(tmp_path):
    with pytest.raises(RuntimeError):
        WavFileFrameSource(str(tmp_path / "missing.wav"), 1024)
