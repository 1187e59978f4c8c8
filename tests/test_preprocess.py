import unittest

import numpy as np
import pytest

from pluck_tuner.dsp.preprocess import (
    FramePreprocessor,
    amplify,
    amplify_in_place,
    band_pass_coefficients,
    band_pass_filter,
    hann_window,
    low_pass_filter,
    normalize_rms,
    preprocess,
    rms_pcm16,
    to_pcm16,
)

SR = 44100


def sine(freq, n=4096, amplitude=8000.0):
    t = np.arange(n) / SR
    return to_pcm16(amplitude * np.sin(2 * np.pi * freq * t))


class TestClipping(unittest.TestCase):
    def test_saturates_instead_of_wrapping(self):
        out = to_pcm16([40000.0, -40000.0, 32767.4, -32768.4])
        self.assertEqual(out.dtype, np.int16)
        self.assertEqual(out.tolist(), [32767, -32768, 32767, -32768])

    def test_rounds_to_nearest(self):
        self.assertEqual(to_pcm16([1.4, 1.6, -1.4, -1.6]).tolist(), [1, 2, -1, -2])

    def test_rms(self):
        self.assertEqual(rms_pcm16([]), 0.0)
        self.assertAlmostEqual(rms_pcm16([3, -3, 3, -3]), 3.0)


class TestBandPass(unittest.TestCase):
    def test_coefficients_reject_invalid_band(self):
        with self.assertRaises(ValueError):
            band_pass_coefficients(SR, 1200.0, 60.0)
        with self.assertRaises(ValueError):
            band_pass_coefficients(SR, 60.0, SR / 2)
        with self.assertRaises(ValueError):
            band_pass_coefficients(0, 60.0, 1200.0)

    def test_empty_frame_is_returned_unchanged(self):
        empty = np.array([], dtype=np.int16)
        self.assertIs(band_pass_filter(empty, SR), empty)

    def test_passband_kept_and_stopband_attenuated(self):
        mid = sine(300.0)
        high = sine(6000.0)
        mid_out = band_pass_filter(mid, SR)
        high_out = band_pass_filter(high, SR)
        self.assertEqual(mid_out.dtype, np.int16)
        self.assertGreater(rms_pcm16(mid_out), 0.85 * rms_pcm16(mid))
        self.assertLess(rms_pcm16(high_out), 0.35 * rms_pcm16(high))

    def test_input_not_mutated(self):
        frame = sine(300.0)
        before = frame.copy()
        band_pass_filter(frame, SR)
        np.testing.assert_array_equal(frame, before)


class TestLevelling(unittest.TestCase):
    def test_quiet_frame_returned_as_unscaled_copy(self):
        quiet = sine(200.0, amplitude=100.0)
        out = normalize_rms(quiet)
        np.testing.assert_array_equal(out, quiet)
        self.assertIsNot(out, quiet)

    def test_loud_frame_scaled_to_target(self):
        out = normalize_rms(sine(200.0, amplitude=5000.0), target_rms=1200.0)
        self.assertAlmostEqual(rms_pcm16(out), 1200.0, delta=12.0)

    def test_amplify_clips(self):
        out = amplify(np.array([20000, -20000, 100], dtype=np.int16), 2.0)
        self.assertEqual(out.tolist(), [32767, -32768, 200])

    def test_amplify_in_place(self):
        buf = np.array([1000, -1000, 30000], dtype=np.int16)
        self.assertIsNone(amplify_in_place(buf, 1.5))
        self.assertEqual(buf.tolist(), [1500, -1500, 32767])

    def test_amplify_in_place_needs_int16(self):
        with self.assertRaises(TypeError):
            amplify_in_place(np.zeros(4), 2.0)


class TestLowPass(unittest.TestCase):
    def test_non_positive_cutoff_returns_copy(self):
        frame = sine(100.0, n=64)
        out = low_pass_filter(frame, 0.0, SR)
        np.testing.assert_array_equal(out, frame)
        self.assertIsNot(out, frame)

    def test_settles_on_dc_and_attenuates_high_frequencies(self):
        dc = np.full(4096, 1000, dtype=np.int16)
        self.assertEqual(low_pass_filter(dc, 200.0, SR)[-1], 1000)

        high = sine(8000.0)
        self.assertLess(rms_pcm16(low_pass_filter(high, 200.0, SR)), 0.1 * rms_pcm16(high))


class TestHann(unittest.TestCase):
    def test_window_shape(self):
        out = hann_window(np.full(5, 1000, dtype=np.int16))
        self.assertEqual(out.tolist(), [0, 500, 1000, 500, 0])

    def test_too_short_returns_copy(self):
        frame = np.array([123], dtype=np.int16)
        out = hann_window(frame)
        self.assertEqual(out.tolist(), [123])
        self.assertIsNot(out, frame)


def test_preprocessor_conditions_without_mutating():
    frame = sine(110.0, n=2048)
    before = frame.copy()
    out = FramePreprocessor().process(frame, SR)
    np.testing.assert_array_equal(frame, before)
    assert out.dtype == np.int16
    assert out.size == frame.size
    # Hann window leaves the edges at zero
    assert out[0] == 0 and out[-1] == 0
    np.testing.assert_array_equal(preprocess(frame, SR), out)


@pytest.mark.parametrize("low, high", [(60.0, 1200.0), (80.0, 2000.0)])
def test_preprocessor_band_is_configurable(low, high):
    pre = FramePreprocessor(low_hz=low, high_hz=high)
    assert (pre.low_hz, pre.high_hz) == (low, high)
    assert pre(sine(300.0, n=1024), SR).size == 1024
