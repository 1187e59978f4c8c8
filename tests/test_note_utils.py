import math
import unittest

from pluck_tuner.note_types import TargetNote
from pluck_tuner.note_utils import (
    NOTE_TABLE,
    STANDARD_TUNING,
    cents_to_hz,
    find_note,
    get_closest_target_note,
    get_note_name,
    get_tuning_options_for,
    hz_to_cents_safe,
)


class TestScientificPitchNotation(unittest.TestCase):
    def test_middle_c(self):
        # Middle C (C4) should be ~261.63 Hz
        self.assertEqual(get_note_name(261.63), "C4")

    def test_low_e_string(self):
        self.assertEqual(get_note_name(82.41), "E2")

    def test_octave_transitions(self):
        # Test octave transitions (B3 -> C4)
        self.assertEqual(get_note_name(246.94), "B3")
        self.assertEqual(get_note_name(261.63), "C4")

    def test_sharps_and_flats(self):
        self.assertEqual(get_note_name(277.18), "C#4")
        self.assertEqual(get_note_name(277.18, use_flats=True), "Db4")
        self.assertEqual(get_note_name(116.54, use_flats=True), "Bb2")

    def test_no_pitch(self):
        self.assertEqual(get_note_name(0.0), "---")


class TestNoteTable(unittest.TestCase):
    def test_table_spans_c1_to_b4_in_pitch_order(self):
        self.assertEqual(len(NOTE_TABLE), 48)
        self.assertEqual(NOTE_TABLE[0].name, "C1")
        self.assertEqual(NOTE_TABLE[-1].name, "B4")
        freqs = [note.frequency for note in NOTE_TABLE]
        self.assertEqual(freqs, sorted(freqs))

    def test_table_names_match_frequencies(self):
        for note in NOTE_TABLE:
            self.assertEqual(get_note_name(note.frequency), note.name)

    def test_find_note(self):
        self.assertEqual(find_note("A2"), TargetNote("A2", 110.0))
        self.assertEqual(find_note(" E4 ").frequency, 329.63)
        with self.assertRaises(ValueError):
            find_note("H2")

    def test_standard_tuning(self):
        self.assertEqual([n.name for n in STANDARD_TUNING], ["E2", "A2", "D3", "G3", "B3", "E4"])


class TestCents(unittest.TestCase):
    def test_octave_is_1200_cents(self):
        self.assertAlmostEqual(hz_to_cents_safe(220.0, 110.0), 1200.0)
        self.assertAlmostEqual(hz_to_cents_safe(55.0, 110.0), -1200.0)

    def test_non_positive_inputs_are_zero(self):
        for freq, ref in [(0.0, 110.0), (110.0, 0.0), (-1.0, 110.0), (110.0, -5.0)]:
            self.assertEqual(hz_to_cents_safe(freq, ref), 0.0)

    def test_cents_to_hz_inverts(self):
        self.assertAlmostEqual(cents_to_hz(1200.0, 110.0), 220.0)
        self.assertAlmostEqual(cents_to_hz(hz_to_cents_safe(113.0, 110.0), 110.0), 113.0)
        self.assertEqual(cents_to_hz(0.0, 82.41), 82.41)


class TestClosestNote(unittest.TestCase):
    def test_nearest_by_hz(self):
        note, diff = get_closest_target_note(105.0, STANDARD_TUNING)
        self.assertEqual(note.name, "A2")
        self.assertAlmostEqual(diff, -5.0)

    def test_far_outside_range(self):
        note, _ = get_closest_target_note(900.0, STANDARD_TUNING)
        self.assertEqual(note.name, "E4")

    def test_tie_keeps_earlier_note(self):
        targets = [TargetNote("X", 100.0), TargetNote("Y", 120.0)]
        note, diff = get_closest_target_note(110.0, targets)
        self.assertEqual(note.name, "X")
        self.assertAlmostEqual(diff, 10.0)

    def test_empty_targets(self):
        with self.assertRaises(ValueError):
            get_closest_target_note(110.0, [])


class TestTuningOptions(unittest.TestCase):
    def test_window_around_note(self):
        options = get_tuning_options_for(find_note("E2"), 4)
        self.assertEqual(
            [n.name for n in options],
            ["C2", "C#2", "D2", "D#2", "E2", "F2", "F#2", "G2", "G#2"],
        )

    def test_clipped_at_table_edges(self):
        self.assertEqual([n.name for n in get_tuning_options_for(find_note("C1"), 4)],
                         ["C1", "C#1", "D1", "D#1", "E1"])
        self.assertEqual(get_tuning_options_for(find_note("B4"), 2)[-1].name, "B4")

    def test_note_outside_table(self):
        odd = TargetNote("Q9", 1234.0)
        self.assertEqual(get_tuning_options_for(odd), [odd])

    def test_zero_range(self):
        self.assertEqual(get_tuning_options_for(find_note("A2"), 0), [find_note("A2")])


if __name__ == "__main__":
    unittest.main()
