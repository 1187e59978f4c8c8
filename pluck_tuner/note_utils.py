"""Utility functions for working with musical notes and frequencies."""

import math
from typing import List, Sequence, Tuple

import numpy as np

from .note_types import TargetNote


def _table(*rows: Tuple[str, float]) -> Tuple[TargetNote, ...]:
    return tuple(TargetNote(name, freq) for name, freq in rows)


# Catalog of selectable notes, sorted by pitch (C1..B4)
NOTE_TABLE: Tuple[TargetNote, ...] = _table(
    ("C1", 32.70), ("C#1", 34.65), ("D1", 36.71), ("D#1", 38.89), ("E1", 41.20),
    ("F1", 43.65), ("F#1", 46.25), ("G1", 49.00), ("G#1", 51.91), ("A1", 55.00),
    ("A#1", 58.27), ("B1", 61.74),
    ("C2", 65.41), ("C#2", 69.30), ("D2", 73.42), ("D#2", 77.78), ("E2", 82.41),
    ("F2", 87.31), ("F#2", 92.50), ("G2", 98.00), ("G#2", 103.83), ("A2", 110.00),
    ("A#2", 116.54), ("B2", 123.47),
    ("C3", 130.81), ("C#3", 138.59), ("D3", 146.83), ("D#3", 155.56), ("E3", 164.81),
    ("F3", 174.61), ("F#3", 185.00), ("G3", 196.00), ("G#3", 207.65), ("A3", 220.00),
    ("A#3", 233.08), ("B3", 246.94),
    ("C4", 261.63), ("C#4", 277.18), ("D4", 293.66), ("D#4", 311.13), ("E4", 329.63),
    ("F4", 349.23), ("F#4", 369.99), ("G4", 392.00), ("G#4", 415.30), ("A4", 440.00),
    ("A#4", 466.16), ("B4", 493.88),
)

STANDARD_TUNING: Tuple[TargetNote, ...] = _table(
    ("E2", 82.41),
    ("A2", 110.00),
    ("D3", 146.83),
    ("G3", 196.00),
    ("B3", 246.94),
    ("E4", 329.63),
)

_NOTES_BY_NAME = {note.name: note for note in NOTE_TABLE}


def find_note(name: str) -> TargetNote:
    """Look up a note in the Note Table by name.

    Raises:
        ValueError: If the name is not in the table
    """
    try:
        return _NOTES_BY_NAME[name.strip()]
    except KeyError:
        raise ValueError(f"Unknown note: {name!r}") from None


def hz_to_cents_safe(freq: float, ref_hz: float) -> float:
    """Interval from ``ref_hz`` to ``freq`` in cents.

    Returns exactly 0.0 for non-positive inputs instead of NaN/inf.
    """
    if not freq > 0 or not ref_hz > 0:
        return 0.0
    return 1200.0 * math.log2(freq / ref_hz)


def cents_to_hz(cents: float, ref_hz: float) -> float:
    """Absolute frequency ``cents`` away from ``ref_hz``."""
    return ref_hz * 2.0 ** (cents / 1200.0)


def get_closest_target_note(
    pitch_hz: float, targets: Sequence[TargetNote]
) -> Tuple[TargetNote, float]:
    """Nearest target note by absolute Hz difference.

    Returns:
        (closest_note, pitch_hz - closest_note.frequency). Ties keep the
        earlier note.

    Raises:
        ValueError: If ``targets`` is empty
    """
    if not targets:
        raise ValueError("Cannot look up the nearest note in an empty tuning")
    closest = targets[0]
    smallest_diff = math.inf
    for note in targets:
        diff = abs(note.frequency - pitch_hz)
        if diff < smallest_diff:
            smallest_diff = diff
            closest = note
    return closest, pitch_hz - closest.frequency


def get_tuning_options_for(note: TargetNote, semitone_range: int = 4) -> List[TargetNote]:
    """Notes within ``semitone_range`` table steps of ``note``.

    Falls back to just ``[note]`` when the note is not in the table.
    """
    names = [n.name for n in NOTE_TABLE]
    if note.name not in names:
        return [note]
    index = names.index(note.name)
    start = max(0, index - semitone_range)
    end = min(len(NOTE_TABLE) - 1, index + semitone_range)
    return list(NOTE_TABLE[start : end + 1])


def get_note_name(freq: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---'
        for non-positive frequencies
    """
    if freq <= 0:
        return "---"

    # Standard reference: A4 = 440Hz, MIDI 69
    half_steps = round(12 * np.log2(freq / 440.0))
    midi_number = 69 + half_steps

    note_names_sharps = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
    note_names_flats = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

    octave = (midi_number // 12) - 1
    note_idx = midi_number % 12

    if use_flats:
        return f"{note_names_flats[note_idx]}{octave}"
    return f"{note_names_sharps[note_idx]}{octave}"
